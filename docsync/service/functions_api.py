"""
HTTP client for the Supabase edge functions that ingest documents.
Handles the bearer token, the asynchronous upload trigger and the synchronous document store.
"""

import httpx
import logging
import json
from typing import Dict, Any, Optional

from docsync.core.errors import DocumentCreationError, TriggerError
from docsync.core.models import UploadRequest

logger = logging.getLogger(__name__)

class FunctionsAPIClient:
    """Client for the document ingestion edge functions."""

    def __init__(self, base_url: str, timeout: float = 120.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the functions API client.

        Args:
            base_url: Base URL of the edge functions (e.g., "https://xyz.supabase.co/functions/v1")
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip('/')

        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            transport=transport
        )

        logger.info(f"✅ Functions API client initialized at {self.base_url}")

    def _headers(self, access_token: Optional[str]) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }

    async def upload_local_file(
        self,
        request: UploadRequest,
        storage_path: str,
        category: str,
        access_token: Optional[str],
    ) -> Dict[str, Any]:
        """
        Ask the ingestion service to process a stored file.

        A successful response means the file was accepted for processing,
        not that it is queryable yet.

        Args:
            request: Upload attempt being ingested
            storage_path: Path returned by the storage upload
            category: Document category
            access_token: Caller's bearer token

        Returns:
            Response body (may contain extractedText), empty dict if the body is not JSON

        Raises:
            TriggerError: if the endpoint rejects the file or cannot be reached
        """
        upload_id = str(request.upload_id)
        if not access_token:
            raise TriggerError("Not authenticated", upload_id=upload_id)

        url = f"{self.base_url}/upload-local-file"
        payload = {
            "storagePath": storage_path,
            "filename": request.original_filename,
            "mimeType": request.mime_type,
            "category": category,
            "teamId": request.team_id,
            "userId": request.user_id,
            "uploadId": upload_id,
            "fileSize": request.size_bytes
        }

        logger.info(f"🔄 Triggering ingestion for upload {upload_id}: {url}")

        try:
            response = await self.client.post(url, json=payload, headers=self._headers(access_token))
        except httpx.TimeoutException as e:
            logger.error(f"❌ Ingestion trigger timed out for upload {upload_id}")
            raise TriggerError("Ingestion request timed out", upload_id=upload_id) from e
        except httpx.RequestError as e:
            logger.error(f"❌ Ingestion trigger request error for upload {upload_id}: {e}")
            raise TriggerError(str(e), upload_id=upload_id) from e

        if not response.is_success:
            logger.error(f"❌ Ingestion trigger failed: {response.status_code} - {response.text}")
            raise TriggerError(response.text, status_code=response.status_code, upload_id=upload_id)

        try:
            result = response.json()
        except json.JSONDecodeError:
            result = {}

        logger.info(f"✅ Upload {upload_id} accepted for processing (status {response.status_code})")
        return result if isinstance(result, dict) else {}

    async def store_workshop_document(
        self,
        team_id: str,
        user_id: str,
        file_name: str,
        content: str,
        category: str,
        access_token: Optional[str],
    ) -> str:
        """
        Store a generated document and wait for it to be indexed.

        Args:
            team_id: Team owning the document
            user_id: Author of the document
            file_name: Name recorded on every chunk
            content: Markdown content
            category: Document category
            access_token: Caller's bearer token

        Returns:
            The new document_id

        Raises:
            DocumentCreationError: on transport errors, non-2xx responses or a missing documentId
        """
        if not access_token:
            raise DocumentCreationError("Not authenticated - please refresh the page and try again")

        url = f"{self.base_url}/store-workshop-document"
        payload = {
            "teamId": team_id,
            "userId": user_id,
            "fileName": file_name,
            "content": content,
            "category": category
        }

        logger.info(f"🔄 Storing generated document {file_name} for team {team_id}")

        try:
            response = await self.client.post(url, json=payload, headers=self._headers(access_token))
        except httpx.RequestError as e:
            logger.error(f"❌ Document store request error: {e}")
            raise DocumentCreationError(f"Document creation failed: {e}") from e

        if not response.is_success:
            logger.error(f"❌ Document store failed: {response.status_code} - {response.text}")
            raise DocumentCreationError(response.text, status_code=response.status_code)

        try:
            result = response.json()
        except json.JSONDecodeError as e:
            raise DocumentCreationError("Failed to get document ID from response") from e

        document_id = result.get("documentId") if isinstance(result, dict) else None
        if not document_id:
            logger.error(f"❌ No document ID in response: {result}")
            raise DocumentCreationError("Failed to get document ID from response")

        logger.info(f"✅ Document created with ID {document_id} ({result.get('chunksCreated', '?')} chunks)")
        return document_id

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
        logger.info("Functions API client closed")
