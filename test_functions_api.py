"""Tests for the edge functions client."""

import json
import uuid

import httpx
import pytest

from docsync.core.errors import DocumentCreationError, TriggerError
from docsync.core.models import UploadRequest
from docsync.service.functions_api import FunctionsAPIClient

BASE_URL = "https://project.supabase.co/functions/v1/"


def upload_request() -> UploadRequest:
    upload_id = uuid.UUID("11111111-2222-3333-4444-555555555555")
    return UploadRequest(
        upload_id=upload_id,
        team_id="team-1",
        user_id="user-1",
        original_filename="My Plan.pdf",
        sanitized_filename="My_Plan.pdf",
        mime_type="application/pdf",
        size_bytes=2048,
        storage_path=f"team-1/user-1/{upload_id}/My_Plan.pdf",
    )


def client_with(handler) -> FunctionsAPIClient:
    return FunctionsAPIClient(BASE_URL, transport=httpx.MockTransport(handler))


class TestUploadLocalFile:

    @pytest.mark.asyncio
    async def test_posts_ingestion_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"extractedText": "Mission: grow"})

        client = client_with(handler)
        request = upload_request()

        result = await client.upload_local_file(request, request.storage_path, "strategy", "token-abc")
        await client.close()

        assert seen["url"] == "https://project.supabase.co/functions/v1/upload-local-file"
        assert seen["auth"] == "Bearer token-abc"
        assert seen["body"] == {
            "storagePath": request.storage_path,
            "filename": "My Plan.pdf",
            "mimeType": "application/pdf",
            "category": "strategy",
            "teamId": "team-1",
            "userId": "user-1",
            "uploadId": "11111111-2222-3333-4444-555555555555",
            "fileSize": 2048,
        }
        assert result["extractedText"] == "Mission: grow"

    @pytest.mark.asyncio
    async def test_non_json_success_is_accepted(self):
        client = client_with(lambda request: httpx.Response(202, text="queued"))
        request = upload_request()

        assert await client.upload_local_file(request, request.storage_path, "strategy", "t") == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_rejection_carries_response_body(self):
        client = client_with(lambda request: httpx.Response(422, text="Unsupported file type"))
        request = upload_request()

        with pytest.raises(TriggerError) as exc_info:
            await client.upload_local_file(request, request.storage_path, "strategy", "t")
        await client.close()

        assert exc_info.value.status_code == 422
        assert exc_info.value.user_message == "Upload failed: Unsupported file type"
        assert exc_info.value.upload_id == str(request.upload_id)

    @pytest.mark.asyncio
    async def test_transport_error_becomes_trigger_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = client_with(handler)
        request = upload_request()

        with pytest.raises(TriggerError, match="connection refused"):
            await client.upload_local_file(request, request.storage_path, "strategy", "t")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_token_fails_before_request(self):
        calls = []
        client = client_with(lambda request: calls.append(request) or httpx.Response(200))
        request = upload_request()

        with pytest.raises(TriggerError, match="Not authenticated"):
            await client.upload_local_file(request, request.storage_path, "strategy", None)
        await client.close()

        assert calls == []


class TestStoreWorkshopDocument:

    @pytest.mark.asyncio
    async def test_returns_document_id(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "documentId": "doc-123", "chunksCreated": 1})

        client = client_with(handler)

        document_id = await client.store_workshop_document(
            "team-1", "user-1", "team-strategy-document.md", "# Strategy", "strategy", "t"
        )
        await client.close()

        assert document_id == "doc-123"
        assert seen["url"].endswith("/store-workshop-document")
        assert seen["body"] == {
            "teamId": "team-1",
            "userId": "user-1",
            "fileName": "team-strategy-document.md",
            "content": "# Strategy",
            "category": "strategy",
        }

    @pytest.mark.asyncio
    async def test_failure_includes_status_and_body(self):
        client = client_with(lambda request: httpx.Response(500, text="Failed to generate embeddings"))

        with pytest.raises(DocumentCreationError) as exc_info:
            await client.store_workshop_document("team-1", "user-1", "a.md", "x", "strategy", "t")
        await client.close()

        assert exc_info.value.user_message == "Document creation failed (500): Failed to generate embeddings"

    @pytest.mark.asyncio
    async def test_missing_document_id(self):
        client = client_with(lambda request: httpx.Response(200, json={"success": True}))

        with pytest.raises(DocumentCreationError, match="Failed to get document ID"):
            await client.store_workshop_document("team-1", "user-1", "a.md", "x", "strategy", "t")
        await client.close()
