import os
from typing import Dict, Optional
from supabase import create_client, Client
from dotenv import load_dotenv
import logging

from docsync.core.models import IngestionConfig

load_dotenv()
logger = logging.getLogger(__name__)

class Config:
    """Configuration class for the document sync service."""

    def __init__(self):
        # Supabase configuration
        self.supabase_url = os.getenv("SUPABASE_URL")
        self.supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.functions_url = os.getenv("SUPABASE_FUNCTIONS_URL") or f"{(self.supabase_url or '').rstrip('/')}/functions/v1"
        self.functions_timeout = float(os.getenv("FUNCTIONS_TIMEOUT_SECONDS", "120"))

        # Ingestion protocol configuration from environment variables
        self.upload_bucket = os.getenv("UPLOAD_BUCKET", "local-uploads")
        self.chunk_table = os.getenv("CHUNK_TABLE", "document_chunks")
        self.poll_max_attempts = int(os.getenv("POLL_MAX_ATTEMPTS", "60"))
        self.poll_interval_ms = int(os.getenv("POLL_INTERVAL_MS", "1000"))
        self.poll_grace_seconds = float(os.getenv("POLL_GRACE_SECONDS", "5"))
        self.build_lab_max_documents = int(os.getenv("BUILD_LAB_MAX_DOCUMENTS", "10"))

        # Gemini configuration for the server-side document store
        self.gemini_api_key = os.getenv("GEMINI_API_KEY")
        self.embedding_model = os.getenv("EMBEDDING_MODEL", "models/text-embedding-004")

        self._client: Optional[Client] = None

    def _get_supabase_client(self) -> Client:
        """Get or create Supabase client."""
        if self._client is None:
            self._client = create_client(self.supabase_url, self.supabase_key)
        return self._client

    def get_profiles(self) -> Dict[str, IngestionConfig]:
        """
        Build the ingestion profiles for every document workflow slot.

        Returns:
            Mapping of profile name to its ingestion configuration
        """
        shared = {
            "bucket": self.upload_bucket,
            "poll_table": self.chunk_table,
            "max_attempts": self.poll_max_attempts,
            "poll_interval_ms": self.poll_interval_ms,
            "grace_seconds": self.poll_grace_seconds,
        }
        return {
            "workshop": IngestionConfig(
                name="workshop",
                category="strategy",
                reference_table="workshop_documents",
                **shared,
            ),
            "hub": IngestionConfig(
                name="hub",
                category="strategy",
                reference_table="workshop_documents",
                replace_existing=True,
                **shared,
            ),
            "build_lab": IngestionConfig(
                name="build_lab",
                category="build_lab",
                path_prefix="build-lab/{user_id}",
                reference_table="build_lab_documents",
                reference_columns=["registration_id"],
                record_file_details=True,
                max_documents=self.build_lab_max_documents,
                **shared,
            ),
        }

    def get_profile(self, name: str) -> IngestionConfig:
        """Get a single ingestion profile by name."""
        profiles = self.get_profiles()
        if name not in profiles:
            raise KeyError(f"Unknown ingestion profile: {name}")
        return profiles[name]

    def get_functions_api_config(self) -> Dict[str, str]:
        """Get edge functions API configuration."""
        return {
            "base_url": self.functions_url
        }

config = Config()
