"""
Gemini embedding service for chunk indexing.
"""

import google.generativeai as genai
from typing import List, Optional
from docsync.core.config import config
import logging

logger = logging.getLogger(__name__)

class GeminiEmbedder:
    """Wrapper for Google Gemini embeddings."""

    def __init__(self, model_name: Optional[str] = None, api_key: Optional[str] = None):
        """
        Initialize Gemini embeddings.

        Args:
            model_name: Embedding model to use (defaults to config)
            api_key: API key (defaults to config)
        """
        self.model_name = model_name or config.embedding_model
        self.api_key = api_key or config.gemini_api_key

        if not self.api_key:
            raise ValueError("Server configuration error: Missing API key")

        genai.configure(api_key=self.api_key)

        logger.info(f"✅ Gemini embedder initialized: {self.model_name}")

    def embed_text(self, text: str) -> Optional[List[float]]:
        """
        Embed one chunk of text.

        Args:
            text: Text to embed

        Returns:
            Embedding values, None if the API call failed
        """
        try:
            result = genai.embed_content(model=self.model_name, content=text)
            embedding = result.get("embedding") if isinstance(result, dict) else getattr(result, "embedding", None)
            if not embedding:
                logger.warning("Empty embedding from Gemini")
                return None
            return list(embedding)

        except Exception as e:
            logger.error(f"Error getting Gemini embedding: {e}")
            return None
