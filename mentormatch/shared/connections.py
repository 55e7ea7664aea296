# Connection handling for the vector index backend
# Owned by the service container; nothing here is a module-level singleton

from typing import Optional

from qdrant_client import QdrantClient

from .config import Settings
from .observability import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Manages the Qdrant client used by the vector index."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._qdrant_client: Optional[QdrantClient] = None

    def get_qdrant_client(self) -> QdrantClient:
        """Get or create Qdrant client"""
        if self._qdrant_client is None:
            logger.info(
                "Initializing Qdrant client",
                host=self.settings.qdrant_host,
                port=self.settings.qdrant_port,
            )
            self._qdrant_client = QdrantClient(
                host=self.settings.qdrant_host,
                port=self.settings.qdrant_port,
                api_key=self.settings.qdrant_api_key,
                timeout=30,
            )
            logger.info("Qdrant client initialized successfully")
        return self._qdrant_client

    def close_qdrant(self) -> None:
        """Close Qdrant client"""
        if self._qdrant_client:
            logger.info("Closing Qdrant client")
            self._qdrant_client.close()
            self._qdrant_client = None

    def close_all(self) -> None:
        """Close all connections gracefully"""
        self.close_qdrant()
        logger.info("All connections closed")
