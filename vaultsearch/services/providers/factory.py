"""
Provider Factory.

Selects the embedding and generative providers from configuration.
"""
from typing import Optional

from ...core.config import EMBEDDING_DIMENSION, GENERATIVE_PROVIDER
from ...core.logging_config import get_logger
from .base import EmbeddingProvider, GenerativeProvider
from .hashing_provider import HashingEmbeddingProvider
from .llama_cpp_provider import LlamaCppProvider
from .mock_provider import MockGenerativeProvider

logger = get_logger(__name__)


class ProviderFactory:
    """
    Factory for creating provider instances.
    Unknown generative provider names fall back to MockGenerativeProvider.
    """

    @staticmethod
    def create_embedding(dimension: Optional[int] = None) -> EmbeddingProvider:
        dimension = dimension or EMBEDDING_DIMENSION
        logger.info(f"Using hashing embedding provider (dimension={dimension})")
        return HashingEmbeddingProvider(dimension=dimension)

    @staticmethod
    def create_generative(provider_type: Optional[str] = None) -> GenerativeProvider:
        """
        Get the generative provider based on configuration.

        Returns:
            GenerativeProvider instance (LlamaCppProvider or MockGenerativeProvider)
        """
        provider_type = (provider_type or GENERATIVE_PROVIDER).lower()

        if provider_type == "llama_cpp":
            logger.info("Using llama.cpp generative provider")
            return LlamaCppProvider()
        elif provider_type == "mock":
            logger.info("Using MockGenerativeProvider (configured)")
            return MockGenerativeProvider()
        else:
            logger.warning(f"⚠️  Unknown generative provider '{provider_type}', using MockGenerativeProvider")
            return MockGenerativeProvider()
