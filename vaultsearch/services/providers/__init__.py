"""
Embedding and generative providers.
"""
from .base import EmbeddingProvider, GenerativeProvider
from .factory import ProviderFactory
from .hashing_provider import HashingEmbeddingProvider
from .llama_cpp_provider import LlamaCppProvider
from .mock_provider import MockGenerativeProvider

__all__ = [
    "EmbeddingProvider",
    "GenerativeProvider",
    "ProviderFactory",
    "HashingEmbeddingProvider",
    "LlamaCppProvider",
    "MockGenerativeProvider",
]
