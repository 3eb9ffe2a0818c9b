"""
Feature-hashing embedding provider.

Deterministic, dependency-light embeddings that run anywhere numpy does:
each content token is hashed into a signed bucket and weighted by
sublinear term frequency.
"""
import hashlib
import math
from collections import Counter

import numpy as np

from .base import EmbeddingProvider
from ...utils.query_parser import tokenize


class HashingEmbeddingProvider(EmbeddingProvider):
    """
    Signed feature hashing over unigrams.

    Bucket and sign come from the token's sha256 digest, so vectors are
    identical across processes and platforms (unlike Python's hash()).
    """

    def __init__(self, dimension: int = 512):
        if dimension <= 0:
            raise ValueError("Embedding dimension must be positive")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def is_available(self) -> bool:
        return True

    def _bucket(self, token: str):
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        index = int.from_bytes(digest[:4], "little") % self._dimension
        sign = 1.0 if digest[4] & 1 else -1.0
        return index, sign

    def embed(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float64)
        for token, count in Counter(tokenize(text)).items():
            index, sign = self._bucket(token)
            vector[index] += sign * (1.0 + math.log(count))

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.astype(np.float32)
