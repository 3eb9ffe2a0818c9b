"""
Base provider interfaces.

Embedding providers turn text into fixed-length vectors; generative
providers run the on-device language model. Both are local only.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import numpy as np

from ...domain.entities import Document


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding functions.

    The same instance embeds documents and queries, so both live in one
    vector space.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector returned by embed()."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Whether embed() can be called."""
        pass

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """
        Embed text into an L2-normalized float32 vector.

        Must be deterministic: the same text always yields the same bytes.

        Args:
            text: Text to embed

        Returns:
            Vector of shape (dimension,)
        """
        pass


class GenerativeProvider(ABC):
    """
    Abstract base class for on-device generative models.

    Responses use a line protocol so they can be parsed without trusting the
    model to emit valid structured data:

    analyze():          ANSWER: ... / CONFIDENCE: 0.0-1.0 / FILTER: key=value; ... or NONE
    extract_entities(): VENDOR: / AMOUNT: / DATE: YYYY-MM-DD / CATEGORY: (NONE when absent)
    """

    name: str = "generative"
    requires_model_file: bool = True

    @abstractmethod
    def load(self, model_path: Optional[Path]) -> None:
        """
        Load the model from local storage.

        Args:
            model_path: Path to the model file (ignored by providers without one)

        Raises:
            AnalysisUnavailable: If the model cannot be loaded
        """
        pass

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the model is ready for inference."""
        pass

    @abstractmethod
    def unload(self) -> None:
        """Release the model."""
        pass

    @abstractmethod
    def analyze(self, query: str, documents: List[Document]) -> str:
        """
        Reason about a query over candidate documents.

        Args:
            query: Sanitized user query
            documents: Bounded candidate set

        Returns:
            Raw model response in the analyze() line protocol
        """
        pass

    @abstractmethod
    def extract_entities(self, text: str) -> str:
        """
        Extract vendor, amount, date and category from document text.

        Args:
            text: Document text

        Returns:
            Raw model response in the extract_entities() line protocol
        """
        pass
