"""
Generative Analysis Engine.

Wraps the on-device generative provider with readiness tracking, a bounded
inference timeout, and parsing of the model's line protocols. The model is
loaded from the artifact store only; installing it is a separate,
explicit operation.
"""
import asyncio
from pathlib import Path
from typing import Callable, List, Optional

from ..core.config import ANALYSIS_TIMEOUT_SECONDS, STRUCTURED_RESULT_LIMIT
from ..core.exceptions import AnalysisUnavailable
from ..domain.entities import Document, DocumentEntity
from ..domain.results import AnalysisResult
from ..utils.model_output import parse_analysis_response, parse_entity_response
from .model_store import ModelArtifactStore
from .providers.base import GenerativeProvider
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class AnalysisEngine:
    """
    Optional generative reasoning for complex queries and entity extraction.

    Every model call goes through _run(), which raises AnalysisUnavailable
    when the model is not loaded, the call times out, or the provider fails.
    """

    def __init__(
        self,
        provider: GenerativeProvider,
        store: ModelArtifactStore,
        timeout_seconds: float = ANALYSIS_TIMEOUT_SECONDS,
        result_limit: int = STRUCTURED_RESULT_LIMIT
    ):
        self._provider = provider
        self._store = store
        self.timeout_seconds = timeout_seconds
        self.result_limit = result_limit

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def store(self) -> ModelArtifactStore:
        return self._store

    def is_ready(self) -> bool:
        return self._provider.is_loaded()

    async def load(self) -> bool:
        """
        Load the model if its artifact is present.

        Returns:
            True if the engine is ready afterwards
        """
        if self.is_ready():
            return True
        if self._provider.requires_model_file and not self._store.exists():
            logger.info(f"No model installed at {self._store.path}; generative analysis disabled")
            return False

        model_path = self._store.path if self._provider.requires_model_file else None
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._provider.load, model_path)
        except AnalysisUnavailable as e:
            logger.warning(f"Generative model unavailable: {e}")
            return False
        return self.is_ready()

    def unload(self) -> None:
        self._provider.unload()

    async def _run(self, fn: Callable[..., str], *args) -> str:
        if not self.is_ready():
            raise AnalysisUnavailable("Generative model is not loaded")

        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, fn, *args),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Generative model timed out after {self.timeout_seconds}s")
            raise AnalysisUnavailable(f"Inference timed out after {self.timeout_seconds}s") from e
        except AnalysisUnavailable:
            raise
        except Exception as e:
            logger.error(f"Generative model call failed: {e}", exc_info=True)
            raise AnalysisUnavailable(f"Inference failed: {e}") from e

    async def analyze(self, query: str, candidates: List[Document]) -> AnalysisResult:
        """
        Reason over a bounded candidate set.

        Args:
            query: Sanitized query (generation must be allowed for it)
            candidates: Documents from the semantic pre-filter

        Returns:
            AnalysisResult with free text, confidence and an optional filter

        Raises:
            AnalysisUnavailable: If the model is not ready, times out, fails,
                or returns nothing usable
        """
        response = await self._run(self._provider.analyze, query, candidates)
        result = parse_analysis_response(response, self.result_limit)
        if result is None:
            raise AnalysisUnavailable("Model returned no usable analysis")
        return result

    async def extract_entities(self, text: str) -> DocumentEntity:
        """
        Ask the model for vendor, amount, date and category.

        Raises:
            AnalysisUnavailable: If the model is not ready, times out or fails
        """
        response = await self._run(self._provider.extract_entities, text)
        return parse_entity_response(response)

    async def install_model(
        self,
        source: Path,
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> bool:
        """
        Install a model file from local storage and (re)load it.

        Returns:
            True if the engine is ready afterwards

        Raises:
            ModelInstallError: If the file cannot be installed
        """
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._store.install, Path(source), on_progress)
        self._provider.unload()
        return await self.load()
