"""
Model artifact store - the local file holding the generative model.

Installation copies a model file from local media into the model
directory. Nothing here touches the network.
"""
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Callable, Optional

from ..core.config import MODEL_DIR, MODEL_FILENAME
from ..core.exceptions import ModelInstallError
from ..utils.checksum import calculate_file_checksum
from ..core.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 4 * 1024 * 1024

InstallProgress = Callable[[int, int], None]


class ModelArtifactStore:
    """
    Owns the installed model file.

    install() is idempotent: installing a file whose digest matches the
    installed one leaves it untouched and still reports completion.
    """

    def __init__(self, model_dir: Optional[Path] = None, filename: str = MODEL_FILENAME):
        self.model_dir = Path(model_dir or MODEL_DIR)
        self.filename = filename
        self._install_lock = Lock()

    @property
    def path(self) -> Path:
        return self.model_dir / self.filename

    def exists(self) -> bool:
        return self.path.is_file()

    def checksum(self) -> Optional[str]:
        return calculate_file_checksum(self.path) if self.exists() else None

    def install(self, source: Path, on_progress: Optional[InstallProgress] = None) -> Path:
        """
        Copy a model file into the store.

        Args:
            source: Local path of the model file
            on_progress: Called with (copied_bytes, total_bytes)

        Returns:
            Path of the installed model

        Raises:
            ModelInstallError: If the source is missing, the copy fails, or
                another install is running
        """
        source = Path(source)
        if not source.is_file():
            raise ModelInstallError(f"Model source not found: {source}", source=str(source))
        if not self._install_lock.acquire(blocking=False):
            raise ModelInstallError("Another model install is in progress", source=str(source))

        try:
            total = source.stat().st_size
            if self.exists() and calculate_file_checksum(source) == self.checksum():
                logger.info(f"Model already installed at {self.path}, skipping copy")
                if on_progress:
                    on_progress(total, total)
                return self.path

            self.model_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.model_dir, prefix=f".{self.filename}.")
            copied = 0
            try:
                with os.fdopen(fd, "wb") as dst, open(source, "rb") as src:
                    for chunk in iter(lambda: src.read(CHUNK_SIZE), b""):
                        dst.write(chunk)
                        copied += len(chunk)
                        if on_progress:
                            on_progress(copied, total)
                os.replace(tmp_name, self.path)
            except OSError as e:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise ModelInstallError(f"Failed to install model: {e}", source=str(source)) from e

            logger.info(f"Model installed at {self.path} ({total} bytes)")
            return self.path
        finally:
            self._install_lock.release()

    def remove(self) -> bool:
        if not self.exists():
            return False
        self.path.unlink()
        logger.info(f"Model removed from {self.path}")
        return True
