"""
Model Downloader.

Fetches missing model assets from the Hugging Face Hub into a local models
directory, reporting progress weighted by approximate file size.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from huggingface_hub import hf_hub_download

from .assets import ModelAssetPaths
from .errors import AssetMissingError

logger = logging.getLogger(__name__)

DEFAULT_REPO_ID = "Supertone/supertonic"

# Approximate size in MB, used only to weight progress
REQUIRED_FILES: dict[str, float] = {
    "onnx/duration_predictor.onnx": 1.6,
    "onnx/text_encoder.onnx": 28.0,
    "onnx/vector_estimator.onnx": 132.5,
    "onnx/vocoder.onnx": 101.4,
    "onnx/tts.json": 0.01,
    "onnx/unicode_indexer.json": 0.3,
    "voice_styles/M1.json": 0.4,
    "voice_styles/M2.json": 0.4,
    "voice_styles/F1.json": 0.4,
    "voice_styles/F2.json": 0.4,
}


@dataclass(frozen=True)
class DownloadProgress:
    """Progress report emitted after each downloaded file."""

    current_file: int
    total_files: int
    file_name: str
    percent_complete: int


ProgressCallback = Callable[[DownloadProgress], None]


class ModelDownloader:
    """Downloads the Supertonic model files that are not present locally."""

    def __init__(
        self,
        models_dir: str | Path,
        repo_id: str = DEFAULT_REPO_ID,
        progress_callback: ProgressCallback | None = None,
        max_retries: int = 2,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.models_dir = Path(models_dir).expanduser()
        self.repo_id = repo_id
        self.progress_callback = progress_callback
        self.max_retries = max_retries
        self._paths = ModelAssetPaths(self.models_dir)

    def missing_files(self) -> list[str]:
        return self._paths.missing_files()

    def are_models_present(self) -> bool:
        return not self.missing_files()

    def ensure_models_downloaded(self) -> Path:
        """Download every missing file.

        Returns:
            The models directory

        Raises:
            AssetMissingError: If a file still cannot be fetched after retries
        """
        missing = self.missing_files()
        if not missing:
            logger.info(f"Models already present in {self.models_dir}")
            return self.models_dir

        logger.info(f"Downloading {len(missing)} model file(s) from {self.repo_id}")
        weights = [REQUIRED_FILES.get(f, 1.0) for f in missing]
        total_size = sum(weights)
        downloaded_size = 0.0

        for index, (relative_path, weight) in enumerate(zip(missing, weights), start=1):
            file_name = Path(relative_path).name
            logger.info(f"[{index}/{len(missing)}] Downloading {file_name}...")
            self._download_with_retry(relative_path)

            downloaded_size += weight
            if self.progress_callback is not None:
                self.progress_callback(
                    DownloadProgress(
                        current_file=index,
                        total_files=len(missing),
                        file_name=file_name,
                        percent_complete=int(downloaded_size / total_size * 100),
                    )
                )

        still_missing = self.missing_files()
        if still_missing:
            raise AssetMissingError(
                f"Model files missing after download: {', '.join(still_missing)}",
                {"missing": still_missing, "models_dir": str(self.models_dir)},
            )

        logger.info("All models downloaded successfully")
        return self.models_dir

    def _download_with_retry(self, relative_path: str) -> None:
        self.models_dir.mkdir(parents=True, exist_ok=True)
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                hf_hub_download(
                    repo_id=self.repo_id,
                    filename=relative_path,
                    local_dir=str(self.models_dir),
                )
                return
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Download of {relative_path} failed "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}): {e}"
                )

        raise AssetMissingError(
            f"Failed to download {relative_path} from {self.repo_id}",
            {"file": relative_path, "attempts": self.max_retries + 1},
        ) from last_error
