from __future__ import annotations

import time
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .config import EngineConfig, load_config
from .errors import DecodeError
from .schema import OCRResult
from .session import EngineSession
from .utils.files import iter_image_paths
from .utils.logging import get_logger

logger = get_logger("batch")


@dataclass
class PageOutput:
    image: Path
    result: Optional[OCRResult]
    elapsed: float
    error: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"image": str(self.image), "elapsed": round(self.elapsed, 4)}
        if self.result is not None:
            payload["result"] = self.result.to_dict()
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class BatchOutput:
    source: Path
    pages: List[PageOutput] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(page.result.text for page in self.pages if page.result and page.result.ok)

    def to_dict(self) -> dict:
        return {"source": str(self.source), "pages": [page.to_dict() for page in self.pages]}


class BatchOCR:
    """Runs every image under a path through a single engine session.

    Engine-reported failures and malformed results are recorded per page;
    ``EngineDown``/``ProtocolDesync`` propagate since the session is unusable.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        session: Optional[EngineSession] = None,
    ) -> None:
        if session is None:
            session = EngineSession(config or load_config())
        self.session = session

    def __enter__(self) -> "BatchOCR":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def run(self, path: Path) -> BatchOutput:
        logger.info("Processing %s", path)
        output = BatchOutput(source=path)
        with closing(iter_image_paths(path)) as image_paths:
            for image_path in image_paths:
                output.pages.append(self._run_page(image_path))
        if not output.pages:
            raise FileNotFoundError(f"No images found for {path}")
        failed = sum(1 for page in output.pages if page.result is None or not page.result.ok)
        logger.info("OCR finished %d pages of %s (%d without text)", len(output.pages), path, failed)
        return output

    def run_batch(self, paths: Iterable[Path]) -> List[BatchOutput]:
        return [self.run(path) for path in paths]

    def close(self) -> None:
        self.session.close()

    def _run_page(self, image_path: Path) -> PageOutput:
        started = time.perf_counter()
        try:
            result = self.session.ocr_path(image_path.resolve())
        except DecodeError as exc:
            logger.warning("Unreadable OCR result for %s: %s", image_path, exc)
            return PageOutput(image_path, None, time.perf_counter() - started, error=str(exc))
        elapsed = time.perf_counter() - started
        if result.ok:
            logger.debug("OCR %s: %d blocks in %.3fs", image_path.name, len(result.blocks), elapsed)
        else:
            logger.warning("Engine reported code %d for %s: %s", result.code, image_path, result.message)
        return PageOutput(image_path, result, elapsed)
