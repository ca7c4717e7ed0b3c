from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Iterator

try:
    from pdf2image import convert_from_path  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    convert_from_path = None  # type: ignore

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp"})


def render_pdf_pages(pdf_path: Path, dpi: int = 200) -> Iterator[Path]:
    """
    Render each PDF page to a PNG the engine can read from disk.

    Pages live in a temporary directory that is removed once the generator
    is exhausted or closed, so consume each page before advancing.
    """
    if convert_from_path is None:
        raise ImportError(
            "pdf2image is not installed. Install the 'pdf' extra or convert the PDF manually."
        )

    pdf_path = pdf_path.expanduser().resolve()
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    with tempfile.TemporaryDirectory(prefix="ocr_engine_") as tmp_dir:
        for idx, page in enumerate(convert_from_path(str(pdf_path), dpi=dpi, fmt="png")):
            out_path = Path(tmp_dir) / f"{pdf_path.stem}_page{idx:03d}.png"
            page.save(out_path, "PNG")
            yield out_path


def iter_image_paths(path: Path) -> Iterator[Path]:
    """
    Yield image files for a directory, a single image, or the pages of a PDF.
    """
    path = path.expanduser()
    if path.is_dir():
        for file_path in sorted(path.iterdir()):
            if file_path.suffix.lower() in IMAGE_SUFFIXES:
                yield file_path
    elif path.suffix.lower() == ".pdf":
        yield from render_pdf_pages(path)
    else:
        yield path
