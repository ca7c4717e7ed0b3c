"""Image discovery and logging helpers."""

from .files import iter_image_paths
from .logging import configure_logging, get_logger

__all__ = ["iter_image_paths", "configure_logging", "get_logger"]
