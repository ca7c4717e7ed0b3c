from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import SUCCESS_CODE
from .errors import DecodeError
from .protocol.codec import RawResponse

Point = Tuple[int, int]


class TextBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    box: List[Point] = Field(..., description="Quadrilateral, four (x, y) corners")
    score: float = Field(..., ge=0.0, le=1.0)

    @field_validator("box")
    @classmethod
    def _four_corners(cls, value: List[Point]) -> List[Point]:
        if len(value) != 4:
            raise ValueError(f"box must have 4 points, got {len(value)}")
        return value


class OCRResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    code: int
    blocks: List[TextBlock] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def text(self) -> str:
        """Recognized lines joined in engine order."""
        return "\n".join(block.text for block in self.blocks)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


def parse_result(raw: RawResponse, success_code: int = SUCCESS_CODE) -> OCRResult:
    """
    Map a raw engine response to an ``OCRResult``.

    Engine-reported failures (no text, unreadable image, ...) become
    ``ok=False`` results; a success code with a malformed payload raises
    ``DecodeError``.
    """
    if raw.code != success_code:
        message = raw.data if isinstance(raw.data, str) else ""
        return OCRResult(ok=False, code=raw.code, message=message)
    if not isinstance(raw.data, list):
        raise DecodeError(f"Success response carries {type(raw.data).__name__}, expected a list")
    try:
        blocks = [TextBlock.model_validate(entry) for entry in raw.data]
    except ValidationError as exc:
        raise DecodeError(f"Malformed recognition entry: {exc}") from exc
    return OCRResult(ok=True, code=raw.code, blocks=blocks)
