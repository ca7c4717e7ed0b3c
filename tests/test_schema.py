import pytest

from ocr_engine_cli.errors import DecodeError
from ocr_engine_cli.protocol.codec import RawResponse
from ocr_engine_cli.schema import OCRResult, parse_result

BOX = [[10, 20], [110, 20], [110, 40], [10, 40]]


def test_success_response_maps_to_blocks_in_order():
    raw = RawResponse(
        code=100,
        data=[
            {"text": "first", "box": BOX, "score": 0.91},
            {"text": "second", "box": BOX, "score": 0.87, "end": "\n"},
        ],
    )

    result = parse_result(raw)

    assert result.ok
    assert [block.text for block in result.blocks] == ["first", "second"]
    assert result.blocks[0].box[2] == (110, 40)
    assert result.text == "first\nsecond"
    assert result.message is None


def test_failure_response_carries_code_and_message():
    result = parse_result(RawResponse(code=101, data="No text found"))

    assert result == OCRResult(ok=False, code=101, message="No text found")
    assert result.to_dict() == {"ok": False, "code": 101, "blocks": [], "message": "No text found"}


def test_failure_with_structured_data_has_empty_message():
    result = parse_result(RawResponse(code=200, data={"path": "missing.png"}))

    assert not result.ok
    assert result.message == ""


def test_custom_success_code():
    assert parse_result(RawResponse(code=0, data=[]), success_code=0).ok
    assert not parse_result(RawResponse(code=100, data=[]), success_code=0).ok


@pytest.mark.parametrize(
    "data",
    [
        "oops",
        None,
        [{"text": "x", "box": BOX[:3], "score": 0.5}],
        [{"text": "x", "box": BOX, "score": 1.5}],
        [{"box": BOX, "score": 0.5}],
    ],
)
def test_malformed_success_payload_raises(data):
    with pytest.raises(DecodeError):
        parse_result(RawResponse(code=100, data=data))
