import base64
import json

import pytest

from ocr_engine_cli.errors import DecodeError
from ocr_engine_cli.protocol.codec import RawResponse, Request, decode, encode

REQUEST_VARIANTS = [
    Request.from_path("C:/Users/me/Pictures/scan.png"),
    Request.from_path("/tmp/line\nbreak.png", rec_model="en"),
    Request.from_bytes(b"\x89PNG\r\n\x1a\n"),
    Request.from_bytes(b"", det_limit=960),
    Request.from_clipboard(),
]


@pytest.mark.parametrize("request_", REQUEST_VARIANTS)
def test_encoded_line_has_at_most_one_image_field(request_):
    line = encode(request_)
    payload = json.loads(line)

    assert "\n" not in line
    assert not ("image_path" in payload and "image_base64" in payload)
    if request_.image_path is not None:
        assert payload["image_path"] == request_.image_path
    elif request_.image_bytes is not None:
        assert base64.b64decode(payload["image_base64"]) == request_.image_bytes
    else:
        assert payload == {"clipboard": True}


def test_options_are_merged_at_top_level():
    payload = json.loads(encode(Request.from_path("a.png", config_path="models/config_japan.txt")))

    assert payload == {"image_path": "a.png", "config_path": "models/config_japan.txt"}


def test_non_ascii_paths_are_escaped():
    line = encode(Request.from_path("D:/图片/测试.png"))

    assert line.isascii()
    assert json.loads(line)["image_path"] == "D:/图片/测试.png"


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"image_path": "a.png", "image_bytes": b"x"},
        {"image_path": "a.png", "clipboard": True},
        {"image_path": "a.png", "options": {"image_base64": "eA=="}},
        {"image_bytes": b"x", "options": {"clipboard": True}},
    ],
)
def test_invalid_requests_are_rejected(kwargs):
    with pytest.raises(ValueError):
        Request(**kwargs)


def test_decode_success_line():
    line = '{"code":100,"data":[{"text":"hello","box":[[0,0],[1,0],[1,1],[0,1]],"score":0.99}]}'

    raw = decode(line)

    assert raw.code == 100
    assert raw.data[0]["text"] == "hello"


def test_decode_failure_line_keeps_message():
    assert decode('{"code":101,"data":"No text found"}') == RawResponse(101, "No text found")


def test_decode_missing_data_is_none():
    assert decode('{"code":100}').data is None


@pytest.mark.parametrize(
    "line",
    ["not json", "", "[1, 2]", '{"data": []}', '{"code": "100"}', '{"code": true}', '{"code": 1.5}'],
)
def test_decode_rejects_desynchronized_lines(line):
    with pytest.raises(DecodeError):
        decode(line)


def test_path_options_are_sent_as_strings(tmp_path):
    model = tmp_path / "models" / "config_chinese.txt"

    payload = json.loads(encode(Request.from_path("a.png", config_path=model)))

    assert payload["config_path"] == str(model)


def test_unserializable_option_is_a_value_error():
    with pytest.raises(ValueError, match="not JSON serializable"):
        encode(Request.from_clipboard(callback=object()))
