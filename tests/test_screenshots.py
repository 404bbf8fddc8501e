import base64
from pathlib import Path

import pytest

from transcript_studio.errors import InvalidScreenshotError
from transcript_studio.screenshots import ScreenshotService, decode_image

from .conftest import make_png_base64


@pytest.fixture
def screenshots(config, transcripts):
    return ScreenshotService(config, transcripts)


@pytest.mark.parametrize("data_url", [True, False])
def test_decode_accepts_plain_and_data_url(data_url):
    assert decode_image(make_png_base64(data_url=data_url)).startswith(b"\x89PNG")


@pytest.mark.parametrize("payload, message", [
    ("", "No image"),
    ("data:image/png;base64,!!!not base64!!!", "not valid base64"),
    (base64.b64encode(b"plain text, not a picture").decode(), "not an image"),
])
def test_decode_rejects_bad_payloads(payload, message):
    with pytest.raises(InvalidScreenshotError, match=message):
        decode_image(payload)


def test_capture_writes_file_and_marker(screenshots, transcripts, config):
    url = screenshots.capture("demo", make_png_base64(), 12.5)

    file_name = url.rsplit("/", 1)[1]
    assert url == f"/files/screenshots/{file_name}"
    assert file_name.startswith("demo-") and file_name.endswith(".png")
    assert (Path(config.screenshots_dir) / file_name).read_bytes().startswith(b"\x89PNG")

    document = transcripts.load("demo")
    assert document.markers[0].time == 12.5
    assert document.markers[0].file_name == file_name
    assert document.transcript[0].text == f"[Screenshot @ 12.50 s]({url})"


def test_invalid_capture_changes_nothing(screenshots, transcripts, config):
    with pytest.raises(InvalidScreenshotError):
        screenshots.capture("demo", "", 1.0)

    assert not transcripts.exists("demo")
    assert list(Path(config.screenshots_dir).iterdir()) == []
