import io
import os
import re
import time
import base64
import binascii
import logging

from PIL import Image, UnidentifiedImageError

from .config import StudioConfig
from .errors import InvalidScreenshotError
from .transcript import TranscriptRepository

logger = logging.getLogger("transcript_studio")

SCREENSHOT_URL_PREFIX = "/files/screenshots/"

_DATA_URL_RE = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


def decode_image(image_base64: str) -> bytes:
    """Decode a base64 (optionally data-URL) image and check that it is one"""
    if not image_base64:
        raise InvalidScreenshotError("No image")

    try:
        data = base64.b64decode(_DATA_URL_RE.sub("", image_base64.strip()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidScreenshotError(f"Image is not valid base64: {e}") from e

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidScreenshotError(f"Payload is not an image: {e}") from e

    return data


class ScreenshotService:
    """Stores captured frames and pins them into the transcript as markers"""

    def __init__(self, config: StudioConfig, transcripts: TranscriptRepository):
        self.config = config
        self.transcripts = transcripts

    def capture(self, asset_id: str, image_base64: str, time_sec: float) -> str:
        """
        Save a screenshot and add a marker at the given playback time.

        Returns:
            URL under which the screenshot is served
        """
        data = decode_image(image_base64)

        file_name = f"{asset_id}-{int(time.time() * 1000)}.png"
        os.makedirs(self.config.screenshots_dir, exist_ok=True)
        with open(os.path.join(self.config.screenshots_dir, file_name), 'wb') as f:
            f.write(data)

        url = f"{SCREENSHOT_URL_PREFIX}{file_name}"
        self.transcripts.add_marker(asset_id, float(time_sec), file_name, url)

        logger.info(f"Screenshot {file_name} stored for {asset_id}")
        return url
