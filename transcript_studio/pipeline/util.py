import os
import math
import subprocess
from typing import Tuple


def asset_id_for(file_name: str) -> str:
    """Asset id of a video file: its base name without extension"""
    return os.path.splitext(os.path.basename(file_name))[0]


def audio_name_for(asset_id: str) -> str:
    return f"{asset_id}.mp3"


def transcript_name_for(asset_id: str) -> str:
    return f"{asset_id}.json"


def transcript_document_name(asset_id: str) -> str:
    """Store-relative name of an asset's transcript document"""
    return f"text/{transcript_name_for(asset_id)}"


def format_timecode(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm (SubRip)"""
    ms_total = int(round(max(seconds, 0.0) * 1000))
    hours, ms_total = divmod(ms_total, 3_600_000)
    minutes, ms_total = divmod(ms_total, 60_000)
    secs, millis = divmod(ms_total, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def to_number(value) -> float:
    """Numeric coercion; malformed and non-finite values become 0.0"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def communicate_with_deadline(process: subprocess.Popen, timeout: float) -> Tuple[int, str, str]:
    """
    Wait for a child process, killing it when the deadline passes.

    Returns:
        Tuple of (returncode, stdout, stderr)

    Raises:
        subprocess.TimeoutExpired after the child has been killed and reaped
    """
    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.communicate()
        raise
    return process.returncode, _decode(stdout), _decode(stderr)


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    return data
