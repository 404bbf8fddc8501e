import os
import ffmpeg
import logging
import subprocess

from .util import communicate_with_deadline
from ..errors import AudioExtractionError

logger = logging.getLogger("transcript_studio")


def build_extraction(video_path: str, audio_path: str):
    """ffmpeg -y -i <video> -vn -acodec libmp3lame <audio>"""
    return (
        ffmpeg
        .input(video_path)
        .output(audio_path, vn=None, acodec='libmp3lame')
        .overwrite_output()
    )


def extract_audio(video_path: str, audio_path: str, timeout: float = 3600.0) -> str:
    """
    Strip the video stream and encode the audio track as MP3.

    A partial output from a failed run is left in place; the next
    attempt overwrites it.

    Returns:
        Path of the written audio file
    """
    os.makedirs(os.path.dirname(audio_path) or ".", exist_ok=True)
    stream = build_extraction(video_path, audio_path)

    logger.info(f"Extracting audio: {video_path} -> {audio_path}")

    try:
        process = stream.run_async(quiet=True)
    except OSError as e:
        raise AudioExtractionError(f"ffmpeg could not be started: {e}") from e

    try:
        returncode, _stdout, stderr = communicate_with_deadline(process, timeout)
    except subprocess.TimeoutExpired:
        error_msg = f"ffmpeg timed out after {timeout:.0f}s extracting audio from {video_path}"
        logger.error(error_msg)
        raise AudioExtractionError(error_msg)

    if returncode != 0:
        stderr = stderr.strip()
        logger.error(f"ffmpeg failed with code {returncode} for {video_path}")
        raise AudioExtractionError(stderr or f"ffmpeg failed with code {returncode}", stderr=stderr)

    if not os.path.exists(audio_path):
        raise AudioExtractionError(f"ffmpeg reported success, but no audio was written: {audio_path}")

    logger.info(f"Audio extracted: {audio_path}")
    return audio_path
