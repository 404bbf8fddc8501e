"""
Exception hierarchy for the transcript studio.

Callers above the transcription adapter only ever see TranscriptionError;
the HTTP layer maps the not-found family to 404 and configuration or
input problems to 400.
"""

from typing import Optional


class StudioError(RuntimeError):
    pass


class AssetNotFoundError(StudioError):
    def __init__(self, asset_id: str):
        super().__init__(f"Video not found: {asset_id}")
        self.asset_id = asset_id


class TranscriptNotFoundError(StudioError):
    def __init__(self, asset_id: str):
        super().__init__(f"Text not found: {asset_id}")
        self.asset_id = asset_id


class AssetIdCollisionError(StudioError):
    def __init__(self, asset_id: str, file_names):
        names = ", ".join(sorted(file_names))
        super().__init__(f"Video files share the id '{asset_id}': {names}. Rename one of them.")
        self.asset_id = asset_id
        self.file_names = sorted(file_names)


class ExternalToolError(StudioError):
    """A child process exited non-zero, timed out or produced no usable output."""

    def __init__(self, message: str, stderr: Optional[str] = None):
        super().__init__(message)
        self.stderr = stderr


class AudioExtractionError(ExternalToolError):
    pass


class CloudNotConfiguredError(StudioError):
    def __init__(self, feature: str = "cloud features"):
        super().__init__(f"OPENAI_API_KEY is not set; {feature} unavailable")
        self.feature = feature


class TranscriptionError(StudioError):
    pass


class InvalidScreenshotError(StudioError, ValueError):
    pass
