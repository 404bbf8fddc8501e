"""
Configuration management for the transcript studio.

Centralizes all configuration loading from environment variables
and provides type-safe access to configuration values.
"""

import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class StudioConfig:
    """Configuration for the transcript studio"""

    # Storage settings
    DATA_DIR: str = "./data"
    STORAGE_TYPE: str = "local"  # local, s3
    STORAGE_CONFIG: Dict[str, Any] = field(default_factory=dict)

    # Local transcription engine
    WHISPER_CMD: str = "whisper"
    WHISPER_MODEL: str = "small"

    # Cloud provider
    OPENAI_API_KEY: Optional[str] = None
    CLOUD_TRANSCRIBE_MODEL: str = "gpt-4o-mini-transcribe"
    REFINE_MODEL: str = "gpt-4o-mini"

    # External tools
    TOOL_TIMEOUT_SEC: float = 3600.0

    # Per-asset serialization of read-modify-write cycles
    SERIALIZE_ASSET_WRITES: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # HTTP server
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 3000

    @classmethod
    def from_env(cls) -> 'StudioConfig':
        """Load configuration from environment variables"""
        config = cls()

        # Storage configuration
        config.DATA_DIR = os.getenv("DATA_DIR", "./data")
        config.STORAGE_TYPE = os.getenv("STORAGE_TYPE", "local")
        config.STORAGE_CONFIG = cls._parse_storage_config()

        # Transcription engines
        config.WHISPER_CMD = os.getenv("WHISPER_CMD", "whisper")
        config.WHISPER_MODEL = os.getenv("WHISPER_MODEL", "small")
        config.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or None
        config.CLOUD_TRANSCRIBE_MODEL = os.getenv("CLOUD_TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")
        config.REFINE_MODEL = os.getenv("REFINE_MODEL", "gpt-4o-mini")

        config.TOOL_TIMEOUT_SEC = float(os.getenv("TOOL_TIMEOUT_SEC", "3600"))
        config.SERIALIZE_ASSET_WRITES = os.getenv("SERIALIZE_ASSET_WRITES", "true").lower() == "true"

        # Logging
        config.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # HTTP server
        config.HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
        config.HTTP_PORT = int(os.getenv("HTTP_PORT", "3000"))

        return config

    @classmethod
    def _parse_storage_config(cls) -> Dict[str, Any]:
        """Parse storage specific configuration"""
        storage_type = os.getenv("STORAGE_TYPE", "local")

        if storage_type == "s3":
            return {
                "bucket": os.getenv("AWS_S3_BUCKET"),
                "region": os.getenv("AWS_REGION", "us-east-1"),
                "prefix": os.getenv("S3_PREFIX", "transcript-studio/")
            }
        else:
            return {}

    def validate(self) -> None:
        """Validate configuration and raise errors for missing required values"""
        required_vars = []

        if self.STORAGE_TYPE not in ("local", "s3"):
            raise ValueError(f"Unsupported storage type: {self.STORAGE_TYPE}")

        if self.STORAGE_TYPE == "s3" and not self.STORAGE_CONFIG.get("bucket"):
            required_vars.append("AWS_S3_BUCKET")

        if required_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(required_vars)}")

        if self.TOOL_TIMEOUT_SEC <= 0:
            raise ValueError("TOOL_TIMEOUT_SEC must be positive")

    @property
    def cloud_enabled(self) -> bool:
        """Whether cloud transcription and refinement can be used"""
        return bool(self.OPENAI_API_KEY)

    # Directory layout under DATA_DIR

    @property
    def videos_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "videos")

    @property
    def audio_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "audio")

    @property
    def text_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "text")

    @property
    def screenshots_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "screenshots")

    @property
    def meta_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "meta")

    @property
    def whisper_output_dir(self) -> str:
        return os.path.join(self.meta_dir, "whisper")

    def ensure_dirs(self) -> None:
        """Create every data directory the studio writes to"""
        for path in (self.videos_dir, self.audio_dir, self.text_dir,
                     self.screenshots_dir, self.meta_dir, self.whisper_output_dir):
            os.makedirs(path, exist_ok=True)
