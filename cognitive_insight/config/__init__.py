"""Runtime configuration loaded from the environment."""

from .settings import (
    AwsConfig,
    BedrockConfig,
    DatabaseConfig,
    PollyConfig,
    SessionConfig,
    Settings,
    SpeechConfig,
    TranscribeConfig,
    settings,
)

__all__ = [
    "AwsConfig",
    "BedrockConfig",
    "DatabaseConfig",
    "PollyConfig",
    "SessionConfig",
    "Settings",
    "SpeechConfig",
    "TranscribeConfig",
    "settings",
]
