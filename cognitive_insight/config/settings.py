from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    driver: str = Field(
        default="sqlite",
        description="Either 'sqlite' (local file) or 'postgresql' (asyncpg).",
    )
    url_override: Optional[str] = Field(default=None, validation_alias="DB_URL")
    sqlite_path: str = "./cognitive_insight.db"
    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "cognitive_insight"
    serverless: bool = Field(
        default=False,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.url_override:
            return self.url_override
        if self.driver == "postgresql":
            username = quote_plus(self.username)
            password = quote_plus(self.password.get_secret_value())
            return (
                "postgresql+asyncpg://"
                f"{username}:{password}"
                f"@{self.host}:{self.port}/{self.database}"
            )
        return f"sqlite+aiosqlite:///{self.sqlite_path}"

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class AwsConfig(BaseSettings):
    """Shared AWS credentials used by Polly, Transcribe and Bedrock."""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "ap-northeast-2"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: Optional[str] = None
    voice_id: str = "Seoyeon"
    engine: str = "neural"
    sample_rate: int = 16000
    speaking_rate: float = Field(default=1.0, ge=0.6, le=1.4)

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe streaming configuration."""

    region: Optional[str] = None
    language_code: str = "ko-KR"
    sample_rate: int = 16000
    chunk_size: int = Field(default=3200, ge=320)

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: Optional[str] = Field(
        default=None,
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-micro-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=200,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.0,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )
    enabled: bool = Field(
        default=True,
        validation_alias="BEDROCK_ENABLED",
    )
    timeout_seconds: float = Field(
        default=20.0,
        validation_alias="BEDROCK_TIMEOUT_SECONDS",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SpeechConfig(BaseSettings):
    """Speech capability tuning: recognition acceptance and end-of-speech detection."""

    confidence_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    end_silence_seconds: float = Field(default=1.2, gt=0)
    no_speech_seconds: float = Field(default=6.0, gt=0)
    silence_rms: float = Field(default=500.0, ge=0)
    cue_frequency_hz: float = 880.0
    cue_duration_seconds: float = Field(default=0.1, gt=0)
    cue_volume: float = Field(default=0.1, ge=0.0, le=1.0)
    flush_delay_seconds: float = Field(default=0.05, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="SPEECH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SessionConfig(BaseSettings):
    """Interview session policy."""

    max_attempts: int = Field(default=3, ge=1)
    answer_timeout_seconds: float = Field(default=10.0, gt=0)
    total_questions: int = Field(default=10, ge=1)
    post_prompt_pause_seconds: float = Field(default=0.5, ge=0)
    shuffle_questions: bool = False
    shuffle_seed: Optional[int] = None
    repeat_keyword: str = "다시"
    locale: str = "ko-KR"
    question_file: Optional[str] = None
    max_finished_sessions: int = Field(default=50, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Cognitive Insight"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    session_log_file: str = "logs/session.log"
    transcript_log_file: str = "logs/transcripts.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # AWS
    aws: AwsConfig = Field(default_factory=AwsConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # Transcribe
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Speech capability
    speech: SpeechConfig = Field(default_factory=SpeechConfig)

    # Session policy
    session: SessionConfig = Field(default_factory=SessionConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
