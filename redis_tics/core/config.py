"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_OPT: str | None = None
ONE_MIB = 1024 * 1024

# Only load .env if it exists (for local development)
_env_path = Path(".env")
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)
    ENV_FILE_OPT = str(_env_path)


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "redis-tics"


class Settings(BaseSettings):
    """Application configuration.

    Every field can be overridden with a ``REDIS_TICS_``-prefixed environment
    variable, e.g. ``REDIS_TICS_MONITOR_READ_TIMEOUT=0.5``.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_TICS_",
        env_file=ENV_FILE_OPT,
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Application
    app_name: str = "redis-tics"
    log_level: str = Field(default="INFO", description="Logging level")
    config_dir: Path = Field(
        default_factory=_default_config_dir,
        description="Directory holding servers.json and the local encryption key",
    )
    master_key: Optional[SecretStr] = Field(
        default=None,
        description="Base64 32-byte master key. When unset a key file in config_dir is used.",
    )

    # Transport
    socket_timeout: float = Field(default=10.0, description="Socket read/write timeout (seconds)")
    socket_connect_timeout: float = Field(default=5.0, description="Connect timeout (seconds)")
    protocol: int = Field(default=2, description="RESP protocol version (2 or 3)")

    # Live monitor stream
    monitor_read_timeout: float = Field(
        default=1.0,
        description="Per-read timeout on the trace connection; bounds how long a stop takes",
    )
    monitor_retry_delay: float = Field(
        default=0.1, description="Pause after a failed trace read before retrying (seconds)"
    )

    # Database analyzer
    analysis_default_sample_size: int = Field(default=1000, description="Keys sampled by default")
    scan_batch_size: int = Field(default=100, description="COUNT hint for SCAN batches")
    analysis_top_n: int = Field(default=20, description="Size of top-keys and namespace lists")
    large_key_threshold_bytes: int = Field(
        default=ONE_MIB, description="Largest sampled key above this triggers a recommendation"
    )

    # Client analyzer
    client_idle_threshold_seconds: int = Field(
        default=300, description="Clients idle longer than this are reported as idle"
    )
    client_buffer_threshold_bytes: int = Field(
        default=ONE_MIB, description="Query/output buffer size that marks a high-buffer client"
    )
    mostly_idle_ratio: float = Field(
        default=0.95, description="idle/age ratio above which a client is flagged mostly idle"
    )
    high_idle_min_clients: int = Field(
        default=5, description="High idle rate is only reported for more clients than this"
    )
    client_display_limit: int = Field(
        default=10, description="Addresses listed per command group or suspicious pattern"
    )

    # Operation impact advisor
    keys_warning_threshold: int = Field(default=1000, description="KEYS escalates to warning")
    keys_critical_threshold: int = Field(default=10000, description="KEYS escalates to critical")

    # Key browser
    scan_detail_limit: int = Field(default=100, description="Keys enriched per scan_keys page")
    collection_preview_limit: int = Field(
        default=1000, description="Elements fetched when viewing a list or sorted set"
    )
    stream_preview_limit: int = Field(default=100, description="Entries fetched for a stream")
    bulk_delete_error_limit: int = Field(
        default=10, description="Error messages kept in a bulk delete result"
    )

    @property
    def servers_file(self) -> Path:
        return self.config_dir / "servers.json"

    @property
    def key_file(self) -> Path:
        return self.config_dir / ".key"


# Global settings instance
settings = Settings()
