"""Runtime settings for the dispatch service.

All values can be overridden with ``FIFI_``-prefixed environment variables
or a ``.env`` file::

    FIFI_TEXT_UPDATE_FULL=false      # dynamic diff/full policy
    FIFI_TEXT_UPDATE_INTERVAL=5000
    FIFI_RECEPTOR_URL=http://receptor-controller:9090

Fields
──────
text_update_full      : Static full-update default; ``False`` enables the
                        fleet-size driven (dynamic) policy
text_update_interval  : Fixed status polling interval in milliseconds
inventory_url         : Base URL of the inventory service
sources_url           : Base URL of the sources service
receptor_url          : Base URL of the receptor controller
http_timeout          : Timeout (seconds) for all outgoing HTTP calls
inventory_page_size   : Max ids per inventory batch request
database_url          : SQLAlchemy URL of the run store
log_level             : Structlog log level
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fifi.dispatch.models import DispatchConfig


class FifiSettings(BaseSettings):
    """Settings for the fifi dispatch core.

    Order of precedence (highest → lowest):
        1. Environment variables (``FIFI_RECEPTOR_URL``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="FIFI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Dispatch policy ──────────────────────────────────────────
    text_update_full: bool = Field(default=True, description="Static full-update default")
    text_update_interval: int = Field(default=5000, description="Polling interval (ms)")

    # ── Remote services ──────────────────────────────────────────
    inventory_url: str = Field(default="http://localhost:8081", description="Inventory base URL")
    sources_url: str = Field(default="http://localhost:8082", description="Sources base URL")
    receptor_url: str = Field(default="http://localhost:9090", description="Receptor controller base URL")
    http_timeout: float = Field(default=10.0, description="Outgoing HTTP timeout (s)")
    inventory_page_size: int = Field(default=50, description="Ids per inventory batch call")

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///fifi.db", description="Run store URL")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"

    @field_validator("text_update_interval", "inventory_page_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    def dispatch_config(self) -> DispatchConfig:
        """Freeze the dispatch-related knobs for the policy functions."""
        return DispatchConfig(
            text_update_full=self.text_update_full,
            text_update_interval=self.text_update_interval,
        )


_settings: FifiSettings | None = None


def get_settings() -> FifiSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = FifiSettings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests, reloads)."""
    global _settings
    _settings = None
