"""Application settings and configuration.

This module defines all configuration options for the Impact cycle service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Secrets (the trigger secret and the ledger signing key) have no defaults;
    code paths that need them raise ``ConfigurationError`` when they are absent
    instead of failing at import time.
    """

    # Application metadata
    app_name: str = Field(default="Impact Cycle", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Session tokens minted after a successful signature verification
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_ttl_minutes: int = Field(default=60 * 24, alias="SESSION_TTL_MINUTES")

    # Hourly scheduler authentication
    cron_secret: str | None = Field(default=None, alias="CRON_SECRET")

    # Ledger (EVM JSON-RPC) configuration
    ledger_rpc_url: str = Field(default="https://mainnet.base.org", alias="LEDGER_RPC_URL")
    ledger_contract_address: str | None = Field(
        default=None,
        alias="LEDGER_CONTRACT_ADDRESS",
    )
    ledger_signer_private_key: str | None = Field(
        default=None,
        alias="LEDGER_SIGNER_PRIVATE_KEY",
    )
    ledger_chain_id: int | None = Field(default=None, alias="LEDGER_CHAIN_ID")
    ledger_http_timeout_seconds: float = Field(
        default=10.0,
        alias="LEDGER_HTTP_TIMEOUT_SECONDS",
    )
    ledger_receipt_timeout_seconds: float = Field(
        default=60.0,
        alias="LEDGER_RECEIPT_TIMEOUT_SECONDS",
    )
    ledger_receipt_poll_seconds: float = Field(
        default=2.0,
        alias="LEDGER_RECEIPT_POLL_SECONDS",
    )

    # Randomness fulfillment polling after the strike request
    fulfillment_poll_interval_seconds: float = Field(
        default=3.0,
        alias="FULFILLMENT_POLL_INTERVAL_SECONDS",
    )
    fulfillment_max_wait_seconds: float = Field(
        default=120.0,
        alias="FULFILLMENT_MAX_WAIT_SECONDS",
    )

    # Boundary rate limiting
    rate_limit_max_requests: int = Field(default=10, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_use_redis: bool = Field(default=False, alias="RATE_LIMIT_USE_REDIS")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    # Peers allowed to set X-Forwarded-For; empty means the socket peer is the caller
    trusted_proxies: list[str] = Field(default=[], alias="TRUSTED_PROXIES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        alias="CORS_ALLOW_HEADERS",
    )
    frame_ancestors: list[str] = Field(
        default=[
            "'self'",
            "https://*.base.org",
            "https://*.coinbase.com",
            "https://*.warpcast.com",
            "https://*.farcaster.xyz",
        ],
        alias="FRAME_ANCESTORS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def ledger_configured(self) -> bool:
        """Return True when the ledger can at least be read."""
        return bool(self.ledger_rpc_url and self.ledger_contract_address)


settings = Settings()
