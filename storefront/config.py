"""Configuration management for the storefront backend."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TableSchema(BaseModel):
    """Key attribute and secondary indexes of one store table."""

    key: str = "id"
    indexes: tuple[str, ...] = ("status",)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis / Store Configuration
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    key_prefix: str = Field(default="storefront", description="Prefix for every store key")
    products_table: str = Field(default="products")
    orders_table: str = Field(default="orders")
    reservations_table: str = Field(default="stock-reservations")
    store_max_retries: int = Field(
        default=25, ge=1, description="Attempts for an optimistic store write"
    )

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Checkout Settings
    reservation_ttl: int = Field(
        default=600, ge=1, description="Stock reservation TTL in seconds"
    )
    order_number_timezone: str = Field(
        default="Europe/Stockholm",
        description="Timezone deciding the YYMM prefix of order numbers",
    )

    # Swish Settings
    swish_environment: Literal["mock", "mss", "sandbox", "production"] = Field(
        default="mock"
    )
    swish_merchant_number: str = Field(default="1234679304")
    swish_callback_url: str = Field(
        default="https://localhost:8000/api/v1/swish/callback"
    )
    swish_cert_path: str | None = None
    swish_key_path: str | None = None
    swish_ca_cert_path: str | None = None
    swish_passphrase: str | None = None
    swish_currency: str = Field(default="SEK")
    swish_timeout: float = Field(default=10.0, description="Swish request timeout in seconds")

    # Notification Settings
    smtp_host: str | None = Field(default=None, description="SMTP host, unset disables e-mail")
    smtp_port: int = Field(default=25)
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = False
    from_email: str = Field(default="noreply@example.com")
    admin_email: str = Field(default="orders@example.com")
    alert_webhook_url: str | None = Field(
        default=None, description="Incoming webhook receiving operational alerts"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @property
    def tables(self) -> dict[str, TableSchema]:
        """Schemas of every table the store manages, keyed by table name."""
        return {
            self.products_table: TableSchema(indexes=("status",)),
            self.orders_table: TableSchema(indexes=("status", "number")),
            self.reservations_table: TableSchema(
                key="reservationId",
                indexes=("status", "productId", "orderId"),
            ),
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
