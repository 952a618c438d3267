from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "renewal-engine"
    api_version: str = "v1"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "renewals"
    db_use_nullpool: bool = (
        False  # True for workers (sequential), False for API (concurrent)
    )
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # OpenTelemetry
    otel_service_name: str = "renewal-engine"
    otel_service_version: str = "0.1.0"

    # Axiom (exporters are only attached when a token is configured)
    axiom_token: str = ""
    axiom_dataset: str = ""

    # VNPay gateway
    vnpay_tmn_code: str = ""
    vnpay_hash_secret: str = ""
    vnpay_url: str = "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"
    vnpay_return_url: str = "http://localhost:3000/payment/return"
    vnpay_api_url: str = (
        "https://sandbox.vnpayment.vn/merchant_webapi/api/transaction"
    )
    vnpay_token_api_url: str = ""  # Server-to-server stored token charge endpoint
    vnpay_utc_offset_hours: int = 7  # vnp_CreateDate is GMT+7 wall clock

    # Background jobs
    enable_background_jobs: bool = False

    # Renewal job defaults (milliseconds, mirrors RenewalJobConfig)
    renewal_check_interval_ms: int = 60 * 60 * 1000  # 1 hour
    renewal_days_before_expiry: int = 3
    renewal_max_retry_attempts: int = 3
    renewal_retry_delay_ms: int = 5 * 60 * 1000  # 5 minutes
    renewal_item_delay_ms: int = 1000
    renewal_charge_timeout_ms: int = 30 * 1000

    # Admin endpoints (jobs status/run/config)
    admin_api_key: str = ""

    # Environment-aware properties
    @property
    def background_jobs_allowed(self) -> bool:
        """Timers only self-schedule in production or with the explicit opt-in flag."""
        return (
            self.environment == Environment.PRODUCTION or self.enable_background_jobs
        )

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return [
            "https://namlongcenter.com",
            "https://api.namlongcenter.com",
        ]


settings = Settings()
