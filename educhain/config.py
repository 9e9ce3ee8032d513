from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = "EduChain"
    app_env: str = Field("dev", alias="APP_ENV")
    secret_key: str = Field("dev-secret-change-me", alias="SECRET_KEY")
    session_ttl_hours: int = Field(24, alias="SESSION_TTL_HOURS")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    upload_dir: str = Field("uploads", alias="UPLOAD_DIR")
    cors_origins: str = Field("http://localhost:8080", alias="CORS_ORIGINS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("localhost", alias="HOST")
    port: int = Field(8080, alias="PORT")

    # Sui ledger
    sui_rpc_url: str = Field("https://fullnode.testnet.sui.io:443", alias="SUI_RPC_URL")
    sui_secret_key: str | None = Field(default=None, alias="SUI_SECRET_KEY")
    sui_package_id: str | None = Field(default=None, alias="SUI_PACKAGE_ID")
    sui_factory_id: str | None = Field(default=None, alias="SUI_FACTORY_ID")
    sui_module: str = Field("certificate", alias="SUI_MODULE")
    sui_function: str = Field("mint_certificate", alias="SUI_FUNCTION")
    sui_gas_budget: int = Field(10_000_000, alias="SUI_GAS_BUDGET")

    funding_poll_interval: float = Field(2.0, alias="FUNDING_POLL_INTERVAL")
    funding_poll_attempts: int = Field(10, alias="FUNDING_POLL_ATTEMPTS")
    confirm_timeout: float = Field(60.0, alias="CONFIRM_TIMEOUT")
    confirm_poll_interval: float = Field(1.0, alias="CONFIRM_POLL_INTERVAL")
    pending_timeout: int = Field(600, alias="PENDING_TIMEOUT")

    cert_title: str = Field("Certificate of Completion", alias="CERT_TITLE")
    public_base_url: str = Field("", alias="PUBLIC_BASE_URL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def cookie_secure(self) -> bool:
        return self.app_env.lower() not in ("dev", "development", "test")

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
