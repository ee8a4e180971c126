from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # ── App ───────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000"
    rate_limit_enabled: bool = True

    # ── Database ──────────────────────────────────────────────
    database_hostname: str
    database_port: str = "5432"
    database_password: str
    database_name: str
    database_username: str
    # Full URL override, e.g. sqlite:// for local experiments
    sqlalchemy_database_uri: Optional[str] = None

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_days: int = 7
    login_otp_token_expire_minutes: int = 10

    # ── OTP / login policy ────────────────────────────────────
    otp_expiry_minutes: int = 10
    bcrypt_rounds: int = 12
    # Fixed offset used by every time-window check (IST = UTC+5:30)
    timezone_offset_minutes: int = 330

    # ── Gmail SMTP ────────────────────────────────────────────
    mail_username: str
    mail_password: str
    mail_from: str
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587

    # ── Twilio SMS ────────────────────────────────────────────
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        if self.sqlalchemy_database_uri:
            return self.sqlalchemy_database_uri
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    class Config:
        env_file = ".env"
        # Case-insensitive so DATABASE_HOSTNAME and database_hostname both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader — reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
