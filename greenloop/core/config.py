from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://greenloop:greenloop@db:5432/greenloop"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://greenloop.example.com,https://admin.greenloop.example.com"
    CORS_ORIGINS: str = "*"

    # Reward claim alerts go here; links in emails point at SITE_URL.
    ADMIN_EMAIL: str = "admin@greenloop.com"
    SITE_URL: str = "http://localhost:3000"

    # Action logging throttle and duplicate window
    ACTION_LOG_RATE_LIMIT: int = 20
    ACTION_LOG_RATE_WINDOW_SECONDS: int = 60
    DUPLICATE_WINDOW_HOURS: int = 24

    # Outbound email. Leave EMAIL_HOST empty to only log emails.
    EMAIL_HOST: str = ""
    EMAIL_PORT: int = 587
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "GreenLoop <no-reply@greenloop.com>"
    # Seconds before a stalled SMTP connect or command gives up
    EMAIL_TIMEOUT_SECONDS: float = 10

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.EMAIL_HOST.strip())


settings = Settings()
