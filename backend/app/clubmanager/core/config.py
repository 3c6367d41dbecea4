from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLUB_", env_file=".env", extra="ignore")

    ENV: str = Field(default="dev")
    APP_VERSION: str = Field(default="1.0.0")
    DB_URL: str = Field(default="sqlite:///./clubmanager.db")
    LOG_DIR: str = Field(default="logs")
    LOG_LEVEL: str = Field(default="INFO")

    # 会话凭证（JWT）
    JWT_SECRET_KEY: str = Field(default="clubmanager-dev-secret-key-change-me-in-production")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRE_HOURS: int = Field(default=24)

    # 一次性登录令牌
    TOKEN_PEPPER: str = Field(default="clubmanager-token-pepper")
    LOGIN_TOKEN_EXPIRE_MINUTES: int = Field(default=15)
    FRONTEND_URL: str = Field(default="http://localhost:5175")

    # 邮件
    MAIL_ENABLED: bool = Field(default=False)
    MAIL_FROM: str = Field(default="noreply@club.org")
    SMTP_HOST: str | None = Field(default=None)
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: str | None = Field(default=None)
    SMTP_PASSWORD: str | None = Field(default=None)
    SMTP_USE_TLS: bool = Field(default=True)

    CLUB_NAME: str = Field(default="Square Dance Club")
    MAX_IMPORT_BYTES: int = Field(default=5 * 1024 * 1024)


settings = Settings()
