from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_TITLE: str = "Leave Management"
    MONGODB_URL: str
    DATABASE_NAME: str = "leave_management"
    PRODUCTION_MODE: bool = False
    PORT: int = 3000
    CLIENT_URL: str = "http://localhost:5173"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_USER_PWD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SENDGRID_API_KEY: Optional[str] = None
    MAIL_FROM: str = "no-reply@example.com"
    MAIL_FROM_NAME: str = "Leave Admin"
    DOC_ENCRYPTION_KEY: str = ""
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ENABLE_SCHEDULER: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
