import os
import logging
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv
from fastapi import Request

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger()

# Load environment variables from .env file
if os.path.exists(".env"):
    load_dotenv()

DEFAULT_JWT_SECRET_KEY = "your-secret-key-change-this-in-production"


# Settings
@dataclass(frozen=True)
class Settings:
    DATABASE_URL: str = "sqlite:///goal_tracker.db"
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET_KEY
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    RESET_TOKEN_EXPIRE_SECONDS: int = 3600
    CORS_ORIGINS: Tuple[str, ...] = field(default=("http://localhost:3000",))
    SMTP_HOST: str = ""
    SMTP_PORT: int = 465
    SMTP_EMAIL: str = ""
    SMTP_PASSWORD: str = ""
    SEND_EMAILS: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build the settings once from the process environment."""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        return cls(
            DATABASE_URL=os.getenv("DATABASE_URL", cls.DATABASE_URL),
            JWT_SECRET_KEY=os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET_KEY),
            JWT_ALGORITHM=os.getenv("JWT_ALGORITHM", cls.JWT_ALGORITHM),
            ACCESS_TOKEN_EXPIRE_MINUTES=int(os.getenv("JWT_EXPIRES_IN_MINUTES", cls.ACCESS_TOKEN_EXPIRE_MINUTES)),
            RESET_TOKEN_EXPIRE_SECONDS=int(os.getenv("RESET_TOKEN_EXPIRES_IN_SECONDS", cls.RESET_TOKEN_EXPIRE_SECONDS)),
            CORS_ORIGINS=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
            SMTP_HOST=os.getenv("SMTP_HOST", ""),
            SMTP_PORT=int(os.getenv("SMTP_PORT", cls.SMTP_PORT)),
            SMTP_EMAIL=os.getenv("SMTP_EMAIL", ""),
            SMTP_PASSWORD=os.getenv("SMTP_PASSWORD", ""),
            SEND_EMAILS=os.getenv("SEND_EMAILS", "false").lower() in ("1", "true", "yes"),
        )


def get_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings
