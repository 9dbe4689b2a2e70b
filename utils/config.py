import os
import logging
from decimal import Decimal
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        # Hosted PostgreSQL providers still hand out the legacy scheme
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url

    db_name = os.getenv("DB_NAME")
    if db_name:
        user = quote_plus(os.getenv("DB_USER", "postgres"))
        password = quote_plus(os.getenv("DB_PASSWORD", ""))
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db_name}"

    return "sqlite:///./restaurant.db"


class Settings:
    """Runtime configuration read from the environment (and `.env`)."""

    def __init__(self):
        self.DATABASE_URL = _database_url()
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
        self.DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))

        self.TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.18"))
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
        self.STORAGE_MODE = os.getenv("STORAGE_MODE", "local").lower()
        self.HEARTBEAT_INTERVAL = float(os.getenv("HEARTBEAT_INTERVAL", 30))
        self.RESTAURANT_NAME = os.getenv("RESTAURANT_NAME", "Your Restaurant")

        self.SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))

        origins = os.getenv("CORS_ORIGINS", "*")
        self.CORS_ORIGINS = [origin.strip() for origin in origins.split(",") if origin.strip()]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        if self.STORAGE_MODE not in ("local", "external"):
            raise ValueError(f"Invalid STORAGE_MODE: {self.STORAGE_MODE}. Valid values are: local, external")


settings = Settings()
