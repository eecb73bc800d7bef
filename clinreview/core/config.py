import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class StorageSettings(BaseModel):
    upload_dir: str = Field(default=os.getenv("UPLOAD_DIR", "uploads"))
    public_base_url: str = Field(default=os.getenv("FILE_BASE_URL", "/files"))
    bucket_name: str = "review-files"
    max_file_size: int = Field(default=int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))))  # 10MB
    allowed_types: List[str] = [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/jpg",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    ]


class Config(BaseModel):
    app_name: str = "Clinical Review Platform"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # File storage for review attachments
    storage: StorageSettings = StorageSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    # Scoring
    enable_caching: bool = os.getenv("ENABLE_CACHING", "true").lower() == "true"
    top_performer_threshold: int = 90
    attention_threshold: int = 70
    trend_months: int = 6

    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "production" and settings.database_url.startswith("sqlite"):
    _logger.warning("⚠ Running production with SQLite; set DATABASE_URL to a PostgreSQL instance.")
