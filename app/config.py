"""
Application settings, resolved once from the environment and injected where needed
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class CloudinarySettings(BaseModel):
    """Credentials and placement for the remote object store"""
    cloud_name: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    document_folder: str = "academic_documents"
    image_folder: str = "academic_images"
    timeout: int = Field(default=60, ge=1, le=600, description="Upload timeout in seconds")
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_backoff: float = Field(default=1.0, ge=0.0, le=60.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


class Settings(BaseModel):
    environment: str = "development"
    log_level: str = "INFO"
    mongodb_uri: str = "mongodb://localhost:27017"
    db_name: str = "academic_records"
    upload_dir: Path = PROJECT_ROOT / "uploads"
    temp_file_retention_seconds: int = Field(default=3600, ge=0)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cloudinary: CloudinarySettings = Field(default_factory=CloudinarySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (a local .env file is honoured)"""
        load_dotenv()

        environment = os.getenv("ENVIRONMENT", "development").lower()
        default_upload_dir = Path("/tmp") if environment == "production" else PROJECT_ROOT / "uploads"
        origins = os.getenv("CORS_ORIGINS") or os.getenv("FRONTEND_URL") or "http://localhost:3000"

        return cls(
            environment=environment,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
            db_name=os.getenv("DB_NAME", "academic_records"),
            upload_dir=Path(os.getenv("UPLOAD_DIR", str(default_upload_dir))),
            temp_file_retention_seconds=int(os.getenv("TEMP_FILE_RETENTION_SECONDS", "3600")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            cloudinary=CloudinarySettings(
                cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
                api_key=os.getenv("CLOUDINARY_API_KEY"),
                api_secret=os.getenv("CLOUDINARY_API_SECRET"),
                document_folder=os.getenv("DOCUMENT_FOLDER", "academic_documents"),
                image_folder=os.getenv("IMAGE_FOLDER", "academic_images"),
                timeout=int(os.getenv("REMOTE_UPLOAD_TIMEOUT", "60")),
                retry_attempts=int(os.getenv("REMOTE_UPLOAD_RETRIES", "3")),
                retry_backoff=float(os.getenv("REMOTE_UPLOAD_BACKOFF", "1.0")),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
