import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    data_dir: str = Field("data", description="Directory holding the JSON collections")
    upload_dir: str = Field("public/uploads", description="Directory holding uploaded media")
    max_upload_bytes: int = Field(10 * 1024 * 1024, gt=0, description="Per-file upload ceiling")
    max_media_files: int = Field(10, ge=1, description="Files accepted per product request")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = Field(8000)
    log_level: str = Field("INFO")

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            data_dir=os.getenv("DATA_DIR", "data"),
            upload_dir=os.getenv("UPLOAD_DIR", "public/uploads"),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_SIZE", 10 * 1024 * 1024)),
            max_media_files=int(os.getenv("MAX_MEDIA_FILES", 10)),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            port=int(os.getenv("PORT", 8000)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
