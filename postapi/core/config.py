# Defines application-wide settings using pydantic-settings' BaseSettings
# Manages environment variables for various aspects of the application:
# API configuration (prefix, project name)
# Database connection details
# Image upload rules
# Blob storage (local directory or Cloudflare R2)


import json
from typing import Annotated, List, Union

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()


def _split_list(v: Union[str, List[str]]) -> List[str]:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, str):
        # Handle JSON string format
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return []
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Post API"
    VERSION: str = "0.1.0"

    # Server URL, used to build public image links
    BASE_URL: str = "http://localhost:8000"

    # Database
    DATABASE_URL: str = "sqlite:///./posts.db"

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost",
    ]

    # Image uploads
    UPLOAD_DIRECTORY: str = "storage"
    MAX_IMAGE_SIZE_KB: int = 2048
    ALLOWED_IMAGE_FORMATS: Annotated[List[str], NoDecode] = ["jpeg", "png", "jpg", "gif", "svg"]
    # Update skips image format/size checks unless this is on
    VALIDATE_IMAGE_ON_UPDATE: bool = False

    # Cloudflare R2 Storage
    R2_ENDPOINT: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = "post-images"
    R2_PUBLIC_URL: str = ""

    # Development settings - set these differently in production
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        return _split_list(v)

    @field_validator("ALLOWED_IMAGE_FORMATS", mode="before")
    @classmethod
    def assemble_image_formats(cls, v: Union[str, List[str]]) -> List[str]:
        return [fmt.lower() for fmt in _split_list(v)]

    @property
    def r2_configured(self) -> bool:
        return all([self.R2_ENDPOINT, self.R2_ACCESS_KEY_ID, self.R2_SECRET_ACCESS_KEY])


# Create settings instance
settings = Settings()
