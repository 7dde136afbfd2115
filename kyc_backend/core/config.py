import re
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    AWS_REGION: str = ""
    MONGODB_BASE: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "identity"
    MONGODB_TIMEOUT_MS: int = 5000
    USERS_COLLECTION: str = "users"

    S3_ID_DOCUMENTS_BUCKET: str = ""
    ID_DOCUMENTS_PREFIX: str = "ID_Documents"
    TEMP_IMAGE_PREFIX: str = "temporalImage"
    PRESIGNED_URL_EXPIRATION: int = 604800
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    FACE_API_ENDPOINT: str = ""
    FACE_API_KEY: str = ""
    FACE_API_TIMEOUT: float = 30.0

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CLOUDWATCH_LOG_GROUP: str = ""
    CLOUDWATCH_LOG_STREAM: str = "identity-backend"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator('AWS_REGION')
    @classmethod
    def valid_aws_region(cls, v: str) -> str:
        """Ensures the AWS region string is in the correct format."""
        if v and not re.match(r'^[a-z]{2}-[a-z]+-\d$', v):
            raise ValueError(f"'{v}' is not a valid AWS region format. Expected format like 'us-east-2'.")
        return v

    @field_validator('PRESIGNED_URL_EXPIRATION')
    @classmethod
    def valid_url_expiration(cls, v: int) -> int:
        # SigV4 presigned URLs cannot outlive 7 days.
        if not 1 <= v <= 604800:
            raise ValueError(f"PRESIGNED_URL_EXPIRATION must be between 1 and 604800 seconds, got {v}.")
        return v

    @field_validator('FACE_API_ENDPOINT')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

######################################
# Not cached on purpose: a corrected .env must be picked up on the next
# restart without anything holding on to the old values.
######################################

def get_settings() -> Settings:
    return Settings()
