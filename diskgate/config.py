import hashlib
import json
from typing import Optional, List, Dict

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Core
    environment: str = Field(default="dev")
    app_name: str = Field(default="diskgate")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Storage backend
    token_list: str = Field(
        default="[]",
        alias="TOKEN_LIST",
        description='JSON list of OAuth tokens, or an object of {"disk id": "token"}',
    )
    yadisk_api_url: str = Field(default="https://cloud-api.yandex.net/v1/disk", alias="YADISK_API_URL")
    yadisk_timeout: float = Field(default=30.0, alias="YADISK_TIMEOUT")
    upload_dir: str = Field(default="/uploads", alias="UPLOAD_DIR")
    listing_page_size: int = Field(default=100, alias="LISTING_PAGE_SIZE")

    # Upload tokens
    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_leeway: int = Field(default=0, alias="JWT_LEEWAY")  # seconds
    upload_token_require_exp: bool = Field(default=True, alias="UPLOAD_TOKEN_REQUIRE_EXP")
    admission_sweep_interval: float = Field(default=60.0, alias="ADMISSION_SWEEP_INTERVAL")

    # Directory browsing
    browse_username: Optional[str] = Field(default=None, alias="BROWSE_USERNAME")
    browse_password_hash: Optional[str] = Field(default=None, alias="BROWSE_PASSWORD_HASH")

    # Transport
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    rate_limit: str = Field(default="100/minute", alias="RATE_LIMIT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def disk_tokens(self) -> Dict[str, str]:
        """Map of disk id -> OAuth token parsed from TOKEN_LIST.

        A plain list gets ids derived from the token hash so that public
        paths stay stable when the list is reordered.
        """
        raw = json.loads(self.token_list or "[]")
        if isinstance(raw, dict):
            return {str(k): str(v) for k, v in raw.items()}
        if not isinstance(raw, list):
            raise ValueError("TOKEN_LIST must be a JSON list or object")
        return {hashlib.sha256(str(t).encode("utf-8")).hexdigest()[:8]: str(t) for t in raw}


settings = Settings()
