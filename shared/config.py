"""
Environment-driven configuration for the API server and the upload tool.

Values come from the process environment, with a `.env` file in the working
directory loaded first.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_ALLOWED_DOMAINS,
    DEFAULT_DATABASE_PATH,
    DEFAULT_HEALTH_REDIRECT_URL,
    DEFAULT_PORT,
    DEFAULT_S3_BUCKET,
    DEFAULT_STATIC_URL,
)

load_dotenv()


def _split_list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ServerConfig:
    """
    Settings for the DJ API server.

    Attributes:
        database_path: SQLite file holding albums, tracks and listening history
        s3_account_id: Cloudflare account id used to build the R2 endpoint
        s3_access_key_id: Object storage access key
        s3_access_key_secret: Object storage secret
        s3_bucket: Bucket holding stems and album covers
        s3_endpoint: Explicit endpoint, overrides the R2 template when set
        admin_username: Basic-auth user for the admin routes
        admin_password: Basic-auth password for the admin routes
        port: Listening port
        allowed_domains: Domains (and their subdomains) allowed by CORS
        health_redirect_url: Target of the /health redirect
        log_level: Root log level name
    """
    database_path: str = DEFAULT_DATABASE_PATH
    s3_account_id: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_access_key_secret: Optional[str] = None
    s3_bucket: str = DEFAULT_S3_BUCKET
    s3_endpoint: Optional[str] = None
    admin_username: str = ""
    admin_password: str = ""
    port: int = DEFAULT_PORT
    allowed_domains: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS))
    health_redirect_url: str = DEFAULT_HEALTH_REDIRECT_URL
    log_level: str = "INFO"

    @property
    def resolved_database_path(self) -> Path:
        return Path(self.database_path).expanduser()

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_username and self.admin_password)

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Build the server config from environment variables."""
        return cls(
            database_path=os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH),
            s3_account_id=os.getenv("S3_ACCOUNT_ID"),
            s3_access_key_id=os.getenv("S3_ACCESS_KEY_ID"),
            s3_access_key_secret=os.getenv("S3_ACCESS_KEY_SECRET"),
            s3_bucket=os.getenv("S3_BUCKET", DEFAULT_S3_BUCKET),
            s3_endpoint=os.getenv("S3_ENDPOINT"),
            admin_username=os.getenv("UPLOAD_ADMIN_USERNAME", ""),
            admin_password=os.getenv("UPLOAD_ADMIN_PASSWORD", ""),
            port=int(os.getenv("PORT", str(DEFAULT_PORT))),
            allowed_domains=_split_list(os.getenv("ALLOWED_DOMAINS"), DEFAULT_ALLOWED_DOMAINS),
            health_redirect_url=os.getenv("HEALTH_REDIRECT_URL", DEFAULT_HEALTH_REDIRECT_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@dataclass
class UploaderConfig:
    """Credentials and target used by the strafe upload tool and the player client."""
    api_url: str = f"http://localhost:{DEFAULT_PORT}"
    username: str = ""
    password: str = ""
    static_url: str = DEFAULT_STATIC_URL

    @classmethod
    def from_env(cls) -> 'UploaderConfig':
        return cls(
            api_url=os.getenv("STRAFE_API_URL", f"http://localhost:{DEFAULT_PORT}").rstrip("/"),
            username=os.getenv("STRAFE_USERNAME", ""),
            password=os.getenv("STRAFE_PASSWORD", ""),
            static_url=os.getenv("STATIC_URL", DEFAULT_STATIC_URL).rstrip("/"),
        )
