"""
Album cover storage.

Covers are kept in an S3-compatible bucket (Cloudflare R2 by default) as
`{album_name}/cover.jpg`. The API serves a shrunken, base64-encoded JPEG
which is cached in the database after the first request.
"""

import base64
import io
import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from shared.config import ServerConfig
from shared.constants import (
    CLOUDFLARE_R2_ENDPOINT_TEMPLATE,
    COVER_FILENAME,
    COVER_JPEG_QUALITY,
    COVER_MAX_WIDTH,
)
from shared.database import DatabaseManager
from shared.exceptions import StorageError
from shared.models import Album

logger = logging.getLogger(__name__)


class CoverStore:
    """
    Reads album covers from an S3-compatible bucket using boto3.
    """

    def __init__(self, bucket: str, s3_client=None):
        self.bucket = bucket
        self.s3_client = s3_client

    @classmethod
    def from_config(cls, config: ServerConfig) -> 'CoverStore':
        """
        Build a store for the configured bucket.

        The endpoint is `S3_ENDPOINT` when set, otherwise the R2 endpoint for
        `S3_ACCOUNT_ID`.
        """
        endpoint_url = config.s3_endpoint
        if not endpoint_url and config.s3_account_id:
            endpoint_url = CLOUDFLARE_R2_ENDPOINT_TEMPLATE.format(account_id=config.s3_account_id)

        client = boto3.client(
            's3',
            endpoint_url=endpoint_url,
            aws_access_key_id=config.s3_access_key_id,
            aws_secret_access_key=config.s3_access_key_secret,
            region_name='auto',  # R2 uses 'auto' region
        )
        return cls(config.s3_bucket, client)

    @staticmethod
    def cover_key(album_name: str) -> str:
        return f"{album_name}/{COVER_FILENAME}"

    def fetch_cover(self, album_name: str) -> bytes:
        """
        Download the original cover of an album.

        Raises:
            StorageError: if the object cannot be read
        """
        key = self.cover_key(album_name)
        logger.info(f"Fetching cover image from S3: {key}")
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error fetching cover image: {e}")


def optimize_cover(data: bytes, max_width: int = COVER_MAX_WIDTH, quality: int = COVER_JPEG_QUALITY) -> str:
    """
    Shrink an image to at most `max_width` pixels wide, keeping its aspect
    ratio, and return it as a base64 JPEG string. Narrower images keep their size.

    Raises:
        ValueError: if the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable cover image: {e}")

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class CoverService:
    """Serves optimized covers, caching them in the database."""

    def __init__(self, db: DatabaseManager, store: Optional[CoverStore]):
        self.db = db
        self.store = store

    def cover_for(self, album: Album) -> str:
        """
        Return the optimized cover of an album.

        A cover that cannot be optimized is logged and served as an empty
        string; a cover that cannot be fetched raises StorageError.
        """
        cached = self.db.get_cover(album.id)
        if cached is not None:
            return cached

        if self.store is None:
            raise StorageError("Cover storage is not configured")

        original = self.store.fetch_cover(album.name)
        try:
            cover = optimize_cover(original)
        except ValueError as e:
            logger.warning(f"Error optimizing cover for album {album.id}: {e}")
            return ""

        self.db.save_cover(album.id, cover)
        return cover
