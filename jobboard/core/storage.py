"""
Image storage abstraction supporting both local filesystem and AWS S3.

Files are addressed by a key relative to the images root
("categories/categories-image-1-1700000000000-0.jpeg"). Records store the
public path of a file, which is the key under IMAGES_URL_PREFIX
("/images/categories/...").
"""

import logging
import os
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from jobboard.core.config import settings

logger = logging.getLogger(__name__)


def public_path(key: str) -> str:
    """Public path stored on records and served by the static mount."""
    return f"{settings.IMAGES_URL_PREFIX.rstrip('/')}/{key}"


def key_from_path(path: Optional[str]) -> Optional[str]:
    """Inverse of public_path; None for paths outside the images root."""
    prefix = settings.IMAGES_URL_PREFIX.rstrip("/") + "/"
    if not path or not path.startswith(prefix):
        return None
    return path[len(prefix):]


class StorageBackend:
    """Abstract base class for storage backends"""

    def save_file(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Store bytes under key and return the public path"""
        raise NotImplementedError

    def delete_file(self, key: str) -> bool:
        """Delete file from storage"""
        raise NotImplementedError

    def file_exists(self, key: str) -> bool:
        """Check if file exists"""
        raise NotImplementedError


class LocalStorage(StorageBackend):
    """Local filesystem storage backend"""

    def __init__(self, base_dir: str = "public/images"):
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)

    def _full_path(self, key: str) -> str:
        return os.path.join(self.base_dir, *key.split("/"))

    def save_file(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        file_path = self._full_path(key)
        os.makedirs(os.path.dirname(file_path), exist_ok=True)

        with open(file_path, "wb") as buffer:
            buffer.write(data)

        return public_path(key)

    def delete_file(self, key: str) -> bool:
        file_path = self._full_path(key)
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
                return True
            return False
        except OSError as e:
            logger.error(f"Error deleting file {file_path}: {e}")
            return False

    def file_exists(self, key: str) -> bool:
        return os.path.exists(self._full_path(key))


class S3Storage(StorageBackend):
    """AWS S3 storage backend"""

    def __init__(self):
        self.bucket_name = settings.S3_BUCKET_NAME

        # If AWS_ACCESS_KEY_ID is not set, boto3 will use IAM roles (for EC2/ECS)
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION
            )
        else:
            self.s3_client = boto3.client('s3', region_name=settings.AWS_REGION)

    def _s3_key(self, key: str) -> str:
        return f"images/{key}"

    def save_file(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=self._s3_key(key),
                Body=data,
                ContentType=content_type,
                ServerSideEncryption='AES256',
            )
        except ClientError as e:
            logger.error(f"Error uploading {key} to S3: {e}")
            raise
        return public_path(key)

    def delete_file(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._s3_key(key))
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting {key} from S3: {e}")
            return False

    def file_exists(self, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=self._s3_key(key))
            return True
        except ClientError:
            return False


def get_storage() -> StorageBackend:
    """Get storage backend based on USE_S3 setting"""
    if settings.USE_S3:
        if not settings.S3_BUCKET_NAME:
            raise ValueError("S3_BUCKET_NAME must be set when USE_S3=True")
        return S3Storage()
    return LocalStorage(settings.IMAGES_DIR)


# Singleton instance
image_storage = get_storage()
