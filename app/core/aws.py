"""AWS S3 media storage: presigned URLs for observation photos and videos."""

import logging
import re
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class S3Service:
    """Observation media in S3. One shared boto3 client per process."""

    _instance = None
    _s3_client = None

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            try:
                cls._instance._s3_client = boto3.client(
                    "s3",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                    region_name=settings.AWS_REGION,
                    config=boto3.session.Config(s3={'addressing_style': 'path'})
                )
            except (BotoCoreError, ValueError) as e:
                logger.error("Failed to initialize S3 client: %s", e)
                cls._instance._s3_client = None
        return cls._instance

    @property
    def client(self):
        """Get S3 client."""
        return self._s3_client

    @staticmethod
    def _validated_bucket_name() -> str:
        bucket = (settings.AWS_S3_BUCKET or "").strip()
        # Prevent boto3 raising a cryptic "Invalid bucket name" error when env is misconfigured.
        if not bucket:
            raise ValueError("AWS_S3_BUCKET is not configured.")
        # https://docs.aws.amazon.com/AmazonS3/latest/userguide/bucketnamingrules.html
        if not re.fullmatch(r"[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]", bucket):
            raise ValueError(f"Invalid AWS_S3_BUCKET value '{bucket}'.")
        return bucket

    @staticmethod
    def media_key(path: str) -> str:
        """Media paths are stored relative to the media prefix inside the bucket."""
        prefix = (settings.MEDIA_BUCKET or "").strip("/")
        path = path.lstrip("/")
        if not prefix or path.startswith(f"{prefix}/"):
            return path
        return f"{prefix}/{path}"

    def _presign(self, client_method: str, params: dict, expiration: int) -> str:
        if not self.client:
            raise ValueError("AWS S3 credentials not configured.")
        try:
            return self.client.generate_presigned_url(
                ClientMethod=client_method,
                Params={'Bucket': self._validated_bucket_name(), **params},
                ExpiresIn=expiration,
            )
        except ClientError as e:
            logger.error("Error presigning %s: %s", client_method, e)
            raise

    def generate_presigned_put_url(self, object_name: str, file_type: Optional[str], expiration=300) -> str:
        """
        Presigned PUT for a new observation's media.
        The client uploads directly; bytes never pass through the API.
        """
        params = {'Key': self.media_key(object_name)}
        if file_type:
            params['ContentType'] = file_type
        return self._presign('put_object', params, expiration)

    def generate_presigned_get_url(self, object_name: str, expiration=300) -> str:
        """Presigned GET for reading private media."""
        return self._presign('get_object', {'Key': self.media_key(object_name)}, expiration)

    def signed_media_url(self, object_name: Optional[str]) -> Optional[str]:
        """
        Best-effort read URL for a listing row.
        A signing failure yields None instead of failing the whole listing.
        """
        if not object_name:
            return None
        try:
            return self.generate_presigned_get_url(object_name, expiration=settings.SIGNED_URL_TTL_SECONDS)
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.warning("Could not sign media URL for %s: %s", object_name, e)
            return None
