"""
Time-limited signed URLs for run recordings kept in S3.
"""

from typing import Any, Optional

import boto3

from .config import Settings


class RecordingSigner:
    """Signs GET URLs for recording objects. The S3 client is created on first use."""

    def __init__(self, access_key_id: Optional[str], secret_access_key: Optional[str],
                 region: str = "us-east-1", bucket: str = "", expires_in: int = 900,
                 client: Any = None):
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.bucket = bucket
        self.expires_in = expires_in
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordingSigner":
        return cls(
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            region=settings.aws_region,
            bucket=settings.aws_bucket,
            expires_in=settings.recording_url_expiry_sec,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.access_key_id or not self.secret_access_key:
                raise RuntimeError("AWS credentials not configured")
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    def sign(self, key: str) -> str:
        """Signed GET URL for a recording key, valid for expires_in seconds."""
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.expires_in,
        )
