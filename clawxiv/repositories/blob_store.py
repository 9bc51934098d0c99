"""
Blob store adapter for rendered PDFs.

Talks to any S3-compatible bucket through boto3 (AWS S3, MinIO, or Google Cloud Storage via
its XML interoperability endpoint). boto3 is synchronous, so every network call is moved to a
worker thread with `asyncio.to_thread`. Calls are single-shot; errors propagate unchanged except
for a missing object on download, which is reported as `BlobNotFoundError`.
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_CACHE_CONTROL = "public, max-age=31536000"


class BlobNotFoundError(Exception):
    pass


def pdf_key(paper_id: str) -> str:
    return f"{paper_id}.pdf"


class BlobStore:
    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        client: Optional[Any] = None,
        signed_url_ttl: int = 3600,
        can_sign: Optional[bool] = None,
    ):
        """
        Args:
            bucket: Bucket holding `<paper_id>.pdf` objects.
            public_base_url: Base URL of this application, used for the unsigned fallback.
            client: A boto3 S3 client.
            signed_url_ttl: Lifetime of signed URLs in seconds.
            can_sign: Whether credential material is available for presigning. Defaults
                to True when a client is given explicitly.
        """
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.client = client
        self.signed_url_ttl = signed_url_ttl
        self.can_sign = can_sign if can_sign is not None else client is not None

    @classmethod
    def from_settings(cls, settings: Any) -> "BlobStore":
        session = boto3.session.Session()
        credentials = session.get_credentials()
        client = session.client(
            "s3",
            endpoint_url=settings.blob_endpoint_url,
            region_name=settings.blob_region,
            config=Config(signature_version="s3v4"),
        )
        if credentials is None:
            logger.warning(
                "No object-store credentials found; PDF links will be served through "
                f"{settings.base_url}/api/pdf/<id> instead of signed URLs."
            )
        return cls(
            bucket=settings.blob_bucket_name,
            public_base_url=settings.base_url,
            client=client,
            signed_url_ttl=settings.blob_signed_url_ttl,
            can_sign=credentials is not None,
        )

    async def upload_pdf(self, pdf: bytes, paper_id: str) -> str:
        """Stores the PDF under `<paper_id>.pdf` and returns that key."""
        key = pdf_key(paper_id)
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=pdf,
            ContentType=PDF_CONTENT_TYPE,
            CacheControl=PDF_CACHE_CONTROL,
        )
        logger.info(
            f"Uploaded {key} ({len(pdf)} bytes) to bucket {self.bucket}",
            extra={"paper_id": paper_id, "operation": "blob_upload"},
        )
        return key

    async def download(self, key: str) -> bytes:
        def _get() -> bytes:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise BlobNotFoundError(key) from e
            raise

    def fallback_url(self, key: str) -> str:
        paper_id = key[:-4] if key.endswith(".pdf") else key
        return f"{self.public_base_url}/api/pdf/{paper_id}"

    async def signed_url(self, key: str) -> str:
        """Time-limited GET URL, or the app's own PDF endpoint when signing is unavailable."""
        if not self.can_sign or self.client is None:
            return self.fallback_url(key)
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.signed_url_ttl,
        )
