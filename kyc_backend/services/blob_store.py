from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from kyc_backend.core.errors import BlobStoreError, NotFoundError
from kyc_backend.core.logging import get_logger

logger = get_logger("blob-store")

MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class BlobStore:
    """
    Path-addressed content store on top of an S3 bucket.

    Uploads overwrite whatever is at the path (last writer wins). Retrievable URLs
    are presigned GET URLs valid for `url_expiration` seconds.
    """

    def __init__(self, s3_client, bucket: str, url_expiration: int = 3600):
        self.s3 = s3_client
        self.bucket = bucket
        self.url_expiration = url_expiration

    def upload(self, path: str, data: bytes, content_type: str, metadata: Optional[Dict[str, str]] = None) -> None:
        """Stores `data` under `path` with the given content type and user metadata."""
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload '{path}' to bucket '{self.bucket}': {e}", exc_info=True)
            raise BlobStoreError(f"Could not upload image: {e}")
        logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{path}")

    def get_url(self, path: str) -> str:
        """
        Returns a retrievable URL for the object at `path`.

        :raises NotFoundError: nothing has been uploaded to `path`.
        :raises BlobStoreError: S3 could not be reached or refused the request.
        """
        try:
            self.s3.head_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            if e.response['Error']['Code'] in MISSING_OBJECT_CODES:
                raise NotFoundError("blob", path)
            logger.error(f"Failed to look up '{path}' in bucket '{self.bucket}': {e}", exc_info=True)
            raise BlobStoreError(f"Could not look up image: {e}")
        except BotoCoreError as e:
            logger.error(f"Failed to look up '{path}' in bucket '{self.bucket}': {e}", exc_info=True)
            raise BlobStoreError(f"Could not look up image: {e}")

        try:
            return self.s3.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': path},
                ExpiresIn=self.url_expiration,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for key {path}: {e}", exc_info=True)
            raise BlobStoreError(f"Could not create image URL: {e}")
