"""S3-compatible storage backend for UploadGate.

Talks to AWS S3 or MinIO via aiobotocore. Only control-plane calls go
through this backend: clients upload part bytes straight to presigned URLs.

Credentials come from the explicit configuration passed to the constructor
when present, otherwise from the standard AWS credential chain (env vars,
~/.aws/credentials, IAM role, etc.).
"""

import logging
from collections.abc import Sequence

from aiobotocore.session import AioSession
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from uploadgate.models import BucketCreation, CompletionResult, PartDescriptor

logger = logging.getLogger(__name__)

_MISSING_BUCKET_CODES = ("404", "NoSuchBucket", "NotFound")
_EXISTING_BUCKET_CODES = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")

# Presign verb -> botocore client method, for whole objects and parts.
_OBJECT_METHODS = {"PUT": "put_object"}
_PART_METHODS = {"PUT": "upload_part"}


def _status_of(resp: dict) -> int:
    """Return the HTTP status code recorded on a botocore response."""
    return resp.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)


class S3Backend:
    """Storage backend for an S3-compatible object store.

    Attributes:
        endpoint_url: Full endpoint URL, empty for AWS defaults.
        region: The region used for signing and bucket creation.
        access_key_id: Explicit access key, empty to use the credential chain.
        secret_access_key: Explicit secret key.
        use_path_style: Use path-style addressing (required by MinIO).
    """

    def __init__(
        self,
        endpoint: str = "",
        region: str = "us-east-1",
        access_key_id: str = "",
        secret_access_key: str = "",
        use_ssl: bool = False,
        use_path_style: bool = True,
    ) -> None:
        if endpoint and "://" not in endpoint:
            scheme = "https" if use_ssl else "http"
            endpoint = f"{scheme}://{endpoint}"
        self.endpoint_url = endpoint
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.use_path_style = use_path_style
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def init(self) -> None:
        """Create the aiobotocore S3 client."""
        client_kwargs: dict = {
            "region_name": self.region,
            "config": BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path" if self.use_path_style else "auto"},
            ),
        }
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url

        # Use explicit credentials if provided, otherwise fall back to chain
        if self.access_key_id and self.secret_access_key:
            session = AioSession()
            session.set_credentials(self.access_key_id, self.secret_access_key)
            self._session = session
        self._client_ctx = self._session.create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        logger.info(
            "S3 backend initialized: endpoint=%s region=%s",
            self.endpoint_url or "<aws default>",
            self.region,
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def bucket_exists(self, bucket: str) -> bool:
        """Check bucket existence with HEAD bucket."""
        try:
            await self._client.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _MISSING_BUCKET_CODES:
                return False
            raise

    async def create_bucket(self, bucket: str) -> BucketCreation:
        """Create a bucket, reporting a lost creation race as ALREADY_EXISTS."""
        kwargs: dict = {"Bucket": bucket}
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            resp = await self._client.create_bucket(**kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _EXISTING_BUCKET_CODES:
                return BucketCreation.ALREADY_EXISTS
            raise

        if _status_of(resp) != 200:
            return BucketCreation.REJECTED
        return BucketCreation.CREATED

    async def initiate_multipart(
        self,
        bucket: str,
        key: str,
        content_type: str,
        metadata: dict[str, str],
    ) -> str:
        """Start a native S3 multipart upload and return its UploadId."""
        resp = await self._client.create_multipart_upload(
            Bucket=bucket,
            Key=key,
            ContentType=content_type,
            Metadata=metadata,
        )
        return resp["UploadId"]

    async def presign(
        self,
        bucket: str,
        key: str,
        method: str,
        expires_in: int,
        upload_id: str | None = None,
        part_number: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Generate a presigned URL for a part upload or a whole object.

        Raises:
            ValueError: If the method is not supported for the target.
        """
        params: dict = {"Bucket": bucket, "Key": key}
        if upload_id is not None and part_number is not None:
            client_method = _PART_METHODS.get(method.upper())
            params["UploadId"] = upload_id
            params["PartNumber"] = part_number
        else:
            client_method = _OBJECT_METHODS.get(method.upper())
            if metadata:
                params["Metadata"] = metadata
        if client_method is None:
            raise ValueError(f"Cannot presign {method} for key {key}")

        return await self._client.generate_presigned_url(
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=expires_in,
            HttpMethod=method.upper(),
        )

    async def complete_multipart(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[PartDescriptor],
    ) -> CompletionResult:
        """Complete a multipart upload.

        S3 requires the manifest in ascending part order, so parts are sorted
        here. An error status from S3 (InvalidPart, NoSuchUpload, ...) is
        reported as a non-OK result rather than raised.
        """
        manifest = [
            {"PartNumber": part.part_number, "ETag": part.etag}
            for part in sorted(parts, key=lambda p: p.part_number)
        ]
        try:
            resp = await self._client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": manifest},
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            logger.warning(
                "S3 rejected completion of upload %s for key %s: %s", upload_id, key, code
            )
            return CompletionResult(status_ok=False)

        return CompletionResult(
            status_ok=_status_of(resp) == 200,
            location=resp.get("Location") or "",
        )

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        """Abort a native S3 multipart upload."""
        await self._client.abort_multipart_upload(
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Upload a whole object in one request."""
        await self._client.put_object(
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata=metadata,
        )
