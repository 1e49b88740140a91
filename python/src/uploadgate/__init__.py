"""UploadGate - multipart upload coordinator for S3-compatible object stores."""

__version__ = "0.1.0"
