"""Upload coordination error definitions for UploadGate."""


class UploadError(Exception):
    """An upload error with code, message, and HTTP status.

    Attributes:
        code: The error code string (e.g. "InvalidArgument").
        message: Human-readable error description.
        http_status: The HTTP status code to return.
        abort_error: A secondary ``AbortFailed`` recorded while compensating
            for this error, if any. Never replaces this error as the cause.
    """

    code = "InternalError"
    http_status = 500

    def __init__(self, message: str = "Internal Error") -> None:
        """Initialize the upload error.

        Args:
            message: Error description.
        """
        super().__init__(message)
        self.message = message
        self.abort_error: AbortFailed | None = None


# -- Common pre-defined errors ------------------------------------------------


class InvalidArgument(UploadError):
    """A caller-supplied part number or manifest entry violates policy."""

    code = "InvalidArgument"
    http_status = 400

    def __init__(self, message: str = "Invalid Argument") -> None:
        super().__init__(message)


class StorageUnavailable(UploadError):
    """A backend call failed at transport level or returned an error status."""

    code = "StorageUnavailable"
    http_status = 424

    def __init__(self, message: str = "Object storage not available right now.") -> None:
        super().__init__(message)


class CompletionFailed(UploadError):
    """The backend rejected a multipart completion.

    Raised for a non-OK status or an empty resulting location. A compensating
    abort has always been attempted before this error surfaces.
    """

    code = "CompletionFailed"
    http_status = 502

    def __init__(
        self,
        key: str = "",
        upload_id: str = "",
        reason: str = "",
    ) -> None:
        message = "Multipart couldn't be completed. Try upload file again."
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.key = key
        self.upload_id = upload_id
        self.reason = reason


class AbortFailed(UploadError):
    """A compensating abort-multipart call failed.

    Only ever recorded on another error's ``abort_error``.
    """

    code = "AbortFailed"
    http_status = 424

    def __init__(self, key: str = "", upload_id: str = "", cause: str = "") -> None:
        message = f"Failed to abort multipart upload {upload_id} for key {key}"
        if cause:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.key = key
        self.upload_id = upload_id
