"""Exception taxonomy for the Fotostand core.

Every error the core raises derives from :class:`FotostandError` and carries
the HTTP status the serving layer should answer with.  The messages are
user-facing and end up verbatim in the ``{"error": ...}`` JSON body.
"""


class FotostandError(Exception):
    """Base class for all Fotostand core errors."""

    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    default_message = "Internal error"

    @property
    def message(self) -> str:
        return str(self)


class InvalidPathError(FotostandError):
    """A gallery id or filename failed the path-safety guard."""

    status_code = 400
    default_message = "Invalid path"


class AlreadyExistsError(FotostandError):
    """A gallery with the requested id already exists."""

    status_code = 409
    default_message = "Gallery already exists"


class NotFoundError(FotostandError):
    """The gallery or file does not exist."""

    status_code = 404
    default_message = "Not found"


class PayloadTooLargeError(FotostandError):
    """The uploaded file exceeds the configured size limit."""

    status_code = 400
    default_message = "File too large"


class UnsupportedMediaTypeError(FotostandError):
    """The uploaded file's MIME type is not on the allow-list."""

    status_code = 400
    default_message = "Invalid file type"


class UnauthorizedError(FotostandError):
    """Missing, malformed or wrong upload bearer token."""

    status_code = 401
    default_message = "Unauthorized"


class NotConfiguredError(FotostandError):
    """Upload attempted while no token hash is configured."""

    status_code = 503
    default_message = "Upload not configured"


class StorageError(FotostandError):
    """Underlying filesystem failure other than not-found."""

    status_code = 500
    default_message = "Storage failure"


class AllocationExhaustedError(FotostandError):
    """Random id allocation ran out of attempts without finding a free id."""

    status_code = 500
    default_message = "Could not allocate a free gallery id"
