"""Application error taxonomy.

Every error raised deliberately by the service derives from AppError and
carries the HTTP status code the API layer answers with. The exception
handlers in server.api_server turn them into {"error": message} bodies.
"""


class AppError(Exception):
    """Base class for all expected application errors.

    Attributes:
        message (str): User-facing message returned in the error body.
        status_code (int): HTTP status code the API layer responds with.
    """

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(AppError):
    """No authenticated owner could be determined for the request."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationError(AppError):
    """Missing, empty, oversized or unsupported input."""

    status_code = 400


class NoRelevantContextError(AppError):
    """Retrieval returned zero matches. Not a failure, but surfaced as 404."""

    status_code = 404

    def __init__(
        self,
        message: str = "No relevant documents found. Please upload documents first or try a different query.",
    ):
        super().__init__(message)


class ProviderConfigError(AppError, ValueError):
    """A provider selector is unknown or one of its required settings is missing.

    Raised eagerly while clients are constructed, never lazily on first use.
    """

    status_code = 500


class UpstreamServiceError(AppError):
    """A call to the vector index or a model provider failed.

    Attributes:
        completed (int): Number of batches that succeeded before the failure,
                         for batched operations. 0 otherwise.
        total (int): Total number of batches of the batched operation. 0 otherwise.
    """

    status_code = 500

    def __init__(self, message: str, completed: int = 0, total: int = 0):
        super().__init__(message)
        self.completed = completed
        self.total = total
