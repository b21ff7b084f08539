class DataChatError(Exception):
    """Base class for errors raised by the data chat service."""

    status_code = 500


class ConfigError(DataChatError):
    """Startup configuration is missing or invalid."""


class ValidationError(DataChatError):
    status_code = 400


class PayloadTooLargeError(ValidationError):
    status_code = 413


class ParseError(DataChatError):
    """Uploaded content could not be read as a table."""


class InferenceError(DataChatError):
    """Base class for failures talking to the remote inference endpoint."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.upstream_status = status_code


class AuthError(InferenceError):
    pass


class UpstreamError(InferenceError):
    pass


class NetworkError(InferenceError):
    pass
