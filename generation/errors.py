"""
Error taxonomy for the scene generation API and the shared HTTP error mapper.

No call site retries: every failure ends the run and surfaces as one of the
classes below, carrying enough context to explain what went wrong.
"""

import json
from typing import Any, Optional, Union


class APIError(Exception):
    """Base class for scene generation failures."""
    pass


class InvalidAPIKeyError(APIError):
    def __init__(self):
        super().__init__("API key is invalid. Check the configured API key.")


class NetworkError(APIError):
    def __init__(self, cause: Any):
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class ServerError(APIError):
    def __init__(self, status_code: int, message: str, code: Optional[Union[str, int]] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"Server error ({status_code}): {message}")


class DecodingError(APIError):
    def __init__(self, cause: Any, endpoint: str = ""):
        self.cause = cause
        self.endpoint = endpoint
        where = f" [{endpoint}]" if endpoint else ""
        super().__init__(f"Could not decode response{where}: {cause}")


class TaskFailedError(APIError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Generation failed: {message}")


class PollingTimeoutError(APIError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Generation did not finish within {timeout:.0f}s. Try again.")


class NoDataError(APIError):
    def __init__(self, detail: str = "The server returned no data."):
        super().__init__(detail)


class InvalidURLError(APIError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL: {url!r}")


class RunCancelledError(APIError):
    def __init__(self):
        super().__init__("Generation was cancelled.")


class GenerationInProgressError(RuntimeError):
    """A second run was started while one is active on the same orchestrator."""
    pass


UNKNOWN_ERROR_MESSAGE = "unknown error"


def parse_api_error(status_code: int, body: Union[bytes, str, None]) -> APIError:
    """
    Map a non-2xx response to the error taxonomy.

    - 401 is always InvalidAPIKeyError, whatever the body says
    - {"error": {"code"?, "message"}} becomes ServerError with that message
    - otherwise a top-level "message" or "error" string is used
    - otherwise a ServerError with an unknown-error message
    """
    if status_code == 401:
        return InvalidAPIKeyError()

    try:
        data = json.loads(body) if body else None
    except (ValueError, TypeError):
        data = None

    if isinstance(data, dict):
        envelope = data.get("error")
        if isinstance(envelope, dict) and isinstance(envelope.get("message"), str):
            return ServerError(status_code, envelope["message"], code=envelope.get("code"))

        for key in ("message", "error"):
            if isinstance(data.get(key), str):
                return ServerError(status_code, data[key])

    return ServerError(status_code, UNKNOWN_ERROR_MESSAGE)
