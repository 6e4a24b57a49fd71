"""
Scene Generation API Client

Thin wrapper over a requests.Session for the /v1 API: attaches the API key,
maps non-2xx responses through `parse_api_error` and decodes bodies into the
pydantic wire models.
"""

import threading
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import quote, urlparse

import requests
from pydantic import BaseModel, ValidationError
from rich.console import Console

from utils.config import DEFAULT_BASE_URL
from .cancel import CancelToken
from .errors import (
    DecodingError,
    InvalidURLError,
    NetworkError,
    RunCancelledError,
    ServerError,
    parse_api_error,
)
from .models import (
    OperationResponse,
    PrepareUploadRequest,
    PrepareUploadResponse,
    SceneGenerateRequest,
    UploadInfo,
)

console = Console()

ModelT = TypeVar("ModelT", bound=BaseModel)

API_KEY_HEADER = "X-Api-Key"
RAW_BODY_PREVIEW = 500


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def validate_http_url(url: str) -> str:
    """Return url if it is an absolute http(s) URL, else raise InvalidURLError."""
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLError(url)
    return url


class SceneApiClient:
    """Client for media upload, scene generation and operation polling."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[Any] = None,
        request_timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.request_timeout = request_timeout
        self.cancel_token: Optional[CancelToken] = None

    def attach(self, token: CancelToken) -> None:
        """Bind a run's cancel token; cancelling closes the HTTP session."""
        self.cancel_token = token
        token.on_cancel(self.session.close)

    def close(self) -> None:
        self.session.close()

    # ── Transport ────────────────────────────────────────────────────

    def _check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Issue one HTTP request that a cancel can abandon.

        Closing a requests.Session does not interrupt a connection that is
        already checked out, so with a cancel token attached the request runs
        on a daemon worker thread and the caller returns as soon as either the
        response arrives or the token fires. An abandoned request runs on until
        its own timeout and its result is dropped.
        """
        token = self.cancel_token
        if token is None:
            return self.session.request(method, url, **kwargs)

        finished = threading.Event()
        outcome: Dict[str, Any] = {}

        def worker():
            try:
                outcome["response"] = self.session.request(method, url, **kwargs)
            except Exception as e:
                outcome["error"] = e
            finally:
                finished.set()

        wake = finished.set
        token.on_cancel(wake)
        try:
            threading.Thread(target=worker, daemon=True).start()
            finished.wait()
        finally:
            token.remove_callback(wake)

        if token.cancelled:
            raise RunCancelledError()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def _send(
        self,
        method: str,
        url: str,
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> requests.Response:
        self._check_cancelled()

        request_headers = dict(headers or {})
        if authenticated:
            request_headers[API_KEY_HEADER] = self.api_key

        try:
            response = self._request(
                method,
                url,
                headers=request_headers,
                timeout=self.request_timeout,
                **kwargs
            )
        except requests.RequestException as e:
            if self.cancel_token is not None and self.cancel_token.cancelled:
                raise RunCancelledError() from e
            raise NetworkError(e) from e

        self._check_cancelled()
        return response

    def _decode(self, model: Type[ModelT], response: requests.Response, endpoint: str) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raw = response.content[:RAW_BODY_PREVIEW].decode("utf-8", errors="replace")
            console.print(f"[red][{endpoint}] decode error:[/red] {e}")
            console.print(f"[dim][{endpoint}] response body: {raw}[/dim]")
            raise DecodingError(e, endpoint) from e

    def _call(
        self,
        method: str,
        path: str,
        model: Type[ModelT],
        endpoint: str,
        payload: Optional[dict] = None
    ) -> ModelT:
        response = self._send(method, f"{self.base_url}{path}", json=payload)
        if not is_success(response.status_code):
            raise parse_api_error(response.status_code, response.content)
        return self._decode(model, response, endpoint)

    # ── Endpoints ────────────────────────────────────────────────────

    def prepare_upload(self, file_name: str, extension: str = "jpg") -> PrepareUploadResponse:
        """POST /media-assets:prepare_upload"""
        body = PrepareUploadRequest(file_name=file_name, kind="image", extension=extension)
        return self._call(
            "POST",
            "/media-assets:prepare_upload",
            PrepareUploadResponse,
            "prepare_upload",
            payload=body.model_dump(),
        )

    def upload_to_signed_url(self, upload_info: UploadInfo, data: bytes) -> None:
        """
        Send encoded image bytes to the upload URL from prepare_upload.

        Any non-2xx status or transport failure is a ServerError.
        """
        url = validate_http_url(upload_info.upload_url)
        headers = {"Content-Type": "image/jpeg"}
        headers.update(upload_info.required_headers)

        try:
            response = self._send(
                upload_info.upload_method.upper(),
                url,
                authenticated=False,
                headers=headers,
                data=data,
            )
        except NetworkError as e:
            raise ServerError(0, f"image upload failed: {e.cause}") from e

        if not is_success(response.status_code):
            raise ServerError(response.status_code, "image upload failed")

    def generate_scene(self, request: SceneGenerateRequest) -> OperationResponse:
        """POST /scenes:generate"""
        return self._call(
            "POST",
            "/scenes:generate",
            OperationResponse,
            "scenes:generate",
            payload=request.to_payload(),
        )

    def get_operation(self, operation_id: str) -> OperationResponse:
        """GET /operations/{id}"""
        return self._call(
            "GET",
            f"/operations/{quote(operation_id, safe='')}",
            OperationResponse,
            f"operations/{operation_id}",
        )

    def download(self, url: str) -> bytes:
        """Fetch an artifact; non-2xx or transport failure is a NetworkError."""
        url = validate_http_url(url)
        response = self._send("GET", url, authenticated=False)
        if not is_success(response.status_code):
            raise NetworkError(f"download failed with HTTP {response.status_code}")
        return response.content
