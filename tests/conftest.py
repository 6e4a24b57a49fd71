"""Shared fixtures: a scripted HTTP session, a stalling local server and frame files on disk."""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pytest
import requests
from PIL import Image


class FakeResponse:
    """Just enough of requests.Response for the API client."""

    def __init__(self, status_code: int = 200, body: Union[dict, bytes, str, None] = None):
        self.status_code = status_code
        if isinstance(body, dict):
            self.content = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            self.content = body.encode("utf-8")
        else:
            self.content = body or b""


Handler = Callable[[str, str, dict], FakeResponse]


class FakeSession:
    """
    Stands in for requests.Session.

    Routes are matched by (METHOD, url substring) in registration order;
    each route returns a scripted FakeResponse, or raises if the handler
    raises. Every call is recorded in `calls`.
    """

    def __init__(self):
        self.calls: List[Dict] = []
        self.routes: List = []
        self.closed = False

    def add(self, method: str, fragment: str, *responses: Union[FakeResponse, Handler]):
        self.routes.append([method.upper(), fragment, list(responses)])
        return self

    def request(self, method, url, **kwargs):
        if self.closed:
            raise requests.ConnectionError("session closed")
        self.calls.append({"method": method, "url": url, **kwargs})
        for route in self.routes:
            route_method, fragment, responses = route
            if route_method == method.upper() and fragment in url:
                # The last scripted response repeats
                item = responses.pop(0) if len(responses) > 1 else responses[0]
                if callable(item) and not isinstance(item, FakeResponse):
                    return item(method, url, kwargs)
                return item
        raise AssertionError(f"Unexpected request: {method} {url}")

    def close(self):
        self.closed = True

    def calls_to(self, fragment: str) -> List[Dict]:
        return [c for c in self.calls if fragment in c["url"]]


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


BASE_URL = "https://api.test/v1"
UPLOAD_HOST = "https://storage.test"


def prepare_upload_body(asset_id: str) -> dict:
    return {
        "media_asset": {"id": asset_id},
        "upload_info": {
            "upload_url": f"{UPLOAD_HOST}/upload/{asset_id}",
            "upload_method": "PUT",
            "required_headers": {"x-goog-meta-asset": asset_id},
        },
    }


def operation_body(
    operation_id: str = "op-1",
    done: bool = False,
    error: Optional[dict] = None,
    spz_urls: Optional[dict] = None,
    progress: Optional[dict] = None,
) -> dict:
    body = {"operation_id": operation_id, "done": done}
    if error is not None:
        body["error"] = error
    if progress is not None:
        body["metadata"] = {"progress": progress}
    if spz_urls is not None:
        body["response"] = {
            "scene": {
                "id": "scene-1",
                "display_name": "Orbit Capture",
                "assets": {"splats": {"spz_urls": spz_urls}},
            }
        }
    return body


def happy_session(
    asset_count: int = 4,
    pending_polls: int = 1,
    spz_urls: Optional[dict] = None,
) -> FakeSession:
    """A session scripted for one complete successful run."""
    spz_urls = spz_urls or {"full_res": f"{UPLOAD_HOST}/scene/full.spz"}
    session = FakeSession()
    session.add(
        "POST", "/media-assets:prepare_upload",
        *[FakeResponse(200, prepare_upload_body(f"asset-{i}")) for i in range(asset_count)],
    )
    session.add("PUT", "/upload/", FakeResponse(200))
    session.add("POST", "/scenes:generate", FakeResponse(200, operation_body()))
    polls = [FakeResponse(200, operation_body(progress={"status": "IN_PROGRESS"}))
             for _ in range(pending_polls)]
    polls.append(FakeResponse(200, operation_body(done=True, spz_urls=spz_urls)))
    session.add("GET", "/operations/op-1", *polls)
    session.add("GET", "/scene/", FakeResponse(200, b"SPZ\x00splat-bytes"))
    return session


def write_frames(directory: Path, count: int, size=(64, 48)) -> List[Path]:
    """Write count small JPEG frames named capture_XX.jpg."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in range(count):
        array = np.full((size[1], size[0], 3), (i * 20) % 256, dtype=np.uint8)
        path = directory / f"capture_{i:02d}.jpg"
        Image.fromarray(array).save(path, format="JPEG")
        paths.append(path)
    return paths


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def frames_dir(tmp_path):
    directory = tmp_path / "frames"
    write_frames(directory, 4)
    return directory


SLOW_RESPONSE_SECONDS = 6.0


@pytest.fixture
def slow_server():
    """
    A real local HTTP server whose responses stall until released.

    Yields (base_url, release); every request waits on the release event for
    up to SLOW_RESPONSE_SECONDS before answering with an empty JSON body.
    """
    release = threading.Event()

    class StallingHandler(BaseHTTPRequestHandler):
        def _stall(self):
            release.wait(SLOW_RESPONSE_SECONDS)
            body = b"{}"
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_POST(self):
            length = int(self.headers.get("Content-Length") or 0)
            self.rfile.read(length)
            self._stall()

        do_GET = _stall

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), StallingHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/v1", release
    finally:
        release.set()
        server.shutdown()
        server.server_close()
