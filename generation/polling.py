"""
Operation Polling Stage

Fetches the status of a generation operation at a fixed interval until it
completes, fails, or exceeds a wall-clock timeout.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from rich.console import Console

from .cancel import CancelToken
from .client import SceneApiClient
from .errors import NoDataError, PollingTimeoutError, RunCancelledError, TaskFailedError
from .models import OperationResponse, SceneData

console = Console()

ProgressCallback = Callable[[float], None]

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_POLL_TIMEOUT = 600.0

# Polling progress is capped so the download stage keeps its share
POLL_PROGRESS_CAP = 0.8
POLL_PROGRESS_START = 0.15
POLL_PROGRESS_SPAN = 0.75


def polling_progress(elapsed: float, timeout: float) -> float:
    """
    Overall progress while waiting on the operation.

    min(elapsed/timeout, 0.8) remapped into the run-wide range starting
    at 0.15, so it never exceeds 0.75.
    """
    if timeout <= 0:
        fraction = POLL_PROGRESS_CAP
    else:
        fraction = min(max(elapsed, 0.0) / timeout, POLL_PROGRESS_CAP)
    return POLL_PROGRESS_START + fraction * POLL_PROGRESS_SPAN


def describe_operation(operation: OperationResponse) -> Optional[str]:
    """Server-side progress text, if the operation carries any."""
    metadata = operation.metadata
    if metadata is None or metadata.progress is None:
        return None
    parts = [p for p in (metadata.progress.status, metadata.progress.description) if p]
    return " - ".join(parts) if parts else None


@dataclass
class PollingEngine:
    """Waits for a generation operation to finish."""
    client: SceneApiClient
    interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_POLL_TIMEOUT
    cancel_token: Optional[CancelToken] = None
    clock: Callable[[], float] = time.monotonic
    sleep: Optional[Callable[[float], None]] = None

    def await_job(
        self,
        operation_id: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> SceneData:
        """
        Poll until the operation resolves.

        The timeout is checked before every fetch, so the loop overruns the
        bound by at most one interval plus one round-trip.

        Raises:
            PollingTimeoutError: elapsed time exceeded the timeout
            TaskFailedError: the operation finished with an error
            NoDataError: the operation finished without a scene
        """
        start = self.clock()
        last_status = None

        console.print(f"[blue]Waiting for operation {operation_id}...[/blue]")

        while True:
            elapsed = self.clock() - start
            if elapsed > self.timeout:
                raise PollingTimeoutError(self.timeout)

            operation = self.client.get_operation(operation_id)

            if operation.done:
                if operation.error is not None:
                    raise TaskFailedError(operation.error.message or "unknown error")
                if operation.response is None or operation.response.scene is None:
                    raise NoDataError("Operation finished without a scene.")
                console.print(f"[green]Operation finished after {elapsed:.0f}s[/green]")
                return operation.response.scene

            status = describe_operation(operation)
            if status and status != last_status:
                console.print(f"  [dim]{status}[/dim]")
                last_status = status

            if on_progress is not None:
                on_progress(polling_progress(elapsed, self.timeout))

            self._pause()

    def _pause(self) -> None:
        if self.sleep is not None:
            self.sleep(self.interval)
        elif self.cancel_token is not None:
            if self.cancel_token.wait(self.interval):
                raise RunCancelledError()
        else:
            time.sleep(self.interval)

        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()
