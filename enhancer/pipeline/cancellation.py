import threading

from enhancer.pipeline.exceptions import CancellationRequested


class CancellationToken:
    """Cooperative cancellation flag shared by one pipeline run.

    Collaborator calls check the token before and after every suspension
    point; nothing is interrupted preemptively.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "User cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequested(self._reason or "Pipeline cancelled")


def check_cancelled(token: CancellationToken | None) -> None:
    """Raise `CancellationRequested` when a token is present and set."""
    if token is not None:
        token.raise_if_cancelled()
