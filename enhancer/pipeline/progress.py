import threading
from collections.abc import Callable

from enhancer.logging.logger import Log
from enhancer.pipeline.state import PipelineState

StateObserver = Callable[[PipelineState], None]


class Subscription:
    """Handle returned by `ProgressPublisher.subscribe`."""

    def __init__(self, publisher: "ProgressPublisher", observer: StateObserver) -> None:
        self._publisher = publisher
        self._observer = observer
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._publisher._remove(self._observer)
            self._active = False


class ProgressPublisher:
    """Delivers state snapshots to subscribed observers.

    Observers are called outside the lock, in subscription order. A failing
    observer is logged and does not affect the run or the other observers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: list[StateObserver] = []

    def subscribe(self, observer: StateObserver) -> Subscription:
        with self._lock:
            self._observers.append(observer)
        return Subscription(self, observer)

    def publish(self, state: PipelineState) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(state)
            except Exception:
                Log.exception(f"Progress observer failed for {state.pipeline_id}")

    def _remove(self, observer: StateObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
