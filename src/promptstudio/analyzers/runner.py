"""Fire-and-forget execution of auxiliary analyses."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any, Callable, Optional

from promptstudio.core.events import EVENT_ANALYSIS_FINISHED, AnalysisFinishedEvent, EventBus
from promptstudio.core.logging import get_logger

logger = get_logger("promptstudio.analyzers.runner")


class AuxiliaryRunner:
    """
    Runs analyzer calls on worker threads.

    Exceptions raised by a task are caught, logged with context and reported
    as an AnalysisFinishedEvent; they never reach the caller.
    """

    def __init__(self, max_workers: int = 4, event_bus: Optional[EventBus] = None):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="aux")
        self.event_bus = event_bus
        self._futures: list[Future] = []
        self._lock = threading.Lock()

    def submit(
        self,
        name: str,
        func: Callable[..., Any],
        *args: Any,
        on_success: Optional[Callable[[Any], None]] = None,
        **kwargs: Any,
    ) -> Future:
        """
        Schedule an analysis.

        Args:
            name: Analysis name used in logs and events
            func: Callable to run
            on_success: Optional callback receiving the result
        """
        future = self.executor.submit(self._run, name, func, args, kwargs, on_success)
        with self._lock:
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)
        return future

    def _run(
        self,
        name: str,
        func: Callable[..., Any],
        args: tuple,
        kwargs: dict,
        on_success: Optional[Callable[[Any], None]],
    ) -> Any:
        try:
            result = func(*args, **kwargs)
            if on_success is not None:
                on_success(result)
        except Exception as e:
            logger.error(
                f"Auxiliary analysis {name} failed: {e}",
                context={"analysis": name, "error_type": type(e).__name__},
                exc_info=True,
            )
            self._publish(AnalysisFinishedEvent(name=name, success=False, error=str(e)))
            return None

        logger.info(f"Auxiliary analysis {name} finished", context={"analysis": name})
        self._publish(AnalysisFinishedEvent(name=name, success=True))
        return result

    def _publish(self, event: AnalysisFinishedEvent) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(EVENT_ANALYSIS_FINISHED, event)

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted task is done. Returns False on timeout."""
        with self._lock:
            pending = list(self._futures)
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Stop accepting work. With ``wait=False`` running tasks are abandoned, not joined."""
        self.executor.shutdown(wait=wait, cancel_futures=cancel_futures)

    def __enter__(self) -> "AuxiliaryRunner":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)
