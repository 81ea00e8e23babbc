"""In-process queue for background indexing work with bounded retries."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)

PENDING = "pending"
RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class IndexingJob:
    """Handle for a submitted job; callers may ignore it, poll it or wait on it."""

    name: str
    status: str = PENDING
    attempts: int = 0
    error: Optional[str] = None
    _future: Optional["Future[bool]"] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (SUCCEEDED, FAILED)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the job finishes; returns ``True`` when it succeeded."""

        if self._future is None:
            return self.status == SUCCEEDED
        return bool(self._future.result(timeout=timeout))


@dataclass(frozen=True)
class DeadLetter:
    name: str
    attempts: int
    error: Optional[str]
    args: Tuple[Any, ...] = ()


class IndexingQueue:
    """Thread-pool backed queue.

    A job is retried when its callable raises or returns ``False``, up to
    ``max_attempts`` with a linear backoff. Exhausted jobs are kept in
    ``dead_letters``.
    """

    def __init__(
        self,
        *,
        workers: int = 2,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, workers), thread_name_prefix="ragdesk-index"
        )
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._lock = threading.Lock()
        self._dead_letters: List[DeadLetter] = []

    @property
    def dead_letters(self) -> List[DeadLetter]:
        with self._lock:
            return list(self._dead_letters)

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> IndexingJob:
        job = IndexingJob(name=name)
        job._future = self._executor.submit(self._run, job, fn, args, kwargs)
        LOGGER.debug("Queued job %s", name)
        return job

    def _run(
        self,
        job: IndexingJob,
        fn: Callable[..., Any],
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            job.attempts = attempt
            job.status = RUNNING
            try:
                result = fn(*args, **kwargs)
            except Exception as exc:
                job.error = str(exc) or exc.__class__.__name__
                LOGGER.warning(
                    "Job %s raised on attempt %s/%s: %s",
                    job.name,
                    attempt,
                    self._max_attempts,
                    job.error,
                )
            else:
                if result is not False:
                    job.status = SUCCEEDED
                    job.error = None
                    LOGGER.info("Job %s succeeded after %s attempt(s)", job.name, attempt)
                    return True
                job.error = "job reported failure"
                LOGGER.warning(
                    "Job %s reported failure on attempt %s/%s", job.name, attempt, self._max_attempts
                )
            if attempt < self._max_attempts and self._backoff_seconds > 0:
                self._sleep(self._backoff_seconds * attempt)

        job.status = FAILED
        with self._lock:
            self._dead_letters.append(
                DeadLetter(name=job.name, attempts=job.attempts, error=job.error, args=args)
            )
        LOGGER.error("Job %s failed after %s attempts: %s", job.name, job.attempts, job.error)
        return False

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "IndexingQueue":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)


__all__ = ["DeadLetter", "IndexingJob", "IndexingQueue"]
