"""
Fire-and-forget statement queue.

Statements pushed onto a `StatementQueue` are executed in order by one
background worker thread. Callers never see the outcome: failures are
logged and the worker moves on.

    queue = StatementQueue()
    queue.start()
    queue.enqueue(cn, 'UPDATE stats SET hits=hits+1 WHERE id=?', 7)
    ...
    queue.stop()
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Self

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


@dataclass
class QueueItem:
    """A statement waiting to be executed on a connection."""
    cn: Any
    sql: str
    args: tuple = field(default_factory=tuple)

    def execute(self) -> int:
        return self.cn.execute(self.sql, *self.args)


class StatementQueue:
    """Ordered queue of statements drained by a daemon worker thread.
    """

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self.poll_interval = poll_interval
        self._items: deque[QueueItem] = deque()
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None
        self.quitted = False

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.stop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        """Launch the worker thread. Starting a running queue does nothing.
        """
        if self.running:
            return
        self._stop.clear()
        self.quitted = False
        self._worker = threading.Thread(target=self._run, name='dbkit-statement-queue',
                                        daemon=True)
        self._worker.start()
        logger.debug('Statement queue started')

    def push(self, item: QueueItem) -> None:
        with self._lock:
            self._items.append(item)
        self._wakeup.set()

    def enqueue(self, cn: Any, sql: str, *args: Any) -> None:
        """Queue `sql` with `args` for execution on `cn`.
        """
        self.push(QueueItem(cn, sql, args))

    def pop(self) -> QueueItem | None:
        """Take the oldest item, waiting until one arrives.

        Wakes at least every `poll_interval` seconds to check for shutdown.

        Returns
            The item, or None once stop has been requested
        """
        while True:
            with self._lock:
                if self._items:
                    return self._items.popleft()
                if self._stop.is_set():
                    return None
                self._wakeup.clear()
            self._wakeup.wait(self.poll_interval)

    def _run(self) -> None:
        try:
            while (item := self.pop()) is not None:
                self._execute(item)
        finally:
            self.quitted = True
            logger.debug('Statement queue stopped')

    def _execute(self, item: QueueItem) -> None:
        try:
            item.execute()
        except Exception as exc:
            logger.warning(f'Queued statement failed: {exc}\nSQL:\n{item.sql}\nargs: {item.args}')

    def stop(self, drain: bool = True, timeout: float | None = None) -> None:
        """Signal the worker to exit and wait for it.

        Args:
            drain: Execute items still queued before exiting; otherwise drop them
            timeout: Seconds to wait for the worker, None to wait indefinitely
        """
        if not drain:
            with self._lock:
                dropped = len(self._items)
                self._items.clear()
            if dropped:
                logger.warning(f'Dropped {dropped} queued statements on stop')
        self._stop.set()
        self._wakeup.set()
        if self._worker is not None:
            self._worker.join(timeout)
        else:
            self.quitted = True
