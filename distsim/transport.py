"""In-process message passing between numbered ranks."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Message:
    """A tagged message delivered to a rank."""

    source: int
    tag: int
    payload: Any = None


class Network:
    """A set of FIFO mailboxes, one per rank, safe to use from many threads."""

    def __init__(self, size):
        if size < 1:
            raise ValueError(f"network size must be at least 1, got {size}")
        self.size = size
        self._mailboxes: list[deque[Message]] = [deque() for _ in range(size)]
        self._ready = threading.Condition()

    def _check_rank(self, rank: int) -> None:
        if not 0 <= rank < self.size:
            raise ValueError(f"rank {rank} is outside 0..{self.size - 1}")

    def send(self, source, dest, tag, payload=None):
        """Queue a message from ``source`` in the mailbox of ``dest``."""
        self._check_rank(source)
        self._check_rank(dest)
        with self._ready:
            self._mailboxes[dest].append(Message(source, tag, payload))
            self._ready.notify_all()

    def recv(self, rank, timeout=None):
        """Take the oldest message for ``rank``, waiting for one to arrive.

        Raises TimeoutError if nothing arrives within ``timeout`` seconds.
        """
        self._check_rank(rank)
        mailbox = self._mailboxes[rank]
        with self._ready:
            if not self._ready.wait_for(lambda: bool(mailbox), timeout):
                raise TimeoutError(f"rank {rank} received nothing in {timeout} s")
            return mailbox.popleft()

    def try_recv(self, rank):
        """Take the oldest message for ``rank``, or return None if there is none."""
        self._check_rank(rank)
        with self._ready:
            mailbox = self._mailboxes[rank]
            return mailbox.popleft() if mailbox else None

    def pending(self, rank):
        """Number of messages waiting for ``rank``."""
        self._check_rank(rank)
        with self._ready:
            return len(self._mailboxes[rank])


def run_processes(size: int, target: Callable[[int], T]) -> list[T]:
    """Run ``target(rank)`` for every rank in its own thread.

    Returns the results indexed by rank; re-raises the error of the lowest
    failing rank once all threads have finished.
    """
    if size < 1:
        raise ValueError(f"need at least one process, got {size}")
    results: list[Any] = [None] * size
    errors: list[BaseException | None] = [None] * size

    def body(rank: int) -> None:
        try:
            results[rank] = target(rank)
        except BaseException as exc:  # noqa: BLE001 - re-raised in caller
            errors[rank] = exc

    threads = [
        threading.Thread(target=body, args=(rank,), name=f"rank-{rank}", daemon=True)
        for rank in range(size)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    for error in errors:
        if error is not None:
            raise error
    return results