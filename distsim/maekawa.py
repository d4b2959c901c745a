"""Maekawa's quorum-based distributed mutual exclusion."""

from __future__ import annotations

import heapq
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum

from .transport import Message, Network, run_processes

DEFAULT_VOTING_SETS = (
    (0, 1, 2, 3),
    (0, 1, 2, 4),
    (0, 1, 2, 5),
    (0, 3, 4, 5),
    (1, 3, 4, 5),
    (2, 3, 4, 5),
)
DEFAULT_INITIATORS = (1, 5)
DEFAULT_TIMEOUT = 15.0
_POLL_INTERVAL = 0.01


class Tag(IntEnum):
    """Message kinds exchanged between requesters and voters."""

    REQUEST = 10
    YES = 11
    INQUIRE = 12
    RELINQUISH = 13
    RELEASE = 14


@dataclass
class MaekawaResult:
    """What happened during one run."""

    cs_order: list[int]
    violations: int
    timestamps: list[int]


class _Monitor:
    """Observes entries into the critical section across all ranks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._occupants = 0
        self.order: list[int] = []
        self.violations = 0

    def enter(self, rank: int) -> None:
        with self._lock:
            if self._occupants:
                self.violations += 1
            self._occupants += 1
            self.order.append(rank)

    def leave(self) -> None:
        with self._lock:
            self._occupants -= 1


class _MaekawaProcess:
    def __init__(
        self,
        rank: int,
        voting_set: list[int],
        initiator: bool,
        network: Network,
        monitor: _Monitor,
        emit: Callable[[str], None],
        timeout: float,
    ) -> None:
        self.rank = rank
        self.voting_set = voting_set
        self.initiator = initiator
        self.network = network
        self.monitor = monitor
        self.emit = emit
        self.timeout = timeout

        self.ts = 0
        self.yes_votes = 0
        self.want_cs = False
        self.in_cs = False
        self.have_voted = False
        self.candidate = -1
        self.candidate_ts = 0
        self.have_inquired = False
        self.waiting: list[tuple[int, int]] = []

    def _log(self, text: str) -> None:
        self.emit(f"[Rank {self.rank}] {text}")

    def _send(self, dest: int, tag: Tag, payload: object) -> None:
        self.network.send(self.rank, dest, int(tag), payload)

    def _others(self) -> list[int]:
        return [member for member in self.voting_set if member != self.rank]

    def run(self) -> int:
        time.sleep(0.1 * (self.rank % 2))
        if self.initiator:
            self._request()
        start = time.monotonic()
        done = False
        while not done:
            msg = self.network.try_recv(self.rank)
            if msg is not None:
                self._handle(msg)
            if (
                self.initiator
                and self.want_cs
                and not self.in_cs
                and self.yes_votes >= len(self.voting_set)
            ):
                self._critical_section()
                done = True
            elapsed = time.monotonic() - start
            if (
                not self.initiator
                and elapsed > self.timeout * 0.75
                and not self.waiting
                and not self.have_voted
            ):
                done = True
            elif not done and elapsed > self.timeout:
                raise TimeoutError(f"rank {self.rank} did not finish in {self.timeout} s")
            time.sleep(_POLL_INTERVAL)
        return self.ts

    def _request(self) -> None:
        self.want_cs = True
        self.ts += 1
        self.yes_votes = 1
        self.have_voted = True
        self.candidate = self.rank
        self.candidate_ts = self.ts
        self._log(f"Wants CS. Broadcasting REQUEST to voting set (ts={self.ts})")
        for member in self._others():
            self._send(member, Tag.REQUEST, (self.ts, self.rank))

    def _handle(self, msg: Message) -> None:
        handlers = {
            Tag.REQUEST: self._on_request,
            Tag.YES: self._on_yes,
            Tag.INQUIRE: self._on_inquire,
            Tag.RELINQUISH: self._on_relinquish,
            Tag.RELEASE: self._on_release,
        }
        handler = handlers.get(msg.tag)
        if handler is not None:
            handler(msg.payload)

    def _on_request(self, payload: tuple[int, int]) -> None:
        recv_ts, recv_pid = payload
        self.ts = max(self.ts, recv_ts) + 1
        self._log(f"Received REQUEST from rank {recv_pid} (ts={recv_ts})")
        if not self.have_voted:
            self.have_voted = True
            self.candidate = recv_pid
            self.candidate_ts = recv_ts
            self.have_inquired = False
            self._log(f" -> Granted YES to {recv_pid}")
            self._send(recv_pid, Tag.YES, self.rank)
            return
        heapq.heappush(self.waiting, (recv_ts, recv_pid))
        self._log(
            f" -> Deferred request from {recv_pid} (candidate={self.candidate}, "
            f"c_ts={self.candidate_ts})"
        )
        higher = (recv_ts, recv_pid) < (self.candidate_ts, self.candidate)
        if higher and not self.have_inquired:
            self._log(
                " -> New request has higher priority. Sending INQUIRE to current "
                f"Candidate {self.candidate}"
            )
            self._send(self.candidate, Tag.INQUIRE, self.rank)
            self.have_inquired = True

    def _on_yes(self, sender: int) -> None:
        self.ts += 1
        if self.want_cs:
            self.yes_votes += 1
            self._log(f"Received YES from rank {sender} -> Yes_votes={self.yes_votes}")
        else:
            self._log(f"Received a stray YES from {sender}, ignoring.")

    def _on_inquire(self, inquirer: int) -> None:
        self.ts += 1
        self._log(f"Received INQUIRE from rank {inquirer}")
        if self.want_cs and not self.in_cs:
            self._log(f" -> Still waiting for CS. Sending RELINQUISH to {inquirer}")
            self._send(inquirer, Tag.RELINQUISH, self.rank)
            self.yes_votes = max(0, self.yes_votes - 1)
        else:
            in_cs = "true" if self.in_cs else "false"
            want = "true" if self.want_cs else "false"
            self._log(f" -> Not relinquishing (inCS={in_cs}, WantCS={want})")

    def _on_relinquish(self, sender: int) -> None:
        self.ts += 1
        self._log(f"Received RELINQUISH from {sender}")
        if sender != self.candidate:
            self._log(
                f" -> WARNING: Received RELINQUISH from {sender} but my candidate "
                f"was {self.candidate}"
            )
        if self.have_voted:
            heapq.heappush(self.waiting, (self.candidate_ts, self.candidate))
        if self.waiting:
            self._grant_next("after RELINQUISH", "")
        else:
            self._free_vote()
            self._log(" -> No waiting requests; vote freed (UNEXPECTED after RELINQUISH)")

    def _on_release(self, sender: int) -> None:
        self.ts += 1
        self._log(f"Received RELEASE from {sender}")
        if sender != self.candidate:
            self._log(
                f" -> WARNING: Received RELEASE from {sender} but my candidate "
                f"was {self.candidate}"
            )
        self._free_vote()
        self._grant_next("due to RELEASE", " -> No waiting requests after RELEASE; vote freed")

    def _free_vote(self) -> None:
        self.have_voted = False
        self.candidate = -1
        self.candidate_ts = 0
        self.have_inquired = False

    def _grant_next(self, reason: str, nobody_waiting: str) -> None:
        if not self.waiting:
            self._log(nobody_waiting)
            return
        ts, pid = heapq.heappop(self.waiting)
        self.candidate = pid
        self.candidate_ts = ts
        self.have_voted = True
        self.have_inquired = False
        self._log(f" -> Granting YES to {pid} {reason}")
        self._send(pid, Tag.YES, self.rank)

    def _critical_section(self) -> None:
        self.in_cs = True
        self._log(f"=== ENTERING CRITICAL SECTION (ts={self.ts}) ===")
        self.monitor.enter(self.rank)
        time.sleep(0.5 + 0.05 * self.rank)
        self.monitor.leave()
        self._log("=== LEAVING CRITICAL SECTION ===")
        self.want_cs = False
        self.in_cs = False
        self.yes_votes = 0
        for member in self._others():
            self._send(member, Tag.RELEASE, self.rank)
        self._log(" -> Releasing my own vote.")
        self._free_vote()
        self._grant_next("(from self-release)", " -> My vote is now free, nobody is waiting.")


def _check_sets(voting_sets: Sequence[Sequence[int]]) -> list[list[int]]:
    sets = [list(s) for s in voting_sets]
    size = len(sets)
    if size < 1:
        raise ValueError("at least one process is required")
    for rank, members in enumerate(sets):
        if rank not in members:
            raise ValueError(f"voting set of rank {rank} must contain the rank itself")
        if len(set(members)) != len(members):
            raise ValueError(f"voting set of rank {rank} lists a member twice")
        for member in members:
            if not 0 <= member < size:
                raise ValueError(f"rank {rank} has member {member} outside 0..{size - 1}")
    return sets


def run_maekawa(
    voting_sets=DEFAULT_VOTING_SETS,
    initiators=DEFAULT_INITIATORS,
    log=print,
    timeout=DEFAULT_TIMEOUT,
):
    """Let each initiator enter the critical section once, guarded by voting sets."""
    sets = _check_sets(voting_sets)
    size = len(sets)
    chosen = set(initiators)
    for rank in chosen:
        if not 0 <= rank < size:
            raise ValueError(f"initiator {rank} is outside 0..{size - 1}")
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")

    network = Network(size)
    monitor = _Monitor()
    log_lock = threading.Lock()

    def emit(line: str) -> None:
        with log_lock:
            log(line)

    emit("=== Starting Maekawa DME simulation ===")

    def process(rank: int) -> int:
        return _MaekawaProcess(
            rank, sets[rank], rank in chosen, network, monitor, emit, timeout
        ).run()

    timestamps = run_processes(size, process)
    emit("=== Simulation finished (Maekawa) ===")
    return MaekawaResult(list(monitor.order), monitor.violations, list(timestamps))