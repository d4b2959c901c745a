"""Single-decree Paxos with every process acting as acceptor and learner."""

from __future__ import annotations

import threading
import time
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum

from .transport import Message, Network, run_processes

DEFAULT_SIZE = 5
DEFAULT_PROPOSERS = (0, 1, 2)
_RECV_TIMEOUT = 10.0
_NONE = -1


class Tag(IntEnum):
    """Message kinds; every payload is a (n, v, na) triple."""

    PREPARE = 10
    PROMISE = 11
    PREPARE_FAILED = 12
    ACCEPT = 13
    ACCEPTED = 14
    DECIDE = 15


@dataclass
class PaxosOutcome:
    """The value and proposal number each rank learned."""

    values: list[int]
    proposals: list[int]

    @property
    def agreed(self) -> bool:
        return len(set(self.values)) == 1

    @property
    def value(self) -> int:
        """The decided value; raises ValueError if ranks disagree."""
        if not self.agreed:
            raise ValueError(f"ranks learned different values: {self.values}")
        return self.values[0]


class _PaxosProcess:
    def __init__(
        self,
        rank: int,
        size: int,
        proposer: bool,
        network: Network,
        emit: Callable[[str], None],
    ) -> None:
        self.rank = rank
        self.size = size
        self.proposer = proposer
        self.network = network
        self.emit = emit
        self.quorum = size // 2 + 1

        self.nh = _NONE
        self.na = _NONE
        self.va = _NONE

        self.n = rank
        self.round_count = 1
        self.v = 1000 + rank
        self.promises = 0
        self.max_na_seen = _NONE
        self.proposal_active = False
        self.phase2 = False

        self.votes: Counter[int] = Counter()
        self.consensus = False
        self.done = False
        self.learned: tuple[int, int] | None = None

    def _log(self, text: str) -> None:
        self.emit(f"[Rank {self.rank}] {text}")

    def _send(self, dest: int, tag: Tag, n: int, v: int = _NONE, na: int = _NONE) -> None:
        self.network.send(self.rank, dest, int(tag), (n, v, na))

    def _broadcast(self, tag: Tag, n: int, v: int = _NONE, na: int = _NONE) -> None:
        for dest in range(self.size):
            self._send(dest, tag, n, v, na)

    def run(self) -> tuple[int, int]:
        time.sleep(0.1 * (self.rank % 3))
        if self.proposer:
            self._prepare()
        while not self.done:
            self._handle(self.network.recv(self.rank, _RECV_TIMEOUT))
        assert self.learned is not None
        return self.learned

    def _prepare(self) -> None:
        self.n = self.round_count * self.size + self.rank
        self.round_count += 1
        self.proposal_active = True
        self._log(f"Proposer: Sending <prepare, {self.n}>")
        self._broadcast(Tag.PREPARE, self.n)

    def _handle(self, msg: Message) -> None:
        recv_n, recv_v, recv_na = msg.payload
        src = msg.source
        if msg.tag == Tag.PREPARE:
            if recv_n > self.nh:
                self.nh = recv_n
                self._send(src, Tag.PROMISE, recv_n, self.va, self.na)
                self._log(f"Acceptor: Promised n={recv_n} (Previous na={self.na})")
            else:
                self._send(src, Tag.PREPARE_FAILED, recv_n)
                self._log(f"Acceptor: Rejected prepare n={recv_n} (Current nh={self.nh})")
        elif msg.tag == Tag.PROMISE:
            if self.proposer and self.proposal_active and not self.phase2 and recv_n == self.n:
                self.promises += 1
                if recv_na > self.max_na_seen:
                    self.max_na_seen = recv_na
                    self.v = recv_v
                    self._log(
                        f"Proposer: Observed higher na={recv_na}. Updating v to {self.v}"
                    )
                if self.promises >= self.quorum:
                    self.phase2 = True
                    self._log(
                        f"Proposer: Majority Reached. Sending <accept, {self.n}, {self.v}>"
                    )
                    self._broadcast(Tag.ACCEPT, self.n, self.v)
        elif msg.tag == Tag.PREPARE_FAILED:
            if self.proposer and recv_n == self.n:
                self.proposal_active = False
        elif msg.tag == Tag.ACCEPT:
            if recv_n >= self.nh:
                self.na = recv_n
                self.nh = recv_n
                self.va = recv_v
                self._log(f"Acceptor: Accepted <n={self.na}, v={self.va}>")
                self._broadcast(Tag.ACCEPTED, self.na, self.va)
            else:
                self._log(f"Acceptor: Ignored Accept n={recv_n} because nh={self.nh}")
        elif msg.tag == Tag.ACCEPTED:
            self.votes[recv_n] += 1
            if self.votes[recv_n] >= self.quorum and not self.consensus:
                self.consensus = True
                self._log(
                    f"=== CONSENSUS REACHED: Value {recv_v} (Proposal n={recv_n}) ==="
                )
                self._broadcast(Tag.DECIDE, recv_n, recv_v)
                self.learned = (recv_n, recv_v)
                self.done = True
        elif msg.tag == Tag.DECIDE:
            if not self.done:
                self._log(f"Decide received. Value: {recv_v}")
                self.learned = (recv_n, recv_v)
                self.done = True


def run_paxos(size=DEFAULT_SIZE, proposers: Sequence[int] = DEFAULT_PROPOSERS, log=print):
    """Run one Paxos instance; every rank returns the proposal and value it learned."""
    if size < 3:
        raise ValueError("Run with at least 3 processes.")
    chosen = set(proposers)
    if not chosen:
        raise ValueError("at least one proposer is required")
    for rank in chosen:
        if not 0 <= rank < size:
            raise ValueError(f"proposer {rank} is outside 0..{size - 1}")

    network = Network(size)
    log_lock = threading.Lock()

    def emit(line: str) -> None:
        with log_lock:
            log(line)

    def process(rank: int) -> tuple[int, int]:
        return _PaxosProcess(rank, size, rank in chosen, network, emit).run()

    learned = run_processes(size, process)
    return PaxosOutcome(
        values=[value for _, value in learned],
        proposals=[n for n, _ in learned],
    )