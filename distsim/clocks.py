"""Lamport, vector and matrix logical clocks and their simulations."""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass

from .transport import Network

CLOCK_TAG = 0


@dataclass
class LamportClock:
    """A scalar logical clock."""

    value: int = 0

    def tick(self):
        """Advance for a local or send event."""
        self.value += 1
        return self.value

    def receive(self, received):
        """Merge a received timestamp and advance."""
        self.value = max(self.value, received) + 1
        return self.value


def _check_rank(size: int, rank: int) -> None:
    if size < 1:
        raise ValueError(f"clock size must be at least 1, got {size}")
    if not 0 <= rank < size:
        raise ValueError(f"rank {rank} is outside 0..{size - 1}")


class VectorClock:
    """A vector clock owned by one rank."""

    def __init__(self, size, rank):
        _check_rank(size, rank)
        self.size = size
        self.rank = rank
        self._values = [0] * size

    def tick(self):
        """Advance the owner's component."""
        self._values[self.rank] += 1
        return self.snapshot()

    def receive(self, received):
        """Take the component-wise maximum, then advance the owner's component."""
        received = list(received)
        if len(received) != self.size:
            raise ValueError(f"expected {self.size} components, got {len(received)}")
        self._values = [max(mine, theirs) for mine, theirs in zip(self._values, received)]
        self._values[self.rank] += 1
        return self.snapshot()

    def snapshot(self):
        """An immutable copy of the components."""
        return tuple(self._values)


class MatrixClock:
    """A matrix clock owned by one rank."""

    def __init__(self, size, rank):
        _check_rank(size, rank)
        self.size = size
        self.rank = rank
        self._rows = [[0] * size for _ in range(size)]

    def tick(self):
        """Advance the owner's diagonal entry."""
        self._rows[self.rank][self.rank] += 1
        return self.snapshot()

    def receive(self, received):
        """Advance the owner's diagonal entry, then merge entry-wise maxima."""
        rows = [list(row) for row in received]
        if len(rows) != self.size or any(len(row) != self.size for row in rows):
            raise ValueError(f"expected a {self.size}x{self.size} matrix")
        self._rows[self.rank][self.rank] += 1
        self._rows = [
            [max(mine, theirs) for mine, theirs in zip(local_row, other_row)]
            for local_row, other_row in zip(self._rows, rows)
        ]
        return self.snapshot()

    def snapshot(self):
        """An immutable copy of the matrix."""
        return tuple(tuple(row) for row in self._rows)


def format_lamport(rank, clock, message):
    return f"[Rank {rank}] {message} LC: {clock}"


def format_vector(rank, message, clock):
    values = ", ".join(str(v) for v in clock)
    return f"[Process {rank}] {message} VC: [{values}]"


def format_matrix(rank, message, clock):
    rows = ",\n   ".join(
        "[" + ",".join(f"{value:>3}" for value in row) + "]" for row in clock
    )
    return f"[Rank {rank}] {message}\n  [{rows}]"


Log = Callable[[str], None]


def _validate(size: int, iterations: int) -> None:
    if size < 2:
        raise ValueError("This program requires at least 2 processes.")
    if iterations < 0:
        raise ValueError(f"iterations must not be negative, got {iterations}")


def _schedule(size: int, iterations: int, rng: random.Random) -> Iterator[int]:
    """Ranks in the order they act: every rank once per iteration, shuffled."""
    for _ in range(iterations):
        yield from rng.sample(range(size), size)


def _pick_peer(rng: random.Random, size: int, rank: int) -> int:
    dest = rng.randrange(size)
    while dest == rank:
        dest = rng.randrange(size)
    return dest


def simulate_lamport(size, iterations=10, seed=None, log=print):
    """Run random send and internal events; return each rank's final clock."""
    _validate(size, iterations)
    rng = random.Random(seed)
    net = Network(size)
    clocks = [LamportClock() for _ in range(size)]
    log("--- Lamport Logical Clock Simulation Starting ---")
    for rank in _schedule(size, iterations, rng):
        clock = clocks[rank]
        msg = net.try_recv(rank)
        if msg is not None:
            log(f"[Rank {rank}] Received clock value {msg.payload} from Rank {msg.source}.")
            clock.receive(msg.payload)
            log(format_lamport(rank, clock.value, "Updated after receive."))
        clock.tick()
        if rng.randrange(3) == 0:
            dest = _pick_peer(rng, size, rank)
            net.send(rank, dest, CLOCK_TAG, clock.value)
            log(format_lamport(rank, clock.value, f"Sent to Rank {dest}."))
        else:
            log(format_lamport(rank, clock.value, "Internal event.       "))
    log("\n--- Simulation Finished ---")
    for rank, clock in enumerate(clocks):
        log(format_lamport(rank, clock.value, "Final State.          "))
    return [clock.value for clock in clocks]


def simulate_vector(size, iterations=10, seed=None, log=print):
    """Run random send and internal events; return each rank's final vector."""
    _validate(size, iterations)
    rng = random.Random(seed)
    net = Network(size)
    clocks = [VectorClock(size, rank) for rank in range(size)]
    for rank in _schedule(size, iterations, rng):
        clock = clocks[rank]
        msg = net.try_recv(rank)
        if msg is not None:
            log(f"[Process {rank}] Received clock from Process {msg.source}.")
            clock.receive(msg.payload)
            log(format_vector(rank, "Updated after receive.", clock.snapshot()))
        clock.tick()
        if rng.randrange(3) == 0:
            dest = _pick_peer(rng, size, rank)
            net.send(rank, dest, CLOCK_TAG, clock.snapshot())
            log(f"[Process {rank}] Sent clock to Process {dest}.")
        else:
            log(format_vector(rank, "Internal event.", clock.snapshot()))
    log("\n--- FINAL STATES ---\n")
    for rank, clock in enumerate(clocks):
        log(format_vector(rank, "Final state", clock.snapshot()))
    return [clock.snapshot() for clock in clocks]


def simulate_matrix(size, iterations=10, seed=None, log=print):
    """Run random send and internal events; return each rank's final matrix."""
    _validate(size, iterations)
    rng = random.Random(seed)
    net = Network(size)
    clocks = [MatrixClock(size, rank) for rank in range(size)]
    log("--- Matrix Clock Simulation Starting ---")
    for rank in _schedule(size, iterations, rng):
        clock = clocks[rank]
        msg = net.try_recv(rank)
        if msg is not None:
            log(f"[Rank {rank}] Received clock from Rank {msg.source}.")
            clock.receive(msg.payload)
            log(format_matrix(rank, "Updated after receive.", clock.snapshot()))
        clock.tick()
        if rng.randrange(3) == 0:
            dest = _pick_peer(rng, size, rank)
            net.send(rank, dest, CLOCK_TAG, clock.snapshot())
            log(format_matrix(rank, f"Sent to Rank {dest}.", clock.snapshot()))
        else:
            log(format_matrix(rank, "Internal event.", clock.snapshot()))
    log("\n--- Simulation Finished ---")
    for rank, clock in enumerate(clocks):
        log(format_matrix(rank, "Final State.", clock.snapshot()))
    return [clock.snapshot() for clock in clocks]


def _as_rows(clock: Iterable[Sequence[int]]) -> list[list[int]]:
    return [list(row) for row in clock]