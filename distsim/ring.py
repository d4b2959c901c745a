"""Leader election on a unidirectional ring (Chang and Roberts)."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass

from .transport import Network, run_processes

ELECTION_TAG = 0
ELECTED_TAG = 1
DEFAULT_IDS = (3, 32, 5, 80, 6, 12)
_RECV_TIMEOUT = 10.0


@dataclass
class RingNode:
    """The state one ring member ends the election with."""

    rank: int
    node_id: int
    leader_id: int = -1
    participant: bool = False

    @property
    def label(self) -> str:
        return f"[Rank {self.rank}, ID {self.node_id}]"


def run_election(ids=DEFAULT_IDS, log=print):
    """Elect the largest id on a ring; rank 0 starts. Returns every node's state."""
    ids = list(ids)
    if not ids:
        raise ValueError("the ring needs at least one process")
    if len(set(ids)) != len(ids):
        raise ValueError("process ids must be unique")
    size = len(ids)
    network = Network(size)
    nodes = [RingNode(rank, node_id) for rank, node_id in enumerate(ids)]
    log_lock = threading.Lock()

    def emit(line: str) -> None:
        with log_lock:
            log(line)

    def process(rank: int) -> RingNode:
        node = nodes[rank]
        neighbour = (rank + 1) % size
        if rank == 0:
            emit(f"{node.label} Initiates the election.")
            network.send(rank, neighbour, ELECTION_TAG, node.node_id)
            node.participant = True

        active = True
        while active:
            msg = network.recv(rank, _RECV_TIMEOUT)
            received = msg.payload
            if msg.tag == ELECTION_TAG:
                if received > node.node_id:
                    emit(f"{node.label} → Forwarding stronger candidate ID {received}.")
                    network.send(rank, neighbour, ELECTION_TAG, received)
                    node.participant = True
                elif received < node.node_id and not node.participant:
                    emit(
                        f"{node.label} ← Absorbed weaker ID {received}, sending my own ID "
                        f"{node.node_id} as the stronger candidate."
                    )
                    network.send(rank, neighbour, ELECTION_TAG, node.node_id)
                    node.participant = True
                elif received == node.node_id:
                    emit(f"{node.label} I AM THE LEADER!")
                    node.leader_id = node.node_id
                    active = False
                    network.send(rank, neighbour, ELECTED_TAG, node.node_id)
            elif msg.tag == ELECTED_TAG:
                node.leader_id = received
                active = False
                emit(f"{node.label} Learned that the leader is ID {received}.")
                if node.node_id != received:
                    network.send(rank, neighbour, ELECTED_TAG, received)
        return node

    return run_processes(size, process)


def format_results(ids: Sequence[int], leaders: Sequence[int]) -> str:
    """The final per-rank summary of an election."""
    if len(ids) != len(leaders):
        raise ValueError("ids and leaders must have the same length")
    rule = "-" * 49
    lines = ["", rule, "Election Complete. Final Results:", rule]
    lines.extend(
        f"   [Rank {rank}] My ID is {node_id}. The elected leader is ID {leader}."
        for rank, (node_id, leader) in enumerate(zip(ids, leaders))
    )
    return "\n".join(lines)