"""Level-synchronised breadth-first spanning tree construction."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from .spanning_tree import _check_adjacency
from .transport import Message, Network, run_processes

PROPOSE_TAG = 10
ACCEPT_TAG = 11
REJECT_TAG = 12
SYNC_TAG = 13
COMPLETE_TAG = 14
TERMINATE_TAG = 15

_RECV_TIMEOUT = 10.0


class _Level(IntEnum):
    WAITING = 0
    PROPOSING = 1
    AWAITING_CHILDREN = 2
    START_PROPOSALS = 3
    SUBTREE_DONE = 4
    FINISHED = 5


@dataclass
class BfsNode:
    """One process's place in the finished BFS tree."""

    rank: int
    neighbours: list[int]
    parent: int | None = None
    children: list[int] = field(default_factory=list)


def default_topology(size: int) -> list[list[int]]:
    """The built-in square for four processes; otherwise isolated nodes."""
    if size == 4:
        return [[1, 3], [0, 2], [1, 3], [0, 2]]
    return [[] for _ in range(size)]


class _BfsProcess:
    def __init__(
        self,
        node: BfsNode,
        network: Network,
        root: int,
        emit: Callable[[str], None],
    ) -> None:
        self.node = node
        self.network = network
        self.root = root
        self.emit = emit
        self.level = _Level.WAITING
        self.responses_left = 0
        self.children_left = 0
        self.active = True
        self.backlog: deque[Message] = deque()

    @property
    def rank(self) -> int:
        return self.node.rank

    def _send(self, dest: int, tag: int) -> None:
        self.network.send(self.rank, dest, tag)

    def run(self) -> BfsNode:
        self._start()
        while True:
            self._advance()
            if not self.active:
                break
            if self.backlog:
                msg = self.backlog.popleft()
            else:
                msg = self.network.recv(self.rank, _RECV_TIMEOUT)
            self._handle(msg)
        return self.node

    def _start(self) -> None:
        rank = self.rank
        if rank == self.root:
            self.emit(f"\nRank {rank} (ROOT) initiating Level 0 proposals.")
            for dest in self.node.neighbours:
                self._send(dest, PROPOSE_TAG)
            self.responses_left = len(self.node.neighbours)
            self.level = _Level.PROPOSING
            return
        self.emit(f"Rank {rank}: Waiting for first MC message to select parent.")
        while True:
            msg = self.network.recv(rank, _RECV_TIMEOUT)
            if msg.tag == PROPOSE_TAG:
                break
            self.backlog.append(msg)
        parent = msg.source
        self.node.parent = parent
        self.emit(
            f"Rank {rank}: First MC received from {parent}. Parent set to {parent}."
        )
        self._send(parent, ACCEPT_TAG)
        self.level = _Level.WAITING

    def _handle(self, msg: Message) -> None:
        rank = self.rank
        sender = msg.source
        if msg.tag == ACCEPT_TAG:
            if self.level == _Level.PROPOSING:
                self.node.children.append(sender)
                self.responses_left -= 1
                self.emit(
                    f"Rank {rank}: Accepted as parent by {sender} (MP). "
                    f"Resp left: {self.responses_left}"
                )
        elif msg.tag == COMPLETE_TAG:
            if self.level == _Level.AWAITING_CHILDREN:
                self.children_left -= 1
                self.emit(
                    f"Rank {rank}: Child {sender} reported completion. "
                    f"{self.children_left} children left."
                )
        elif msg.tag == REJECT_TAG:
            if self.level == _Level.PROPOSING:
                self.responses_left -= 1
                self.emit(
                    f"Rank {rank}: Rejected by {sender} (MR). "
                    f"Resp left: {self.responses_left}"
                )
        elif msg.tag == SYNC_TAG:
            if (
                rank != self.root
                and sender == self.node.parent
                and self.level == _Level.WAITING
            ):
                self.level = _Level.START_PROPOSALS
                self.emit(
                    f"Rank {rank}: Received MS from parent {self.node.parent}. "
                    "STARTING PROPOSALS."
                )
        elif msg.tag == PROPOSE_TAG:
            self._send(sender, REJECT_TAG)
            self.emit(f"Rank {rank}: Rejected late MC proposal from {sender} (sent MR).")
        elif msg.tag == TERMINATE_TAG:
            if rank != self.root:
                self.emit(f"Rank {rank}: Received TERMINATE from ROOT. Shutting down.")
                self.active = False

    def _advance(self) -> None:
        rank = self.rank
        if self.level == _Level.START_PROPOSALS:
            sent = 0
            for dest in self.node.neighbours:
                if dest != self.node.parent:
                    self._send(dest, PROPOSE_TAG)
                    self.emit(f"Rank {rank}: Sent MC to neighbor {dest}")
                    sent += 1
            self.responses_left = sent
            self.level = _Level.PROPOSING
            if sent == 0:
                self.emit(f"Rank {rank}: Is a LEAF node. No proposals to send.")
                self.level = _Level.AWAITING_CHILDREN
                self.children_left = 0

        if self.level == _Level.PROPOSING and self.responses_left == 0:
            self.level = _Level.AWAITING_CHILDREN
            self.children_left = len(self.node.children)
            self.emit(
                f"Rank {rank}: Finished proposals. Sending MS_SYNC to "
                f"{self.children_left} children."
            )
            for child in self.node.children:
                self._send(child, SYNC_TAG)
                self.emit(
                    f"Rank {rank}: Sent MS to child {child} to start its proposals."
                )
            if self.children_left == 0:
                self.level = _Level.SUBTREE_DONE

        if self.level == _Level.AWAITING_CHILDREN and self.children_left == 0:
            if rank == self.root:
                self.emit(
                    f"Rank {rank} (ROOT): All children reported completion. "
                    "Broadcasting TERMINATE."
                )
                self.level = _Level.FINISHED
                self.active = False
                for dest in range(self.network.size):
                    if dest != self.root:
                        self._send(dest, TERMINATE_TAG)
            else:
                self.level = _Level.SUBTREE_DONE

        if self.level == _Level.SUBTREE_DONE:
            parent = self.node.parent
            self._send(parent, COMPLETE_TAG)
            self.emit(
                f"Rank {rank}: Subtree complete. Sent MC_COMPLETE to parent {parent}"
            )
            self.level = _Level.FINISHED
            self.emit(f"Rank {rank}: Moving to state 5 (Finished). Waiting for TERMINATE.")


def run_bfs(adjacency=None, root=0, log=print):
    """Build a BFS tree level by level from ``root``; return every node by rank."""
    if adjacency is None:
        adjacency = default_topology(4)
    adjacency = list(adjacency)
    if len(adjacency) < 2:
        raise ValueError("at least 2 processes required")
    graph = _check_adjacency(adjacency, root)
    size = len(graph)
    network = Network(size)
    nodes = [BfsNode(rank, ns) for rank, ns in enumerate(graph)]
    log_lock = threading.Lock()

    def emit(line: str) -> None:
        with log_lock:
            log(line)

    def process(rank: int) -> BfsNode:
        return _BfsProcess(nodes[rank], network, root, emit).run()

    result = run_processes(size, process)
    for node in result:
        log(format_bfs_result(node, root))
    return result


def format_bfs_result(node: BfsNode, root: int = 0) -> str:
    """The final report of one node."""
    parent = "ROOT" if node.rank == root else str(node.parent)
    if node.children:
        children = " ".join(str(child) for child in node.children) + " "
    else:
        children = "None"
    return "\n".join(
        [
            f"\n--- Rank {node.rank} BFS Result ---",
            f"Parent: {parent}",
            f"Children ({len(node.children)}): {children}",
            "-" * 32,
        ]
    )


def _depths(nodes: Sequence[BfsNode], root: int) -> list[int]:
    depths = []
    for node in nodes:
        depth = 0
        current = node.rank
        while current != root:
            current = nodes[current].parent
            depth += 1
        depths.append(depth)
    return depths