"""Rooted spanning tree construction by flooding child proposals."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .transport import Network, run_processes

PROPOSE_TAG = 0
ACCEPT_TAG = 1
REJECT_TAG = 2

DEFAULT_SIZE = 6
DEFAULT_EDGES = ((0, 1), (0, 3), (1, 2), (1, 3), (1, 4), (3, 4), (4, 5))
_RECV_TIMEOUT = 10.0


@dataclass
class TreeNode:
    """One process's place in the finished spanning tree."""

    rank: int
    neighbours: list[int]
    parent: int | None = None
    children: list[int] = field(default_factory=list)


def adjacency_from_edges(size: int, edges: Iterable[tuple[int, int]]) -> list[list[int]]:
    """Build sorted neighbour lists for an undirected graph on ``size`` nodes."""
    if size < 1:
        raise ValueError(f"graph size must be at least 1, got {size}")
    neighbours: list[set[int]] = [set() for _ in range(size)]
    for a, b in edges:
        for end in (a, b):
            if not 0 <= end < size:
                raise ValueError(f"edge ({a}, {b}) has a node outside 0..{size - 1}")
        if a == b:
            raise ValueError(f"self-loop on node {a}")
        neighbours[a].add(b)
        neighbours[b].add(a)
    return [sorted(ns) for ns in neighbours]


def _check_adjacency(adjacency: Sequence[Iterable[int]], root: int) -> list[list[int]]:
    """Validate an undirected, connected adjacency list and return a copy."""
    graph = [list(ns) for ns in adjacency]
    size = len(graph)
    if size < 1:
        raise ValueError("the graph needs at least one node")
    if not 0 <= root < size:
        raise ValueError(f"root {root} is outside 0..{size - 1}")
    for rank, ns in enumerate(graph):
        if len(set(ns)) != len(ns):
            raise ValueError(f"node {rank} lists a neighbour twice")
        for nb in ns:
            if not 0 <= nb < size:
                raise ValueError(f"node {rank} has neighbour {nb} outside 0..{size - 1}")
            if nb == rank:
                raise ValueError(f"self-loop on node {rank}")
            if rank not in graph[nb]:
                raise ValueError(f"edge {rank}-{nb} is not listed by node {nb}")
    seen = {root}
    queue = deque([root])
    while queue:
        for nb in graph[queue.popleft()]:
            if nb not in seen:
                seen.add(nb)
                queue.append(nb)
    if len(seen) != size:
        missing = sorted(set(range(size)) - seen)
        raise ValueError(f"nodes {missing} cannot be reached from root {root}")
    return graph


def build_spanning_tree(adjacency=None, root=0, log=print):
    """Build a spanning tree rooted at ``root``; return every node by rank."""
    if adjacency is None:
        adjacency = adjacency_from_edges(DEFAULT_SIZE, DEFAULT_EDGES)
    graph = _check_adjacency(adjacency, root)
    size = len(graph)
    network = Network(size)
    nodes = [TreeNode(rank, ns) for rank, ns in enumerate(graph)]
    log_lock = threading.Lock()

    def emit(line: str) -> None:
        with log_lock:
            log(line)

    def process(rank: int) -> TreeNode:
        node = nodes[rank]
        has_parent = rank == root
        remaining = 0
        if rank == root:
            remaining = len(node.neighbours)
            emit(f"[Rank {rank} ROOT] Sending child proposals to {remaining} neighbours.")
            for nb in node.neighbours:
                network.send(rank, nb, PROPOSE_TAG)
            if remaining == 0:
                emit(f"[Rank {rank} ROOT] is isolated and has no neighbours.")

        while not has_parent or remaining > 0:
            msg = network.recv(rank, _RECV_TIMEOUT)
            sender = msg.source
            if msg.tag == PROPOSE_TAG:
                if not has_parent:
                    node.parent = sender
                    has_parent = True
                    emit(f"[Rank {rank}] Accepted P{sender} as parent.")
                    network.send(rank, sender, ACCEPT_TAG)
                    for nb in node.neighbours:
                        if nb != sender:
                            network.send(rank, nb, PROPOSE_TAG)
                            remaining += 1
                    if remaining == 0:
                        emit(f"[Rank {rank}] is a LEAF node.")
                else:
                    current = rank if node.parent is None else node.parent
                    emit(f"[Rank {rank}] Already has parent P{current}. Rejecting P{sender}.")
                    network.send(rank, sender, REJECT_TAG)
            elif msg.tag == ACCEPT_TAG:
                node.children.append(sender)
                remaining -= 1
                emit(
                    f"[Rank {rank}] Acknowledged P{sender} as a child. "
                    f"({remaining} responses left)"
                )
            elif msg.tag == REJECT_TAG:
                remaining -= 1
                emit(
                    f"[Rank {rank}] Received rejection from P{sender}. "
                    f"({remaining} responses left)"
                )
        return node

    result = run_processes(size, process)
    log(format_tree(result, root))
    return result


def format_tree(nodes: Sequence[TreeNode], root: int = 0) -> str:
    """The per-rank summary of a finished tree, one line per node."""
    lines = []
    for node in nodes:
        if node.rank == root:
            head = f"   [Rank {node.rank} ROOT] "
        else:
            head = f"   [Rank {node.rank}] Parent: P{node.parent}. "
        if node.children:
            tail = "Children: " + "".join(f"P{child} " for child in node.children)
        else:
            tail = "Children: None."
        lines.append(head + tail)
    return "\n".join(lines)