"""Command-line entry point for running the simulations."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from .bfs import default_topology, run_bfs
from .clocks import simulate_lamport, simulate_matrix, simulate_vector
from .maekawa import DEFAULT_TIMEOUT, run_maekawa
from .paxos import DEFAULT_PROPOSERS, DEFAULT_SIZE, run_paxos
from .ring import DEFAULT_IDS, format_results, run_election
from .spanning_tree import build_spanning_tree


def _log(line: str) -> None:
    print(line, flush=True)


def _add_clock_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--size", type=int, default=4, help="number of processes")
    parser.add_argument("--iterations", type=int, default=10, help="events per process")
    parser.add_argument("--seed", type=int, default=None, help="random seed")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distsim", description="Run distributed algorithm simulations."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, text in (
        ("lamport", "Lamport logical clocks"),
        ("vector", "vector clocks"),
        ("matrix", "matrix clocks"),
    ):
        _add_clock_options(commands.add_parser(name, help=text))

    ring = commands.add_parser("ring", help="leader election on a ring")
    ring.add_argument(
        "--ids", type=int, nargs="+", default=list(DEFAULT_IDS), help="process ids by rank"
    )

    commands.add_parser("tree", help="spanning tree by flooding")

    bfs = commands.add_parser("bfs", help="level-synchronised BFS tree")
    bfs.add_argument("--size", type=int, default=4, help="number of processes")

    maekawa = commands.add_parser("maekawa", help="Maekawa mutual exclusion")
    maekawa.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT, help="seconds before giving up"
    )

    paxos = commands.add_parser("paxos", help="single-decree Paxos")
    paxos.add_argument("--size", type=int, default=DEFAULT_SIZE, help="number of processes")
    paxos.add_argument(
        "--proposers",
        type=int,
        nargs="+",
        default=list(DEFAULT_PROPOSERS),
        help="ranks that propose a value",
    )
    return parser


def _run(args: argparse.Namespace) -> None:
    command = args.command
    if command == "lamport":
        simulate_lamport(args.size, args.iterations, args.seed, _log)
    elif command == "vector":
        simulate_vector(args.size, args.iterations, args.seed, _log)
    elif command == "matrix":
        simulate_matrix(args.size, args.iterations, args.seed, _log)
    elif command == "ring":
        nodes = run_election(args.ids, _log)
        _log(format_results(args.ids, [node.leader_id for node in nodes]))
    elif command == "tree":
        build_spanning_tree(log=_log)
    elif command == "bfs":
        run_bfs(default_topology(args.size), 0, _log)
    elif command == "maekawa":
        result = run_maekawa(log=_log, timeout=args.timeout)
        order = " ".join(str(rank) for rank in result.cs_order) or "none"
        _log(f"Critical section order: {order}")
        _log(f"Mutual exclusion violations: {result.violations}")
    elif command == "paxos":
        outcome = run_paxos(args.size, args.proposers, _log)
        _log(f"Consensus value: {outcome.value}")


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the chosen simulation and return an exit status."""
    args = _build_parser().parse_args(argv)
    try:
        _run(args)
    except (ValueError, TimeoutError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())