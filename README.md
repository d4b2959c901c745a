# distsim

Simulations of classic distributed algorithms that run inside one Python
process. Nodes exchange messages only through an in-memory network, so you
can watch and test the algorithms without a cluster.

The package covers:

- **Logical clocks**: Lamport scalar clocks, vector clocks and matrix clocks
  (`distsim.clocks`).
- **Ring leader election**: a Chang–Roberts election on a unidirectional
  ring, started by rank 0 (`distsim.ring`).
- **Spanning tree construction**: flooding with child proposals,
  acceptances and rejections (`distsim.spanning_tree`).
- **Level-synchronised BFS tree**: a BFS driven by sync, completion and
  terminate messages (`distsim.bfs`).
- **Maekawa mutual exclusion**: quorum voting with inquire, relinquish and
  release messages (`distsim.maekawa`).
- **Paxos**: single-decree consensus with competing proposers, where every
  process is also an acceptor and a learner (`distsim.paxos`).

## Installation

```
pip install .
```

The package needs Python 3.10 or later and has no runtime dependencies.

## Command line

Installing the package provides the `distsim` command. Each subcommand runs
one simulation and prints its log:

```
distsim lamport [--size N] [--iterations K] [--seed S]
distsim vector  [--size N] [--iterations K] [--seed S]
distsim matrix  [--size N] [--iterations K] [--seed S]
distsim ring    [--ids ID ...]
distsim tree
distsim bfs     [--size N]
distsim maekawa [--timeout SECONDS]
distsim paxos   [--size N] [--proposers RANK ...]
```

Defaults:

- The clock commands use 4 processes and 10 iterations. The seed is random
  unless you give one.
- `ring` uses the ids `3 32 5 80 6 12`.
- `tree` uses a fixed six-node graph with the edges 0-1, 0-3, 1-2, 1-3, 1-4,
  3-4 and 4-5, rooted at 0.
- `bfs` uses the built-in topology for `--size`. Only size 4 has edges, a
  cycle 0-1-2-3-0. Any other size gives isolated nodes and the run fails.
- `maekawa` has a 15 second timeout.
- `paxos` uses 5 processes with proposers 0, 1 and 2.

`maekawa` also reports the order in which ranks entered the critical section
and the number of mutual exclusion violations. `paxos` also reports the
consensus value.

The command exits with status 0 on success. On a `ValueError` or
`TimeoutError` it prints the message to standard error and exits with
status 1.

## Library use

```python
from distsim.clocks import LamportClock, VectorClock
from distsim.ring import run_election, format_results

clock = LamportClock()
clock.tick()          # internal or send event -> 1
clock.receive(5)      # max(local, 5) + 1 -> 6

vc = VectorClock(3, rank=1)
vc.tick()
print(vc.receive([2, 0, 4]))  # (2, 2, 4)

ids = [3, 32, 5, 80, 6, 12]
nodes = run_election(ids, log=print)
print(format_results(ids, [node.leader_id for node in nodes]))
```

Every simulation takes a `log` callable that receives one piece of text per
event. Pass `print` to watch the run, or use `list.append` to collect the
lines.

### Clocks (`distsim.clocks`)

- `LamportClock` has `tick()` and `receive(received)`. Its current value is
  in `value`.
- `VectorClock(size, rank)` and `MatrixClock(size, rank)` have `tick()`,
  `receive(received)` and `snapshot()`. Snapshots are tuples, nested tuples
  for the matrix clock. `MatrixClock.receive` advances its own diagonal entry
  and then takes entry-wise maxima.
- `simulate_lamport`, `simulate_vector` and `simulate_matrix` take
  `(size, iterations=10, seed=None, log=print)` and return each rank's final
  clock. On every iteration each rank acts once, in a shuffled order. A rank
  first takes one waiting message if there is one. It then either sends its
  clock to a random other rank (one chance in three) or records an internal
  event. These simulations run in a single thread, so a seed makes a run
  repeatable. They need at least 2 processes.
- `format_lamport`, `format_vector` and `format_matrix` render the log lines.

### Ring election (`distsim.ring`)

`run_election(ids, log)` returns one `RingNode` per rank. Each node has
`rank`, `node_id`, `leader_id` and `participant`. The ids must be unique.
`format_results(ids, leaders)` renders the final summary.

### Spanning tree (`distsim.spanning_tree`)

- `adjacency_from_edges(size, edges)` builds sorted neighbour lists.
- `build_spanning_tree(adjacency=None, root=0, log=print)` returns one
  `TreeNode` per rank, with `rank`, `neighbours`, `parent` and `children`.
  The graph must be undirected and connected, with no self-loops.
- `format_tree(nodes, root)` renders the result.

### BFS tree (`distsim.bfs`)

- `run_bfs(adjacency=None, root=0, log=print)` returns one `BfsNode` per
  rank and needs at least 2 processes.
- `default_topology(size)` gives the built-in graph.
- `format_bfs_result(node, root)` renders a node.

### Maekawa (`distsim.maekawa`)

`run_maekawa(voting_sets, initiators, log, timeout)` lets each initiator
enter the critical section once. The defaults are six voting sets and
initiators 1 and 5. Each voting set must contain its own rank. The function
returns a `MaekawaResult` with `cs_order`, `violations` and the final
`timestamps`.

Ranks that are not initiators wait until three quarters of `timeout` has
passed before they stop. A default run therefore takes about 11 seconds. A
rank raises `TimeoutError` if it has not finished within `timeout`. `Tag`
lists the message kinds.

### Paxos (`distsim.paxos`)

`run_paxos(size=5, proposers=(0, 1, 2), log=print)` returns a
`PaxosOutcome`. It has `values` and `proposals` per rank, `agreed`, and
`value`. Reading `value` raises `ValueError` if the ranks disagree.

Each proposer makes a single attempt and does not retry after a failed
prepare. If no rank learns a value, the run ends in a `TimeoutError`. `Tag`
lists the message kinds.

### Message layer (`distsim.transport`)

- `Network(size)` gives each rank a FIFO mailbox of `Message(source, tag,
  payload)` objects.
- Its methods are `send(source, dest, tag, payload)`,
  `recv(rank, timeout)` (raises `TimeoutError`), `try_recv(rank)` (returns
  `None` when the mailbox is empty) and `pending(rank)`.
- `run_processes(size, target)` calls `target(rank)` for every rank in its
  own thread. It returns the results by rank and re-raises the error of the
  lowest failing rank.

## What it does not do

Every node is a thread in one Python process, and messages never leave
memory. There is no real networking, no way to spread nodes across
machines, and no injection of crashes, message loss or delays. The
election, tree, BFS, Maekawa and Paxos runs are thread-scheduled, so their
logs can interleave differently from run to run.

## Running the tests

```
pip install .[test]
pytest
```