"""In-process simulations of logical clocks, ring election, spanning and BFS trees, Maekawa mutual exclusion and Paxos."""

__version__ = "0.1.0"