import pytest

from distsim.spanning_tree import (
    DEFAULT_EDGES,
    DEFAULT_SIZE,
    TreeNode,
    adjacency_from_edges,
    build_spanning_tree,
    format_tree,
)


def _quiet(_line):
    pass


def assert_spanning_tree(nodes, adjacency, root):
    size = len(adjacency)
    assert [node.rank for node in nodes] == list(range(size))
    assert nodes[root].parent is None
    for node in nodes:
        if node.rank != root:
            assert node.parent in adjacency[node.rank]
            assert node.rank in nodes[node.parent].children
        for child in node.children:
            assert nodes[child].parent == node.rank
    assert sum(len(node.children) for node in nodes) == size - 1
    for node in nodes:
        seen = set()
        current = node.rank
        while current != root:
            assert current not in seen
            seen.add(current)
            current = nodes[current].parent


def test_adjacency_from_edges_builds_symmetric_lists():
    assert adjacency_from_edges(3, [(0, 1), (1, 2)]) == [[1], [0, 2], [1]]


def test_adjacency_from_edges_merges_duplicates():
    assert adjacency_from_edges(2, [(0, 1), (1, 0)]) == [[1], [0]]


@pytest.mark.parametrize("edges", [[(0, 0)], [(0, 3)], [(-1, 1)]])
def test_adjacency_from_edges_rejects_bad_edges(edges):
    with pytest.raises(ValueError):
        adjacency_from_edges(3, edges)


def test_adjacency_from_edges_rejects_empty_graph():
    with pytest.raises(ValueError):
        adjacency_from_edges(0, [])


def test_default_graph_gives_spanning_tree():
    adjacency = adjacency_from_edges(DEFAULT_SIZE, DEFAULT_EDGES)
    nodes = build_spanning_tree(log=_quiet)
    assert_spanning_tree(nodes, adjacency, 0)
    assert nodes[5].parent == 4
    assert nodes[2].parent == 1
    assert nodes[4].children == [5]


def test_ring_graph_gives_spanning_tree():
    size = 8
    adjacency = adjacency_from_edges(size, [(i, (i + 1) % size) for i in range(size)])
    nodes = build_spanning_tree(adjacency, root=3, log=_quiet)
    assert_spanning_tree(nodes, adjacency, 3)


def test_complete_graph_gives_spanning_tree():
    size = 5
    edges = [(a, b) for a in range(size) for b in range(a + 1, size)]
    adjacency = adjacency_from_edges(size, edges)
    nodes = build_spanning_tree(adjacency, log=_quiet)
    assert_spanning_tree(nodes, adjacency, 0)


def test_single_isolated_root():
    lines = []
    nodes = build_spanning_tree([[]], log=lines.append)
    assert nodes[0].children == []
    assert any("is isolated and has no neighbours." in line for line in lines)


def test_log_ends_with_summary():
    lines = []
    nodes = build_spanning_tree(log=lines.append)
    assert lines[-1] == format_tree(nodes, 0)


def test_disconnected_graph_rejected():
    with pytest.raises(ValueError):
        build_spanning_tree([[1], [0], []], log=_quiet)


def test_asymmetric_graph_rejected():
    with pytest.raises(ValueError):
        build_spanning_tree([[1], []], log=_quiet)


def test_root_out_of_range_rejected():
    with pytest.raises(ValueError):
        build_spanning_tree([[1], [0]], root=2, log=_quiet)


def test_format_tree_root_and_leaf():
    nodes = [
        TreeNode(0, [1], None, [1]),
        TreeNode(1, [0], 0, []),
    ]
    text = format_tree(nodes, 0)
    assert text.splitlines() == [
        "   [Rank 0 ROOT] Children: P1 ",
        "   [Rank 1] Parent: P0. Children: None.",
    ]