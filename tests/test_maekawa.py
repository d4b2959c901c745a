import pytest

from distsim.maekawa import MaekawaResult, run_maekawa


@pytest.fixture(scope="module")
def default_run():
    lines = []
    result = run_maekawa(log=lines.append, timeout=4.0)
    return result, lines


def test_default_both_initiators_enter(default_run):
    result, _ = default_run
    assert isinstance(result, MaekawaResult)
    assert sorted(result.cs_order) == [1, 5]


def test_default_mutual_exclusion(default_run):
    result, _ = default_run
    assert result.violations == 0


def test_default_log_bracketing(default_run):
    _, lines = default_run
    assert lines[0] == "=== Starting Maekawa DME simulation ==="
    assert lines[-1] == "=== Simulation finished (Maekawa) ==="


def test_default_enter_and_leave_counts(default_run):
    _, lines = default_run
    entering = [line for line in lines if "=== ENTERING CRITICAL SECTION" in line]
    leaving = [line for line in lines if "=== LEAVING CRITICAL SECTION ===" in line]
    assert len(entering) == 2
    assert len(leaving) == 2


def test_default_requests_logged(default_run):
    _, lines = default_run
    assert "[Rank 1] Wants CS. Broadcasting REQUEST to voting set (ts=1)" in lines
    assert "[Rank 5] Wants CS. Broadcasting REQUEST to voting set (ts=1)" in lines


def test_default_timestamps(default_run):
    result, _ = default_run
    assert len(result.timestamps) == 6
    assert all(ts >= 1 for ts in (result.timestamps[1], result.timestamps[5]))


def test_single_initiator_enters_once():
    lines = []
    result = run_maekawa([[0, 1], [0, 1]], [0], log=lines.append, timeout=2.0)
    assert result.cs_order == [0]
    assert result.violations == 0
    assert "[Rank 1] Received REQUEST from rank 0 (ts=1)" in lines


def test_contending_initiators_are_serialised():
    lines = []
    result = run_maekawa([[0, 1], [0, 1]], [0, 1], log=lines.append, timeout=4.0)
    assert result.cs_order == [0, 1]
    assert result.violations == 0


def test_no_initiators_means_no_entries():
    result = run_maekawa([[0], [1]], [], log=lambda line: None, timeout=0.4)
    assert result.cs_order == []
    assert result.timestamps == [0, 0]


@pytest.mark.parametrize(
    "sets, initiators",
    [
        ([], []),
        ([[1], [0, 1]], [0]),
        ([[0, 2], [1]], [0]),
        ([[0, 0], [1]], [0]),
        ([[0], [1]], [2]),
    ],
)
def test_invalid_configuration(sets, initiators):
    with pytest.raises(ValueError):
        run_maekawa(sets, initiators, log=lambda line: None, timeout=1.0)


def test_non_positive_timeout():
    with pytest.raises(ValueError):
        run_maekawa([[0], [1]], [], log=lambda line: None, timeout=0)