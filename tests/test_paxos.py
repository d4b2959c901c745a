import pytest

from distsim.paxos import PaxosOutcome, run_paxos


@pytest.fixture(scope="module")
def default_run():
    lines = []
    outcome = run_paxos(log=lines.append)
    return outcome, lines


def test_default_all_ranks_agree(default_run):
    outcome, _ = default_run
    assert outcome.agreed
    assert len(outcome.values) == 5


def test_default_value_is_a_proposed_one(default_run):
    outcome, _ = default_run
    assert outcome.value in {1000, 1001, 1002}


def test_default_proposal_numbers(default_run):
    outcome, _ = default_run
    assert set(outcome.proposals) <= {5, 6, 7}
    assert len(set(outcome.proposals)) == 1


def test_default_consensus_logged(default_run):
    outcome, lines = default_run
    reached = [line for line in lines if "=== CONSENSUS REACHED" in line]
    assert reached
    assert all(f"Value {outcome.value}" in line for line in reached)


def test_default_prepare_logged(default_run):
    _, lines = default_run
    assert "[Rank 0] Proposer: Sending <prepare, 5>" in lines


@pytest.mark.parametrize("size", [3, 4, 7])
def test_agreement_for_various_sizes(size):
    outcome = run_paxos(size, log=lambda line: None)
    assert outcome.agreed
    assert outcome.value in {1000, 1001, 1002}
    assert len(outcome.proposals) == size


def test_single_proposer_value():
    outcome = run_paxos(3, [2], log=lambda line: None)
    assert outcome.values == [1002, 1002, 1002]
    assert outcome.proposals == [5, 5, 5]


def test_outcome_value_requires_agreement():
    outcome = PaxosOutcome(values=[1000, 1001], proposals=[3, 4])
    assert not outcome.agreed
    with pytest.raises(ValueError):
        outcome.value


def test_too_few_processes():
    with pytest.raises(ValueError, match="at least 3"):
        run_paxos(2, log=lambda line: None)


@pytest.mark.parametrize("proposers", [[], [3], [-1]])
def test_invalid_proposers(proposers):
    with pytest.raises(ValueError):
        run_paxos(3, proposers, log=lambda line: None)