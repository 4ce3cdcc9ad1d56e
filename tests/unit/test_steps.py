"""
Unit tests for trial step classes.

Tests Leaf, Sequence and RepeatUntil and their depth-first expansion.
"""

import pytest
from interaction.execution.step import (
    INDEFINITE,
    Leaf,
    LeafKind,
    RepeatUntil,
    Sequence,
    StepResult,
    WaitMarker,
    expand,
)


# ==================== LEAF TESTS ====================

@pytest.mark.unit
def test_leaf_defaults():
    """Leaf should default to an HTML step waiting for a response."""
    leaf = Leaf("info", stimulus="Hello")

    assert leaf.kind is LeafKind.HTML
    assert leaf.duration is None
    assert leaf.response_ends_trial is True
    assert leaf.is_wait is False
    assert leaf.suspend_after is False


@pytest.mark.unit
def test_wait_leaf_requires_indefinite_duration():
    """A wait marker on a timed leaf should be rejected."""
    with pytest.raises(ValueError):
        Leaf("bad_wait", duration=2.0, wait_marker=WaitMarker.WAITING_ROOM)


@pytest.mark.unit
def test_wait_leaf_is_identified_by_marker_not_text():
    """Two leaves with the same text differ only by their marker."""
    waiting = Leaf("w", stimulus="Waiting for partner", duration=INDEFINITE,
                   wait_marker=WaitMarker.WAITING_FOR_PARTNER)
    lookalike = Leaf("x", stimulus="Waiting for partner", duration=INDEFINITE)

    assert waiting.is_wait
    assert not lookalike.is_wait


@pytest.mark.unit
def test_describe_returns_independent_copy():
    """Mutating a descriptor must not change the leaf."""
    leaf = Leaf("choice", choices=["zop", "zopekil"], data={'block': 'production'})

    descriptor = leaf.describe()
    descriptor.choices.reverse()
    descriptor.data['extra'] = 1

    assert leaf.choices == ["zop", "zopekil"]
    assert 'extra' not in leaf.data
    assert leaf.describe() is not descriptor


@pytest.mark.unit
def test_indefinite_descriptor():
    leaf = Leaf("w", duration=INDEFINITE, wait_marker=WaitMarker.WAITING_ROOM)

    assert leaf.describe().is_indefinite
    assert not Leaf("t", duration=1.5).describe().is_indefinite


@pytest.mark.unit
def test_step_result_selected_choice():
    result = StepResult(trial_index=0, time_elapsed=0, stimulus="s",
                        choices=["object5", "object4"], response=1, rt=320.0)

    assert result.selected_choice == "object4"


@pytest.mark.unit
def test_step_result_without_response():
    result = StepResult(trial_index=0, time_elapsed=0, stimulus="s", choices=[])

    assert result.selected_choice is None


# ==================== EXPANSION TESTS ====================

@pytest.mark.unit
def test_expand_sequence_depth_first():
    """Nested sequences should expand in order, depth-first."""
    a, b, c, d = (Leaf(n) for n in "abcd")
    step = Sequence([a, Sequence([b, c]), d])

    assert [leaf.name for leaf in expand(step)] == ["a", "b", "c", "d"]


@pytest.mark.unit
def test_repeat_until_runs_body_at_least_once():
    """RepeatUntil with a false predicate still runs its body once."""
    body = Leaf("body")
    loop = RepeatUntil(body, lambda: False)

    assert [leaf.name for leaf in expand(loop)] == ["body"]


@pytest.mark.unit
def test_repeat_until_evaluates_predicate_lazily():
    """The predicate is read after each body run, so it can depend on that run."""
    counter = {'runs': 0}
    loop = RepeatUntil(Leaf("click"), lambda: counter['runs'] < 3)

    leaves = []
    for leaf in expand(loop):
        leaves.append(leaf)
        counter['runs'] += 1  # what the click's on_finish would do

    assert len(leaves) == 3


@pytest.mark.unit
def test_expand_rejects_unknown_step():
    with pytest.raises(TypeError):
        list(expand(object()))
