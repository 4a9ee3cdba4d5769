from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from conftest import make_config
from layout_optimizer.constraints import compile_constraints
from layout_optimizer.errors import ConfigurationError
from layout_optimizer.mutations import (OPERATORS, OperatorPicker, full_key_swap, random_move,
                                        random_swap, swap_narrowed_elements)
from layout_optimizer.representation import Representation


def four_element_setup():
    """Element 0 fixed, element 1 narrowed to [c, d], elements 2 and 3 free."""
    mapping = {"e0": "a", "e1": "c", "e2": "c", "e3": "d"}
    constraints = {
        "elements": [{"element": "e0"}, {"element": "e1", "keys": ["c", "d"]}],
    }
    representation = Representation(make_config(mapping, alphabet="abcd", constraints=constraints))
    return representation, compile_constraints(representation)


def test_random_move_respects_fixed_and_narrowed_elements() -> None:
    representation, constraints = four_element_setup()
    rng = np.random.default_rng(2024)
    layout = representation.initial.copy()
    seen = [Counter() for _ in range(4)]

    for _ in range(10_000):
        layout = random_move(constraints, layout, rng)
        for element, key in enumerate(layout):
            seen[element][int(key)] += 1

    assert set(seen[0]) == {0}
    assert set(seen[1]) <= {2, 3}
    assert set(seen[2]) == {0, 1, 2, 3}
    assert set(seen[3]) == {0, 1, 2, 3}


def test_operators_do_not_modify_their_input() -> None:
    representation, constraints = four_element_setup()
    rng = np.random.default_rng(5)
    layout = representation.initial.copy()
    original = layout.copy()
    for operator in OPERATORS.values():
        for _ in range(200):
            result = operator(constraints, layout, rng)
            assert result is not layout
    np.testing.assert_array_equal(layout, original)


@pytest.mark.parametrize("operator", [random_move, random_swap, full_key_swap])
def test_operators_preserve_length_and_constraints(operator) -> None:
    representation, constraints = four_element_setup()
    rng = np.random.default_rng(11)
    layout = representation.initial.copy()
    for _ in range(5_000):
        layout = operator(constraints, layout, rng)
        assert len(layout) == constraints.elements
        assert layout[0] == representation.initial[0]
        assert layout[1] in (2, 3)


def test_full_key_swap_keeps_narrowed_elements_in_bounds() -> None:
    mapping = {f"e{i}": char for i, char in enumerate("abcdabcd")}
    constraints = {
        "elements": [
            {"element": "e1", "keys": ["a", "b"]},
            {"element": "e2", "keys": ["c"]},
            {"element": "e5", "keys": ["b", "d"]},
        ],
    }
    representation = Representation(make_config(mapping, alphabet="abcd", constraints=constraints))
    compiled = compile_constraints(representation)
    rng = np.random.default_rng(3)
    layout = representation.initial.copy()
    layout[1] = 0
    layout[5] = 3
    for _ in range(5_000):
        layout = full_key_swap(compiled, layout, rng)
        for element, allowed in compiled.narrowed.items():
            assert layout[element] in allowed


def test_full_key_swap_moves_whole_key_groups() -> None:
    # e0, e1 on key a; e2 on key b; only key b is allowed for e0 besides a
    mapping = {"e0": "a", "e1": "a", "e2": "b", "e3": "c"}
    constraints = {
        "elements": [{"element": "e0", "keys": ["b"]}, {"element": "e3"}],
    }
    representation = Representation(make_config(mapping, alphabet="abc", constraints=constraints))
    compiled = compile_constraints(representation)

    class PickFirst:
        """Always draw index 0: element e0, destination key b."""

        def integers(self, high):
            return 0

    result = full_key_swap(compiled, representation.initial, PickFirst())
    assert result.tolist() == [1, 1, 0, 2]


def test_pairwise_swap_can_move_one_side_only() -> None:
    # e1 is free on key a, e2 is narrowed to [c, d] and sits on c
    mapping = {"e1": "a", "e2": "c"}
    constraints = {"elements": [{"element": "e2", "keys": ["c", "d"]}]}
    representation = Representation(make_config(mapping, alphabet="abcd", constraints=constraints))
    compiled = compile_constraints(representation)
    layout = representation.initial

    result = swap_narrowed_elements(compiled, layout, 0, 1)
    assert result.tolist() == [2, 2]
    assert layout.tolist() == [0, 2]


def test_random_swap_exchanges_unconstrained_elements() -> None:
    mapping = {"e0": "a", "e1": "b", "e2": "c"}
    constraints = {"elements": [{"element": "e2"}]}
    representation = Representation(make_config(mapping, alphabet="abc", constraints=constraints))
    compiled = compile_constraints(representation)
    rng = np.random.default_rng(0)

    outcomes = {tuple(random_swap(compiled, representation.initial, rng).tolist()) for _ in range(200)}
    assert outcomes == {(0, 1, 2), (1, 0, 2)}


def test_operator_picker_follows_weights() -> None:
    rng = np.random.default_rng(9)
    picker = OperatorPicker({"random_move": 0.75, "random_swap": 0.25, "random_full_key_swap": 0.0})
    counts = Counter(picker.pick(rng).__name__ for _ in range(8_000))
    assert set(counts) == {"random_move", "random_swap"}
    assert 0.70 < counts["random_move"] / 8_000 < 0.80


def test_operator_picker_needs_a_positive_weight() -> None:
    with pytest.raises(ConfigurationError):
        OperatorPicker({"random_move": 0.0})
