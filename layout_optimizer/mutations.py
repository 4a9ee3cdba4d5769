# layout_optimizer/mutations.py
"""
Constraint-aware mutation operators.

Each operator takes the compiled constraints, a layout and the session's
random generator and returns a new layout; the input layout is never
modified. Fixed elements are never picked and no element is ever assigned
a key outside its allowed destinations.
"""
from typing import Callable, Dict

import numpy as np

from .constraints import Constraints
from .errors import ConfigurationError

Operator = Callable[[Constraints, np.ndarray, np.random.Generator], np.ndarray]


def movable_element(constraints: Constraints, rng: np.random.Generator) -> int:
    """Uniformly random non-fixed element."""
    return constraints.movable[rng.integers(len(constraints.movable))]

def random_move(constraints: Constraints, layout: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Move one element to a random allowed key."""
    next_layout = layout.copy()
    element = movable_element(constraints, rng)
    destinations = constraints.destinations(element)
    next_layout[element] = destinations[rng.integers(len(destinations))]
    return next_layout

def swap_narrowed_elements(constraints: Constraints, layout: np.ndarray,
                           element1: int, element2: int) -> np.ndarray:
    """
    Exchange the keys of two elements, each side only if the other's key
    is allowed for it. Both sides are checked against the original layout,
    so one side may move while the other stays.
    """
    next_layout = layout.copy()
    if layout[element2] in constraints.destinations(element1):
        next_layout[element1] = layout[element2]
    if layout[element1] in constraints.destinations(element2):
        next_layout[element2] = layout[element1]
    return next_layout

def random_swap(constraints: Constraints, layout: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Swap the keys of two random movable elements (possibly only one way)."""
    element1 = movable_element(constraints, rng)
    element2 = movable_element(constraints, rng)
    return swap_narrowed_elements(constraints, layout, element1, element2)

def full_key_swap(constraints: Constraints, layout: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Pick a movable element and one of its allowed keys, then exchange every
    movable element on the element's current key with every movable element
    on the chosen key. Members whose own constraints forbid the opposite key
    stay where they are.
    """
    next_layout = layout.copy()
    element = movable_element(constraints, rng)
    key1 = layout[element]
    destinations = constraints.destinations(element)
    key2 = destinations[rng.integers(len(destinations))]

    for other in np.flatnonzero((layout == key1) | (layout == key2)):
        other = int(other)
        if other in constraints.fixed:
            continue
        destination = key1 if layout[other] == key2 else key2
        if destination in constraints.destinations(other):
            next_layout[other] = destination
    return next_layout

#-----------------------------------------------------------------------------
# Operator selection
#-----------------------------------------------------------------------------
OPERATORS: Dict[str, Operator] = {
    'random_move': random_move,
    'random_swap': random_swap,
    'random_full_key_swap': full_key_swap,
}


class OperatorPicker:
    """Weighted random choice among the operators named in search_method."""

    def __init__(self, weights: Dict[str, float]):
        names = [name for name, weight in weights.items() if weight > 0]
        if not names:
            raise ConfigurationError("At least one operator needs a positive weight")
        self.names = names
        self.operators = [OPERATORS[name] for name in names]
        total = sum(weights[name] for name in names)
        self.cumulative = np.cumsum([weights[name] / total for name in names])

    def pick(self, rng: np.random.Generator) -> Operator:
        index = int(np.searchsorted(self.cumulative, rng.random(), side='right'))
        return self.operators[min(index, len(self.operators) - 1)]

    def __call__(self, constraints: Constraints, layout: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        return self.pick(rng)(constraints, layout, rng)
