# layout_optimizer/constraints.py
"""
Compile the user's placement rules into a structure that is cheap to query
from the mutation operators.

Rules come from three optional lists in optimization.constraints:

    elements:        [{element: 口}]                      every literal slot of 口
    indices:         [{index: 1, keys: [a, s]}]           slot 1 of every element
    element_indices: [{element: 木, index: 0, keys: [m]}] one slot

A rule without `keys` fixes its elements in place; a rule with `keys`
narrows them to that key subset (the last rule for an element wins).
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Set, Tuple

from .config import CONSTRAINT_GROUPS
from .errors import ConfigurationError, PreconditionViolation, UnknownElement, UnknownKey
from .logging_utils import get_logger
from .representation import Literal, Representation, assemble

logger = get_logger(__name__)


@dataclass(frozen=True)
class Constraints:
    """
    Compiled placement constraints, shared read-only for a whole session.

    Attributes:
        alphabet: every Key available for assignment, in alphabet order
        elements: number of Elements in a layout
        fixed: Elements that never move
        narrowed: Element -> the only Keys it may be assigned to
        movable: every Element not in `fixed`, in ascending order
    """
    alphabet: Tuple[int, ...]
    elements: int
    fixed: frozenset
    narrowed: Mapping[int, Tuple[int, ...]]
    movable: Tuple[int, ...]

    def destinations(self, element: int) -> Tuple[int, ...]:
        """Keys that `element` may be assigned to."""
        return self.narrowed.get(element, self.alphabet)


def gather_rules(config: dict) -> List[dict]:
    """Concatenate the three rule lists of a scheme, in declaration order."""
    constraints = (config.get('optimization') or {}).get('constraints') or {}
    rules = []
    for group in CONSTRAINT_GROUPS:
        rules.extend(constraints.get(group) or [])
    return rules

def resolve_rule_elements(rule: dict, representation: Representation) -> List[int]:
    """Element handles a single rule applies to."""
    element = rule.get('element')
    index = rule.get('index')
    lookup = representation.element_repr

    if element is not None and index is not None:
        name = assemble(str(element), index)
        if name not in lookup:
            raise UnknownElement(name)
        return [lookup[name]]

    if index is not None:
        resolved = []
        for name, slots in representation.codes.items():
            if index < len(slots) and isinstance(slots[index], Literal):
                assembled = assemble(name, index)
                if assembled not in lookup:
                    raise UnknownElement(assembled)
                resolved.append(lookup[assembled])
        return resolved

    if element is not None:
        name = str(element)
        if name not in representation.codes:
            raise UnknownElement(name)
        resolved = []
        for i, slot in enumerate(representation.codes[name]):
            if isinstance(slot, Literal):
                resolved.append(lookup[assemble(name, i)])
        return resolved

    raise ConfigurationError(f"Constraint {rule} must provide at least one of element or index")

def resolve_keys(keys, representation: Representation) -> Tuple[int, ...]:
    """Key handles for the key names of a rule."""
    resolved = []
    for key in keys:
        key = str(key)
        if key not in representation.key_repr:
            raise UnknownKey(key)
        resolved.append(representation.key_repr[key])
    if not resolved:
        raise ConfigurationError("Constraint key list must not be empty")
    return tuple(resolved)

def compile_constraints(representation: Representation) -> Constraints:
    """
    Compile the scheme's constraint rules against its lookup tables.

    Raises a ConfigurationError (UnknownElement, UnknownKey, ...) if any
    rule is invalid; nothing is returned in that case.
    """
    alphabet = tuple(representation.key_repr[char] for char in representation.alphabet)
    elements = representation.elements
    fixed: Set[int] = set()
    narrowed: Dict[int, Tuple[int, ...]] = {}

    for rule in gather_rules(representation.config):
        targets = resolve_rule_elements(rule, representation)
        keys = rule.get('keys')
        if keys is None:
            fixed.update(targets)
            continue
        destinations = resolve_keys(keys, representation)
        for element in targets:
            narrowed[element] = destinations

    movable = tuple(e for e in range(elements) if e not in fixed)
    if not movable:
        raise PreconditionViolation(
            f"All {elements} elements are fixed; there is nothing left to optimize")

    logger.debug("Compiled constraints: %d elements, %d fixed, %d narrowed",
                 elements, len(fixed), len(narrowed))

    return Constraints(
        alphabet=alphabet,
        elements=elements,
        fixed=frozenset(fixed),
        narrowed=MappingProxyType(narrowed),
        movable=movable,
    )
