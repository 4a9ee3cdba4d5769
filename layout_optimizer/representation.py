# layout_optimizer/representation.py
"""
Integer representation of a scheme.

Keys are indices into the alphabet string. Every literal slot of an element's
code (the slot at position `index` of element `name`) becomes one placeable
element, named `assemble(name, index)`. Slots that reference another
element's code are not placeable themselves; they follow the slot they point to.
"""
import copy
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

import numpy as np

from .errors import ConfigurationError, UnknownElement


@dataclass(frozen=True)
class Literal:
    """A code slot assigned directly to a key character."""
    key: str


@dataclass(frozen=True)
class Reference:
    """A code slot that reuses slot `index` of another element's code."""
    element: str
    index: int = 0


Slot = Union[Literal, Reference]


def assemble(name: str, index: int) -> str:
    """Name of the placeable element for slot `index` of `name`."""
    if index == 0:
        return name
    return f"{name}.{index}"

def normalize(code) -> List[Slot]:
    """
    Turn a code from the mapping into a list of slots.

    A string is a sequence of literal keys; a list may mix one-character
    strings (literal keys) and {element, index} mappings (references).
    """
    if isinstance(code, str):
        return [Literal(c) for c in code]
    if not isinstance(code, list):
        raise ConfigurationError(f"Code must be a string or a list, got {code!r}")

    slots = []
    for item in code:
        if isinstance(item, str) and len(item) == 1:
            slots.append(Literal(item))
        elif isinstance(item, dict) and 'element' in item:
            index = item.get('index', 0)
            if not isinstance(index, int) or isinstance(index, bool) or index < 0:
                raise ConfigurationError(f"Invalid code slot {item!r}: index must be a non-negative integer")
            slots.append(Reference(str(item['element']), index))
        else:
            raise ConfigurationError(f"Invalid code slot {item!r}")
    return slots


class Representation:
    """
    Lookup tables between the scheme's names and the integer handles
    used during optimization.

    Attributes:
        alphabet: the scheme's key alphabet string
        key_repr: key character -> Key
        element_repr: assembled element name -> Element
        codes: element name -> normalized code
        initial: the scheme's current layout (one Key per Element)
    """

    def __init__(self, config: dict):
        self.config = config
        form = config['form']
        self.alphabet: str = form['alphabet']
        self.key_repr: Dict[str, int] = {char: i for i, char in enumerate(self.alphabet)}
        if len(self.key_repr) != len(self.alphabet):
            raise ConfigurationError(f"Duplicate keys in alphabet: {self.alphabet}")

        self.codes: Dict[str, List[Slot]] = {
            str(name): normalize(code) for name, code in form['mapping'].items()
        }

        self.element_repr: Dict[str, int] = {}
        self.element_names: List[str] = []
        initial = []
        for name, slots in self.codes.items():
            for index, slot in enumerate(slots):
                if not isinstance(slot, Literal):
                    continue
                if slot.key not in self.key_repr:
                    raise ConfigurationError(
                        f"Key '{slot.key}' of element {name} is not in the alphabet {self.alphabet}")
                self.element_repr[assemble(name, index)] = len(initial)
                self.element_names.append(assemble(name, index))
                initial.append(self.key_repr[slot.key])

        if not initial:
            raise ConfigurationError("The mapping has no literal keys to optimize")
        self.initial = np.array(initial, dtype=np.int32)

        # Element handle behind every slot, references followed
        self.slot_elements: Dict[str, Tuple[int, ...]] = {
            name: tuple(self._resolve_slot(name, index, ()) for index in range(len(slots)))
            for name, slots in self.codes.items()
        }

    @property
    def elements(self) -> int:
        return len(self.initial)

    def _resolve_slot(self, name: str, index: int, visiting: tuple) -> int:
        if name not in self.codes:
            raise UnknownElement(name)
        slots = self.codes[name]
        if index >= len(slots):
            raise ConfigurationError(f"Element {name} has no code slot at index {index}")
        if (name, index) in visiting:
            raise ConfigurationError(f"Circular reference through {assemble(name, index)}")
        slot = slots[index]
        if isinstance(slot, Literal):
            return self.element_repr[assemble(name, index)]
        return self._resolve_slot(slot.element, slot.index, visiting + ((name, index),))

    def resolve_codes(self, layout: np.ndarray) -> Dict[str, Tuple[int, ...]]:
        """Full key sequence of every element name under `layout`."""
        return {
            name: tuple(int(layout[e]) for e in handles)
            for name, handles in self.slot_elements.items()
        }

    def key_name(self, key: int) -> str:
        return self.alphabet[key]

    def encode(self, decompositions: Dict[str, List[str]], layout: np.ndarray) -> Dict[str, str]:
        """
        Code of every character under `layout`: the full codes of its
        elements, in order, joined into one key string.
        """
        codes = self.resolve_codes(layout)
        encoded = {}
        for character, names in decompositions.items():
            keys = []
            for name in names:
                if name not in codes:
                    raise UnknownElement(name)
                keys.extend(codes[name])
            encoded[character] = ''.join(self.alphabet[key] for key in keys)
        return encoded

    def update_config(self, layout: np.ndarray) -> dict:
        """Return a copy of the scheme with the mapping rewritten for `layout`."""
        config = copy.deepcopy(self.config)
        mapping = config['form']['mapping']
        for raw_name, code in list(mapping.items()):
            name = str(raw_name)
            if isinstance(code, str):
                mapping[raw_name] = ''.join(
                    self.alphabet[layout[self.element_repr[assemble(name, i)]]]
                    for i in range(len(code)))
            else:
                updated = []
                for i, item in enumerate(code):
                    if isinstance(self.codes[name][i], Literal):
                        updated.append(self.alphabet[layout[self.element_repr[assemble(name, i)]]])
                    else:
                        updated.append(item)
                mapping[raw_name] = updated
        return config
