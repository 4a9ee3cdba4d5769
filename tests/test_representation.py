from __future__ import annotations

import numpy as np
import pytest

from conftest import make_config
from layout_optimizer.errors import ConfigurationError, UnknownElement
from layout_optimizer.representation import (Literal, Reference, Representation, assemble,
                                             normalize)


def test_assemble_names_slots() -> None:
    assert assemble("木", 0) == "木"
    assert assemble("木", 2) == "木.2"


def test_normalize_strings_and_lists() -> None:
    assert normalize("ab") == [Literal("a"), Literal("b")]
    assert normalize(["a", {"element": "木", "index": 1}]) == [Literal("a"), Reference("木", 1)]
    assert normalize([{"element": "木"}]) == [Reference("木", 0)]
    with pytest.raises(ConfigurationError):
        normalize(["ab"])
    with pytest.raises(ConfigurationError):
        normalize(3)


def test_lookup_tables_and_initial_layout() -> None:
    config = make_config({"口": "k", "木": "mu", "林": [{"element": "木", "index": 0}, "l"]},
                         alphabet="klmu")
    representation = Representation(config)
    assert representation.key_repr == {"k": 0, "l": 1, "m": 2, "u": 3}
    assert representation.element_repr == {"口": 0, "木": 1, "木.1": 2, "林.1": 3}
    assert representation.initial.tolist() == [0, 2, 3, 1]
    assert representation.elements == 4
    assert representation.slot_elements["林"] == (1, 3)


def test_resolve_codes_follows_references() -> None:
    config = make_config({"木": "mu", "林": [{"element": "木"}, "l"]}, alphabet="klmu")
    representation = Representation(config)
    layout = np.array([0, 3, 1])
    assert representation.resolve_codes(layout) == {"木": (0, 3), "林": (0, 1)}


def test_update_config_writes_layout_back() -> None:
    config = make_config({"木": "mu", "林": [{"element": "木"}, "l"]}, alphabet="klmu")
    representation = Representation(config)
    updated = representation.update_config(np.array([0, 3, 1]))
    assert updated["form"]["mapping"] == {"木": "ku", "林": [{"element": "木"}, "l"]}
    # The original scheme is untouched
    assert config["form"]["mapping"]["木"] == "mu"


def test_invalid_mappings_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="not in the alphabet"):
        Representation(make_config({"a": "x"}, alphabet="ab"))
    with pytest.raises(UnknownElement):
        Representation(make_config({"a": "a", "b": [{"element": "z"}]}, alphabet="ab"))
    with pytest.raises(ConfigurationError, match="no code slot"):
        Representation(make_config({"a": "a", "b": [{"element": "a", "index": 3}]}, alphabet="ab"))
    with pytest.raises(ConfigurationError, match="Circular"):
        Representation(make_config({
            "a": "a",
            "b": [{"element": "c"}],
            "c": [{"element": "b"}],
        }, alphabet="ab"))


@pytest.mark.parametrize("index", ["x", 1.5, -1, True])
def test_reference_index_must_be_a_non_negative_integer(index) -> None:
    with pytest.raises(ConfigurationError, match="Invalid code slot"):
        Representation(make_config({"a": "a", "b": [{"element": "a", "index": index}]}, alphabet="ab"))


def test_encode_joins_element_codes() -> None:
    representation = Representation(make_config({"木": "sd", "林": [{"element": "木"}, "f"]}, alphabet="asdf"))
    decompositions = {"森": ["木", "林"], "木": ["木"], "〇": []}
    assert representation.encode(decompositions, representation.initial) == {
        "森": "sdsf", "木": "sd", "〇": ""}
    moved = representation.initial.copy()
    moved[representation.element_repr["木"]] = 0
    assert representation.encode({"森": ["木", "林"]}, moved) == {"森": "adaf"}
    with pytest.raises(UnknownElement):
        representation.encode({"炎": ["火"]}, representation.initial)
