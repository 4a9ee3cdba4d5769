# layout_optimizer/objective.py
"""
Score a layout from tabular assets.

Three components, all lower-is-better, are combined with the weights in
optimization.objective:

  - equivalence: frequency-weighted mean effort of the keys being typed
  - key_distribution: distance between the per-key load and the ideal share
  - duplication: frequency share of element names whose full code collides
    with a more frequent element name
"""
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from numba import jit

from .errors import ConfigurationError
from .representation import Representation


@dataclass
class Assets:
    """Tabular inputs of the objective, keyed by element name / key character."""
    element_frequency: Dict[str, float]
    key_equivalence: Dict[str, float]
    key_distribution: Dict[str, float]


@dataclass
class Metric:
    """Evaluation of one layout."""
    equivalence: float
    key_distribution: float
    duplication: float
    duplicate_codes: int
    score: float

    def __str__(self) -> str:
        return (
            f"Key equivalence: {self.equivalence:.4f}\n"
            f"Key distribution deviation: {self.key_distribution:.4%}\n"
            f"Duplication: {self.duplication:.4%} ({self.duplicate_codes} duplicate codes)\n"
            f"Score: {self.score:.6f}\n"
        )

#-----------------------------------------------------------------------------
# Loading functions
#-----------------------------------------------------------------------------
def read_table(path: Optional[str]) -> Dict[str, float]:
    """Read a two-column, tab-separated, header-less table into a dictionary."""
    if path is None or not os.path.exists(path):
        return {}
    try:
        df = pd.read_csv(path, sep='\t', header=None, names=['name', 'value'],
                         dtype={'name': str}, keep_default_na=False, quoting=3)
    except pd.errors.EmptyDataError:
        return {}
    except (pd.errors.ParserError, ValueError) as e:
        raise ConfigurationError(f"Cannot read table {path}: {e}") from e
    if df.empty:
        return {}
    values = pd.to_numeric(df['value'], errors='coerce')
    if values.isna().any():
        bad = df.loc[values.isna(), 'name'].tolist()
        raise ConfigurationError(f"Non-numeric values in {path} for: {bad[:5]}")
    return dict(zip(df['name'], values.astype(float)))

def load_assets(elements_path: str = None,
                key_equivalence_path: str = None,
                key_distribution_path: str = None) -> Assets:
    """Load the objective tables; a missing file yields an empty table."""
    return Assets(
        element_frequency=read_table(elements_path),
        key_equivalence=read_table(key_equivalence_path),
        key_distribution=read_table(key_distribution_path),
    )

def read_decompositions(path: str) -> Dict[str, List[str]]:
    """
    Read the character table: one character per row, followed by the
    space-separated element names it decomposes into.
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"Decomposition table {path} does not exist")
    try:
        df = pd.read_csv(path, sep='\t', header=None, names=['character', 'elements'],
                         dtype=str, keep_default_na=False, quoting=3)
    except pd.errors.EmptyDataError:
        return {}
    except (pd.errors.ParserError, ValueError) as e:
        raise ConfigurationError(f"Cannot read table {path}: {e}") from e
    df = df.fillna('')
    return {character: elements.split() for character, elements in zip(df['character'], df['elements'])}

#-----------------------------------------------------------------------------
# Scoring functions
#-----------------------------------------------------------------------------
@jit(nopython=True, fastmath=True)
def calculate_key_load(
    layout: np.ndarray,
    slot_elements: np.ndarray,
    slot_weights: np.ndarray,
    key_costs: np.ndarray,
    ideal_distribution: np.ndarray
) -> tuple:
    """Frequency-weighted key effort and total variation from the ideal load."""
    n_keys = len(key_costs)
    load = np.zeros(n_keys)
    total = 0.0
    cost = 0.0
    for i in range(len(slot_elements)):
        key = layout[slot_elements[i]]
        load[key] += slot_weights[i]
        cost += slot_weights[i] * key_costs[key]
        total += slot_weights[i]

    if total <= 0.0:
        return 0.0, 0.0

    deviation = 0.0
    for k in range(n_keys):
        deviation += abs(load[k] / total - ideal_distribution[k])

    return cost / total, deviation / 2.0


class LayoutEvaluator:
    """
    Evaluate layouts of one representation against a set of assets.
    """

    def __init__(self, representation: Representation, assets: Assets, weights: Dict[str, float]):
        self.representation = representation
        self.weights = weights
        n_keys = len(representation.alphabet)

        # Without a frequency table every element name counts the same
        default_frequency = 0.0 if assets.element_frequency else 1.0
        self.name_frequency = {
            name: float(assets.element_frequency.get(name, default_frequency))
            for name in representation.codes
        }
        self.total_frequency = sum(self.name_frequency.values())

        slot_elements, slot_weights = [], []
        for name, handles in representation.slot_elements.items():
            for handle in handles:
                slot_elements.append(handle)
                slot_weights.append(self.name_frequency[name])
        self.slot_elements = np.array(slot_elements, dtype=np.int64)
        self.slot_weights = np.array(slot_weights, dtype=np.float64)

        self.key_costs = np.array([
            assets.key_equivalence.get(char, 0.0) for char in representation.alphabet
        ], dtype=np.float64)

        ideal = np.array([
            assets.key_distribution.get(char, 0.0) for char in representation.alphabet
        ], dtype=np.float64)
        if ideal.sum() <= 0:
            ideal = np.full(n_keys, 1.0 / n_keys)
        self.ideal_distribution = ideal / ideal.sum()

    def calculate_duplication(self, layout: np.ndarray) -> Tuple[float, int]:
        """Frequency share and number of element names sharing a full code."""
        groups: Dict[tuple, list] = {}
        for name, code in self.representation.resolve_codes(layout).items():
            groups.setdefault(code, []).append(self.name_frequency[name])

        duplicated_frequency = 0.0
        duplicate_codes = 0
        for frequencies in groups.values():
            if len(frequencies) > 1:
                # The most frequent name keeps the code
                duplicated_frequency += sum(frequencies) - max(frequencies)
                duplicate_codes += len(frequencies) - 1

        if self.total_frequency <= 0:
            return 0.0, duplicate_codes
        return duplicated_frequency / self.total_frequency, duplicate_codes

    def evaluate(self, layout: np.ndarray) -> Metric:
        equivalence, key_distribution = calculate_key_load(
            np.asarray(layout, dtype=np.int64),
            self.slot_elements,
            self.slot_weights,
            self.key_costs,
            self.ideal_distribution
        )
        duplication, duplicate_codes = self.calculate_duplication(layout)
        score = (self.weights['equivalence'] * equivalence
                 + self.weights['key_distribution'] * key_distribution
                 + self.weights['duplication'] * duplication)
        return Metric(
            equivalence=float(equivalence),
            key_distribution=float(key_distribution),
            duplication=float(duplication),
            duplicate_codes=duplicate_codes,
            score=float(score),
        )
