from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from layout_optimizer.config import apply_defaults, metaheuristic_config
from layout_optimizer.reporting import Reporter


def make_config(mapping: dict, alphabet: str = "abcd", constraints: dict | None = None,
                metaheuristic: dict | None = None) -> dict:
    config = {
        "form": {"alphabet": alphabet, "mapping": mapping},
        "optimization": {
            "constraints": constraints or {},
            "metaheuristic": metaheuristic or {},
        },
    }
    return apply_defaults(config)


@dataclass
class HammingMetric:
    score: float

    def __str__(self) -> str:
        return f"Distance: {self.score}\n"


class HammingEvaluator:
    """Score grows by one for every element away from the reference layout."""

    def __init__(self, reference) -> None:
        self.reference = np.asarray(reference)
        self.calls = 0

    def evaluate(self, layout) -> HammingMetric:
        self.calls += 1
        return HammingMetric(float(np.count_nonzero(np.asarray(layout) != self.reference)))


class RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.events = []

    def init_autosolve(self) -> None:
        self.events.append(("init_autosolve",))

    def report_trial_t_max(self, temperature, accept_rate) -> None:
        self.events.append(("trial_t_max", temperature, accept_rate))

    def report_t_max(self, temperature) -> None:
        self.events.append(("t_max", temperature))

    def report_trial_t_min(self, temperature, improve_rate) -> None:
        self.events.append(("trial_t_min", temperature, improve_rate))

    def report_t_min(self, temperature) -> None:
        self.events.append(("t_min", temperature))

    def report_parameters(self, t_max, t_min, steps) -> None:
        self.events.append(("parameters", t_max, t_min, steps))

    def report_elapsed(self, microseconds) -> None:
        self.events.append(("elapsed", microseconds))

    def report_schedule(self, step, temperature, metric) -> None:
        self.events.append(("schedule", step, temperature, metric))

    def report_solution(self, config, metric, save) -> None:
        self.events.append(("solution", config, metric, save))

    def named(self, name: str) -> list:
        return [event for event in self.events if event[0] == name]


@pytest.fixture
def eight_key_config() -> dict:
    mapping = {f"e{i}": char for i, char in enumerate("abcdefgh")}
    return make_config(mapping, alphabet="abcdefgh", metaheuristic={
        "seed": 7,
        "search_method": {"random_move": 1.0, "random_swap": 0.0, "random_full_key_swap": 0.0},
    })


@pytest.fixture
def settings() -> dict:
    return metaheuristic_config({"seed": 1})
