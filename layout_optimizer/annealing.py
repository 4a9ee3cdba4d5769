# layout_optimizer/annealing.py
"""
Simulated annealing over constrained layouts.

The annealer first estimates its temperature range from trial runs:

  - t_max: starting from the initial temperature, double until almost every
    proposal is accepted, then halve while that still holds
  - t_min: halve from t_max until almost no proposal improves the score

and then runs a geometric cooling schedule from t_max to t_min, keeping the
best layout seen. Scores are losses: lower is better.
"""
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from .constraints import Constraints
from .logging_utils import get_logger
from .mutations import OperatorPicker
from .reporting import Reporter
from .representation import Representation

logger = get_logger(__name__)

# Upper bound on the trial runs of each calibration loop
MAX_TRIALS = 64


class Phase(Enum):
    INIT = 'init'
    CALIBRATE_T_MAX = 'calibrate_t_max'
    CALIBRATE_T_MIN = 'calibrate_t_min'
    SCHEDULE = 'schedule'
    DONE = 'done'


@dataclass
class SearchState:
    """Current and best layouts of a run."""
    layout: np.ndarray
    score: float
    best_layout: np.ndarray
    best_metric: object
    best_score: float
    temperature: float = 0.0
    step: int = 0


@dataclass
class TrialResult:
    """Outcome of a fixed-temperature trial run."""
    layout: np.ndarray
    score: float
    accept_rate: float
    improve_rate: float
    evaluations: int
    elapsed_ns: int


class Annealer:
    """
    Drive the mutation operators with a Metropolis acceptance rule.

    Args:
        representation: lookup tables of the scheme (used to export solutions)
        constraints: compiled constraints, read-only for the whole run
        evaluator: object with evaluate(layout) -> metric, where metric has a
            float `score` and renders to text with str()
        reporter: receives progress notifications and new best solutions
        settings: the optimization.metaheuristic block (defaults applied)
        rng: random generator; created from settings['seed'] if omitted
    """

    def __init__(self, representation: Representation, constraints: Constraints, evaluator,
                 reporter: Reporter, settings: dict, rng: Optional[np.random.Generator] = None):
        self.representation = representation
        self.constraints = constraints
        self.evaluator = evaluator
        self.reporter = reporter
        self.settings = settings
        self.rng = rng if rng is not None else np.random.default_rng(settings.get('seed'))
        self.mutate = OperatorPicker(settings['search_method'])
        self.phase = Phase.INIT
        # Evaluation count and time spent in trial runs
        self.evaluations = 0
        self.elapsed_ns = 0

    #-------------------------------------------------------------------------
    # Metropolis rule
    #-------------------------------------------------------------------------
    def accept(self, delta: float, temperature: float) -> bool:
        """Always accept an improvement, a degradation with probability exp(-delta/T)."""
        if delta < 0:
            return True
        return self.rng.random() < math.exp(-delta / temperature)

    def timed_evaluate(self, layout: np.ndarray):
        start = time.perf_counter_ns()
        metric = self.evaluator.evaluate(layout)
        return metric, time.perf_counter_ns() - start

    def trial_run(self, layout: np.ndarray, score: float, temperature: float, batch: int) -> TrialResult:
        """Run `batch` proposals at a fixed temperature and measure the rates."""
        accepts = 0
        improves = 0
        elapsed_ns = 0
        for _ in range(batch):
            candidate = self.mutate(self.constraints, layout, self.rng)
            metric, elapsed = self.timed_evaluate(candidate)
            elapsed_ns += elapsed
            delta = metric.score - score
            if delta < 0:
                improves += 1
            if self.accept(delta, temperature):
                accepts += 1
                layout, score = candidate, metric.score
        self.evaluations += batch
        self.elapsed_ns += elapsed_ns
        return TrialResult(layout, score, accepts / batch, improves / batch, batch, elapsed_ns)

    #-------------------------------------------------------------------------
    # Calibration
    #-------------------------------------------------------------------------
    def calibrate_t_max(self, layout: np.ndarray, score: float) -> Tuple[float, TrialResult]:
        """
        Find the lowest power-of-two multiple of the initial temperature at
        which the accept rate is at or above accept_target.
        """
        self.phase = Phase.CALIBRATE_T_MAX
        calibration = self.settings['calibration']
        target = calibration['accept_target']
        batch = calibration['batch']
        temperature = calibration['initial_temperature']

        trial = self.trial_run(layout, score, temperature, batch)
        self.reporter.report_trial_t_max(temperature, trial.accept_rate)

        trials = 1
        while trial.accept_rate < target and trials < MAX_TRIALS:
            temperature *= 2.0
            trial = self.trial_run(trial.layout, trial.score, temperature, batch)
            self.reporter.report_trial_t_max(temperature, trial.accept_rate)
            trials += 1

        # Cool down again while the accept rate stays above target
        while trials < MAX_TRIALS:
            lower = self.trial_run(trial.layout, trial.score, temperature / 2.0, batch)
            self.reporter.report_trial_t_max(temperature / 2.0, lower.accept_rate)
            trials += 1
            if lower.accept_rate < target:
                break
            temperature /= 2.0
            trial = lower

        self.reporter.report_t_max(temperature)
        logger.info("t_max = %.3e after %d trials", temperature, trials)
        return temperature, trial

    def calibrate_t_min(self, trial: TrialResult, t_max: float) -> float:
        """
        Halve the temperature from t_max until the share of improving
        proposals falls to improve_target or below.
        """
        self.phase = Phase.CALIBRATE_T_MIN
        calibration = self.settings['calibration']
        target = calibration['improve_target']
        batch = calibration['batch']
        temperature = t_max

        trial = self.trial_run(trial.layout, trial.score, temperature, batch)
        self.reporter.report_trial_t_min(temperature, trial.improve_rate)

        trials = 1
        while trial.improve_rate > target and trials < MAX_TRIALS:
            temperature /= 2.0
            trial = self.trial_run(trial.layout, trial.score, temperature, batch)
            self.reporter.report_trial_t_min(temperature, trial.improve_rate)
            trials += 1

        self.reporter.report_t_min(temperature)
        logger.info("t_min = %.3e after %d trials", temperature, trials)
        return temperature

    def calibrate(self, layout: np.ndarray, score: float) -> Tuple[float, float, float]:
        """Estimate (t_max, t_min, mean evaluation time in ns)."""
        self.reporter.init_autosolve()
        t_max, trial = self.calibrate_t_max(layout, score)
        t_min = self.calibrate_t_min(trial, t_max)

        mean_ns = self.elapsed_ns / max(self.evaluations, 1)
        self.reporter.report_elapsed(int(mean_ns // 1000))
        return t_max, t_min, mean_ns

    def steps_for_runtime(self, mean_ns: float) -> int:
        """Number of steps that fit in the configured runtime (minutes)."""
        budget_ns = self.settings['runtime'] * 60 * 1e9
        return max(1, int(budget_ns / max(mean_ns, 1.0)))

    #-------------------------------------------------------------------------
    # Schedule
    #-------------------------------------------------------------------------
    @staticmethod
    def temperature_at(step: int, steps: int, t_max: float, t_min: float) -> float:
        """Geometric cooling from t_max (step 0) towards t_min (step `steps`)."""
        return t_max * (t_min / t_max) ** (step / steps)

    def anneal(self, layout: np.ndarray, t_max: float, t_min: float, steps: int) -> SearchState:
        """Run the cooling schedule from `layout` and return the final state."""
        self.phase = Phase.SCHEDULE
        report_after = self.settings['report_after']
        update_interval = self.settings['update_interval']

        metric, elapsed = self.timed_evaluate(layout)
        self.reporter.report_elapsed(elapsed // 1000)
        current_metric = metric
        state = SearchState(
            layout=layout.copy(),
            score=metric.score,
            best_layout=layout.copy(),
            best_metric=metric,
            best_score=metric.score,
            temperature=t_max,
        )
        best_saved = False

        for step in range(steps):
            temperature = self.temperature_at(step, steps, t_max, t_min)
            state.temperature = temperature
            state.step = step + 1

            candidate = self.mutate(self.constraints, state.layout, self.rng)
            metric, elapsed = self.timed_evaluate(candidate)
            if self.accept(metric.score - state.score, temperature):
                state.layout, state.score = candidate, metric.score
                current_metric = metric
                if metric.score < state.best_score:
                    state.best_layout = candidate.copy()
                    state.best_metric = metric
                    state.best_score = metric.score
                    best_saved = step >= report_after * steps
                    self.reporter.report_solution(
                        self.representation.update_config(state.best_layout), str(metric), best_saved)

            if state.step % update_interval == 0:
                self.reporter.report_elapsed(elapsed // 1000)
                self.reporter.report_schedule(state.step, temperature, str(current_metric))

        if not best_saved:
            self.reporter.report_solution(
                self.representation.update_config(state.best_layout), str(state.best_metric), True)

        self.phase = Phase.DONE
        logger.info("Annealing finished after %d steps, best score %.6f", steps, state.best_score)
        return state

    def solve(self, initial_layout: np.ndarray = None) -> SearchState:
        """Calibrate (unless parameters are configured), then anneal."""
        if initial_layout is None:
            initial_layout = self.representation.initial
        layout = np.asarray(initial_layout).copy()

        parameters = self.settings.get('parameters')
        if parameters:
            t_max = float(parameters['t_max'])
            t_min = float(parameters['t_min'])
            steps = int(parameters['steps'])
        else:
            score = self.evaluator.evaluate(layout).score
            t_max, t_min, mean_ns = self.calibrate(layout, score)
            steps = self.steps_for_runtime(mean_ns)

        self.reporter.report_parameters(t_max, t_min, steps)
        return self.anneal(layout, t_max, t_min, steps)
