# layout_optimizer/reporting.py
"""
Progress reporting and persistence of the solutions found by the annealer.
"""
import csv
import os
from datetime import datetime
from typing import Dict

import psutil
import yaml
from tqdm import tqdm

from .errors import PersistenceError


class Reporter:
    """
    Observer of an optimization run. Every method is a pure notification;
    the base class ignores them all.
    """

    def init_autosolve(self) -> None:
        pass

    def report_trial_t_max(self, temperature: float, accept_rate: float) -> None:
        pass

    def report_t_max(self, temperature: float) -> None:
        pass

    def report_trial_t_min(self, temperature: float, improve_rate: float) -> None:
        pass

    def report_t_min(self, temperature: float) -> None:
        pass

    def report_parameters(self, t_max: float, t_min: float, steps: int) -> None:
        pass

    def report_elapsed(self, microseconds: int) -> None:
        pass

    def report_schedule(self, step: int, temperature: float, metric: str) -> None:
        pass

    def report_solution(self, config: dict, metric: str, save: bool) -> None:
        pass

    def close(self) -> None:
        pass


def solution_prefix(time: datetime) -> str:
    """Timestamp prefix shared by the yaml and txt files of one solution."""
    return f"{time.strftime('%m-%d+%H_%M_%S')}_{time.microsecond // 1000:03d}"

def save_solution(output_dir: str, config: dict, metric: str, time: datetime = None) -> str:
    """
    Write a scheme and its metric report as <prefix>.yaml and <prefix>.txt.

    Returns the prefix path. Any failure is raised as a PersistenceError.
    """
    time = time or datetime.now()
    prefix = os.path.join(output_dir, solution_prefix(time))
    try:
        os.makedirs(output_dir, exist_ok=True)
        with open(f"{prefix}.txt", 'w', encoding='utf-8') as f:
            f.write(metric)
        with open(f"{prefix}.yaml", 'w', encoding='utf-8') as f:
            yaml.safe_dump(config, f, allow_unicode=True, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        raise PersistenceError(f"Cannot save solution to {prefix}: {e}") from e
    return prefix

def save_codes(path: str, codes: Dict[str, str]) -> None:
    """Write `character<TAB>code` rows. Failures are raised as PersistenceError."""
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f, delimiter='\t', lineterminator='\n')
            for character, code in codes.items():
                writer.writerow([character, code])
    except OSError as e:
        raise PersistenceError(f"Cannot save codes to {path}: {e}") from e


class ConsoleReporter(Reporter):
    """
    Print progress to the terminal, show a progress bar over the annealing
    schedule and save new best solutions under `output_dir`.
    """

    def __init__(self, output_dir: str = "output"):
        self.output_dir = output_dir
        self.pbar = None
        self.last_step = 0

    def _print(self, message: str = "") -> None:
        if self.pbar is not None:
            tqdm.write(message)
        else:
            print(message)

    def init_autosolve(self) -> None:
        self._print("Searching for annealing parameters...")

    def report_trial_t_max(self, temperature: float, accept_rate: float) -> None:
        self._print(f"  - at temperature {temperature:.2e}: accept rate {accept_rate * 100:.2f}%")

    def report_t_max(self, temperature: float) -> None:
        self._print(f"Accept rate reached the target; estimated t_max = {temperature:.2e}")

    def report_trial_t_min(self, temperature: float, improve_rate: float) -> None:
        self._print(f"  - at temperature {temperature:.2e}: improve rate {improve_rate * 100:.2f}%")

    def report_t_min(self, temperature: float) -> None:
        self._print(f"Improve rate reached the target; estimated t_min = {temperature:.2e}")

    def report_parameters(self, t_max: float, t_min: float, steps: int) -> None:
        self._print(f"\nAnnealing from t_max = {t_max:.2e} to t_min = {t_min:.2e} in {steps:,} steps")
        self.pbar = tqdm(total=steps, desc="Annealing", unit='steps')
        self.last_step = 0

    def report_elapsed(self, microseconds: int) -> None:
        self._print(f"One evaluation takes {microseconds} μs")

    def report_schedule(self, step: int, temperature: float, metric: str) -> None:
        if self.pbar is not None:
            self.pbar.update(step - self.last_step)
            self.last_step = step
            self.pbar.set_postfix({
                'T': f"{temperature:.2e}",
                'Memory': f"{psutil.Process().memory_info().rss/1e9:.1f}GB"
            })
        self._print(f"\nStep {step:,}, temperature {temperature:.2e}, current metric:")
        self._print(metric)

    def report_solution(self, config: dict, metric: str, save: bool) -> None:
        time = datetime.now()
        self._print(f"\n{time.strftime('%H:%M:%S')} Found a better layout:")
        self._print(metric)
        if save:
            prefix = save_solution(self.output_dir, config, metric, time)
            self._print(f"Scheme saved to {prefix}.yaml, metric saved to {prefix}.txt")

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None
