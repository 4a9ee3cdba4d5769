# layout_optimizer/config.py
"""
Load a scheme configuration from yaml, fill in defaults for the
optimization block and validate it.

A scheme looks like:

    form:
      alphabet: qwertyuiopasdfghjklzxcvbnm
      mapping:
        口: k
        木: mu
        林: [{element: 木, index: 0}, l]
    optimization:
      objective: {equivalence: 1.0, key_distribution: 1.0, duplication: 1.0}
      constraints:
        elements: [{element: 口}]
        indices: [{index: 1, keys: [a, s, d, f]}]
        element_indices: [{element: 木, index: 0, keys: [m, n]}]
      metaheuristic:
        algorithm: SimulatedAnnealing
        runtime: 10
        report_after: 0.9
        search_method: {random_move: 0.9, random_swap: 0.09, random_full_key_swap: 0.01}
"""
import copy
import os
from typing import Dict

import yaml

from .errors import ConfigurationError

CONSTRAINT_GROUPS = ('elements', 'indices', 'element_indices')
CONSTRAINT_FIELDS = {'element', 'index', 'keys'}
SEARCH_METHODS = ('random_move', 'random_swap', 'random_full_key_swap')

DEFAULT_OBJECTIVE = {
    'equivalence': 1.0,
    'key_distribution': 1.0,
    'duplication': 1.0,
}

DEFAULT_METAHEURISTIC = {
    'algorithm': 'SimulatedAnnealing',
    'runtime': 10.0,          # minutes, used when parameters.steps is not given
    'parameters': None,       # {t_max, t_min, steps} skips calibration
    'report_after': 0.9,      # only persist new bests after this share of steps
    'update_interval': 1000,
    'seed': None,
    'search_method': {
        'random_move': 0.9,
        'random_swap': 0.09,
        'random_full_key_swap': 0.01,
    },
    'calibration': {
        'initial_temperature': 1.0,
        'batch': 1000,
        'accept_target': 0.98,
        'improve_target': 0.02,
    },
}

#-----------------------------------------------------------------------------
# Loading functions
#-----------------------------------------------------------------------------
def load_config(config_path: str = "config.yaml") -> dict:
    """Load a scheme from yaml, apply optimization defaults and validate it."""
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file {config_path} does not exist")
    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"{config_path} does not contain a yaml mapping")

    apply_defaults(config)
    validate_config(config)
    return config

def merge_defaults(defaults: dict, overrides: dict = None) -> dict:
    """Recursively overlay overrides on a deep copy of defaults."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged

def metaheuristic_config(overrides: dict = None) -> dict:
    """Return the metaheuristic block with defaults filled in."""
    return merge_defaults(DEFAULT_METAHEURISTIC, overrides)

def apply_defaults(config: dict) -> dict:
    """Fill in the optimization block in place (and return the config)."""
    optimization = config.get('optimization') or {}
    config['optimization'] = optimization

    constraints = optimization.get('constraints') or {}
    for group in CONSTRAINT_GROUPS:
        constraints[group] = constraints.get(group) or []
    optimization['constraints'] = constraints

    optimization['objective'] = merge_defaults(DEFAULT_OBJECTIVE, optimization.get('objective'))
    optimization['metaheuristic'] = metaheuristic_config(optimization.get('metaheuristic'))
    return config

#-----------------------------------------------------------------------------
# Validating functions
#-----------------------------------------------------------------------------
def validate_config(config: dict) -> None:
    """
    Validate the form and optimization blocks of a scheme.
    """
    form = config.get('form')
    if not isinstance(form, dict):
        raise ConfigurationError("Scheme is missing its 'form' block")
    alphabet = form.get('alphabet')
    if not isinstance(alphabet, str) or not alphabet:
        raise ConfigurationError("form.alphabet must be a non-empty string")
    if len(set(alphabet)) != len(alphabet):
        raise ConfigurationError(f"Duplicate keys in form.alphabet: {alphabet}")
    if not isinstance(form.get('mapping'), dict) or not form['mapping']:
        raise ConfigurationError("form.mapping must be a non-empty mapping")

    optimization = config['optimization']
    validate_constraint_rules(optimization['constraints'])

    for name, weight in optimization['objective'].items():
        if name not in DEFAULT_OBJECTIVE:
            raise ConfigurationError(f"Unknown objective component: {name}")
        if not isinstance(weight, (int, float)) or weight < 0:
            raise ConfigurationError(f"Objective weight {name} must be a non-negative number, got {weight}")

    validate_metaheuristic(optimization['metaheuristic'])

def validate_constraint_rules(constraints: dict) -> None:
    """Check the shape of every atomic constraint (names are resolved later)."""
    for group in CONSTRAINT_GROUPS:
        rules = constraints.get(group, [])
        if not isinstance(rules, list):
            raise ConfigurationError(f"constraints.{group} must be a list")
        for rule in rules:
            if not isinstance(rule, dict):
                raise ConfigurationError(f"Constraint in {group} must be a mapping, got {rule!r}")
            unknown = set(rule) - CONSTRAINT_FIELDS
            if unknown:
                raise ConfigurationError(f"Constraint {rule} has unknown fields: {sorted(unknown)}")
            index = rule.get('index')
            if index is not None and (not isinstance(index, int) or isinstance(index, bool) or index < 0):
                raise ConfigurationError(f"Constraint index must be a non-negative integer, got {index!r}")
            keys = rule.get('keys')
            if keys is not None and not isinstance(keys, (list, str)):
                raise ConfigurationError(f"Constraint keys must be a list, got {keys!r}")

def validate_metaheuristic(settings: Dict) -> None:
    """Validate the simulated annealing settings."""
    if settings['algorithm'] != 'SimulatedAnnealing':
        raise ConfigurationError(f"Unsupported algorithm: {settings['algorithm']}")

    if not isinstance(settings['runtime'], (int, float)) or settings['runtime'] <= 0:
        raise ConfigurationError(f"runtime must be a positive number of minutes, got {settings['runtime']}")
    if not 0 <= settings['report_after'] <= 1:
        raise ConfigurationError(f"report_after must be within [0, 1], got {settings['report_after']}")
    if not isinstance(settings['update_interval'], int) or settings['update_interval'] < 1:
        raise ConfigurationError(f"update_interval must be a positive integer, got {settings['update_interval']}")

    weights = settings['search_method']
    for name, weight in weights.items():
        if name not in SEARCH_METHODS:
            raise ConfigurationError(f"Unknown search method: {name}")
        if weight < 0:
            raise ConfigurationError(f"Search method weight {name} must be non-negative, got {weight}")
    if sum(weights.values()) <= 0:
        raise ConfigurationError("At least one search method needs a positive weight")

    parameters = settings['parameters']
    if parameters is not None:
        missing = {'t_max', 't_min', 'steps'} - set(parameters)
        if missing:
            raise ConfigurationError(f"parameters is missing {sorted(missing)}")
        if parameters['t_min'] <= 0 or parameters['t_max'] <= 0:
            raise ConfigurationError("t_max and t_min must be positive")
        if parameters['t_min'] > parameters['t_max']:
            raise ConfigurationError(
                f"t_min ({parameters['t_min']}) must not exceed t_max ({parameters['t_max']})")
        if not isinstance(parameters['steps'], int) or parameters['steps'] < 1:
            raise ConfigurationError(f"steps must be a positive integer, got {parameters['steps']}")

    calibration = settings['calibration']
    if not isinstance(calibration['batch'], int) or calibration['batch'] < 1:
        raise ConfigurationError(f"calibration.batch must be a positive integer, got {calibration['batch']}")
    if calibration['initial_temperature'] <= 0:
        raise ConfigurationError("calibration.initial_temperature must be positive")
    for target in ('accept_target', 'improve_target'):
        if not 0 < calibration[target] < 1:
            raise ConfigurationError(f"calibration.{target} must be within (0, 1), got {calibration[target]}")
