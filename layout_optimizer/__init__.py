"""
Constrained optimization of element-to-key layouts by simulated annealing.
"""
from .annealing import Annealer, SearchState
from .config import load_config
from .constraints import Constraints, compile_constraints
from .errors import (ConfigurationError, LayoutOptimizerError, PersistenceError,
                     PreconditionViolation, UnknownElement, UnknownKey)
from .mutations import full_key_swap, random_move, random_swap
from .objective import LayoutEvaluator, Metric, load_assets
from .reporting import ConsoleReporter, Reporter
from .representation import Representation

__version__ = "0.1.0"
