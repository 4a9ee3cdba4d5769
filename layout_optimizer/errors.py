# layout_optimizer/errors.py
"""
Error types raised while loading a scheme, compiling its constraints
and persisting optimization results.
"""


class LayoutOptimizerError(Exception):
    """Base class for every error raised by the layout optimizer."""


class ConfigurationError(LayoutOptimizerError, ValueError):
    """The scheme or its optimization block is invalid."""


class UnknownElement(ConfigurationError):
    """A constraint or reference names an element that is not in the mapping."""

    def __init__(self, name: str):
        super().__init__(f"Element '{name}' is not in the keyboard mapping")
        self.name = name


class UnknownKey(ConfigurationError):
    """A constraint names a key that is not in the alphabet."""

    def __init__(self, name: str):
        super().__init__(f"Key '{name}' is not in the alphabet")
        self.name = name


class PreconditionViolation(ConfigurationError):
    """The compiled constraints would leave the search with nothing to do."""


class PersistenceError(LayoutOptimizerError, OSError):
    """Writing a solution to the output directory failed."""
