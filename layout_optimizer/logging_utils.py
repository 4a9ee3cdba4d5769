# layout_optimizer/logging_utils.py
"""Package-wide logger setup."""
import logging

LOGGER_NAME = "layout_optimizer"


def get_logger(name: str = None) -> logging.Logger:
    """
    Return the package logger (or a child of it).

    A stream handler at WARNING level is attached the first time so that
    library internals stay quiet unless the caller raises the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
    if not name:
        return logger
    # Module names (__name__) already carry the package prefix
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logger.getChild(name)


def set_verbosity(verbose: bool) -> None:
    """Switch the package logger between WARNING and DEBUG."""
    get_logger().setLevel(logging.DEBUG if verbose else logging.WARNING)
