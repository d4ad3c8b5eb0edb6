"""
Central logging configuration and debug decorator.

The package logger ``order_tally`` writes INFO and above to the console and
everything (including per-row rejections) to the debug log file. Handlers are
installed once at import by ``configure_logging``; calling it again swaps
them instead of stacking duplicates, so the CLI can raise the console level
or move the log file.
"""

import functools
import logging
import traceback
from pathlib import Path
from time import time
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

PACKAGE_LOGGER = "order_tally"
LOG_FILE = Path(__file__).resolve().parent.parent / "order_tally_debug.log"

_FORMATTER = logging.Formatter(
    "[%(asctime)s] [%(levelname)s] [%(module)s]: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Marks handlers owned by configure_logging; anything else is left alone
_OWNED = "_order_tally_handler"


def _owned(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(_FORMATTER)
    setattr(handler, _OWNED, True)
    return handler


def configure_logging(
    console_level: int = logging.INFO,
    log_file: Path | None = LOG_FILE,
) -> logging.Logger:
    """
    Install the console and file handlers on the package logger.

    Args:
        console_level: Threshold for console output.
        log_file: Debug log path; None disables the file handler.

    Returns:
        The package logger.
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(logging.DEBUG)

    for handler in [h for h in package.handlers if getattr(h, _OWNED, False)]:
        package.removeHandler(handler)
        handler.close()

    package.addHandler(_owned(logging.StreamHandler(), console_level))
    if log_file is not None:
        package.addHandler(_owned(logging.FileHandler(log_file, mode="a", encoding="utf-8"), logging.DEBUG))
    return package


_logger = logging.getLogger(PACKAGE_LOGGER)
if not any(getattr(h, _OWNED, False) for h in _logger.handlers):
    configure_logging()


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Optional module name. If None, returns the package logger.

    Returns:
        Logger that propagates to the package console and file handlers.
    """
    if name:
        prefix = f"{PACKAGE_LOGGER}."
        if name.startswith(prefix):
            name = name[len(prefix):]
        return logging.getLogger(prefix + name)
    return _logger


def debug_watcher(func: F) -> F:
    """
    Decorator that logs function entry, execution time, and exceptions.

    The traceback of a failure goes to the file handler only; the exception
    is re-raised unchanged.
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        func_name = func.__name__
        start_time = time()

        # Sequences of rows are summarised by length, not dumped
        shown = []
        for arg in args[:3]:
            if hasattr(arg, "__len__") and not isinstance(arg, str):
                shown.append(f"<{type(arg).__name__} len={len(arg)}>")
            else:
                shown.append(str(arg)[:100])
        kwargs_str = ", ".join(f"{k}={str(v)[:50]}" for k, v in list(kwargs.items())[:3])
        params_str = ", ".join(filter(None, [", ".join(shown), kwargs_str]))
        logger.info(f"Starting {func_name}... ({params_str})")

        try:
            result = func(*args, **kwargs)
            elapsed = time() - start_time
            logger.info(f"Completed {func_name} in {elapsed:.3f} seconds.")
            return result

        except Exception as e:
            elapsed = time() - start_time
            logger.error(
                f"Exception in {func_name} after {elapsed:.3f} seconds: {type(e).__name__}: {e}"
            )
            logger.debug(f"Full traceback for {func_name}:\n{traceback.format_exc()}")
            raise

    return wrapper  # type: ignore[return-value]
