#!/usr/bin/env python3
"""
Decorators for the model evaluation package.

- log_errors: log failures, optionally re-raising them as a domain error
- timed: log wall-clock duration
- log_step: step entry/exit logging, re-exported from logging_utils
"""

import time
import functools
import traceback
from typing import Any, Callable, Optional, TypeVar, cast, List, Type, Union

from utils.logging_utils import logger, log_step

F = TypeVar('F', bound=Callable[..., Any])

__all__ = ['log_errors', 'timed', 'log_step']


def log_errors(expected_exceptions: Union[Type[Exception], List[Type[Exception]]] = Exception,
               msg: str = "Error in {func_name}",
               wrap_as: Optional[Type[Exception]] = None) -> Callable[[F], F]:
    """
    Decorator to log exceptions raised by the wrapped function.

    Args:
        expected_exceptions: Exception type or list of types to log. Others pass through untouched.
        msg: Message template for the log line. {func_name} is replaced.
        wrap_as: Exception class taking a message. When given, a logged
            exception is re-raised as ``wrap_as(message)`` chained to the
            original; otherwise the original is re-raised.

    Returns:
        Decorated function that logs errors
    """
    if not isinstance(expected_exceptions, (list, tuple)):
        exceptions_to_check = (expected_exceptions,)
    else:
        exceptions_to_check = tuple(expected_exceptions)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except exceptions_to_check as e:
                message = f"{msg.format(func_name=func.__name__)}: {str(e)}"
                logger.error(message)
                logger.debug("Traceback:\n" + traceback.format_exc())
                if wrap_as is not None and not isinstance(e, wrap_as):
                    raise wrap_as(message) from e
                raise

        return cast(F, wrapper)
    return decorator


def timed(*args: Any, log_level: str = "info", step_name: Optional[str] = None) -> Any:
    """
    Log how long the wrapped function takes.

    Works bare (``@timed``) or with a label (``@timed("Model fitting")``);
    the label defaults to the function name. ``log_level`` picks the logger
    method used for the timing line.
    """
    def make_wrapper(f: Callable[..., Any], name: str) -> Callable[..., Any]:
        @functools.wraps(f)
        def wrapper(*w_args: Any, **w_kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return f(*w_args, **w_kwargs)
            finally:
                elapsed = time.perf_counter() - start
                getattr(logger, log_level.lower())(f"{name} executed in {elapsed:.2f} seconds")
        return wrapper

    # Used as a bare decorator: @timed
    if len(args) == 1 and callable(args[0]):
        f = args[0]
        return make_wrapper(f, step_name or f.__name__)

    provided_step_name = args[0] if args and isinstance(args[0], str) else step_name

    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        return make_wrapper(f, provided_step_name or f.__name__)
    return decorator
