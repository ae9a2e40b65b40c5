"""Timeout utilities for camera operations."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from functools import partial
from typing import Any, Callable, Optional, Type, TypeVar

from exceptions import OperationTimeoutError
from log_config.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_timeout(
    func: Callable[..., T],
    timeout_seconds: float,
    error_message: str = "Operation timed out",
    *args: Any,
    error_type: Type[Exception] = OperationTimeoutError,
    on_late_result: Optional[Callable[[T], None]] = None,
    **kwargs: Any,
) -> T:
    """Run function with timeout, raise ``error_type`` if exceeded.

    Args:
        func: Function to run
        timeout_seconds: Timeout in seconds
        error_message: Error message if timeout occurs
        *args: Positional arguments for func
        error_type: Exception class raised on timeout
        on_late_result: Called from the worker thread with the result of a
            call that completes after the timeout, e.g. to release a handle
            nobody will own
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        error_type: If operation times out
        Exception: Any exception raised by func

    Note:
        On timeout the worker thread is abandoned rather than joined, so a
        hung driver call cannot block the caller.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)

    try:
        return future.result(timeout=timeout_seconds)

    except FutureTimeoutError:
        if on_late_result is not None:
            future.add_done_callback(partial(_deliver_late_result, on_late_result))
        logger.error(f"{error_message} after {timeout_seconds}s")
        raise error_type(f"{error_message} after {timeout_seconds}s")

    finally:
        executor.shutdown(wait=future.done(), cancel_futures=True)


def _deliver_late_result(callback: Callable[[Any], None], future: Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    callback(future.result())


__all__ = ["run_with_timeout"]
