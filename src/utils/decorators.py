"""Resilience and instrumentation decorators for adapter calls."""
import asyncio
import functools
import time
from typing import Callable, Iterator, Tuple, Type

from src.utils.errors import ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Bad input stays bad; retrying it only delays the failure.
NEVER_RETRIED: Tuple[Type[Exception], ...] = (ValidationError,)


def _backoff_delays(first: float, factor: float, attempts: int) -> Iterator[float]:
    wait = first
    for _ in range(attempts - 1):
        yield wait
        wait *= factor


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Retry with exponential backoff.

    ``max_attempts`` counts the first call. Only ``exceptions`` are retried,
    and never a ValidationError (or subclass) even when it matches.

    Example:
        @retry(max_attempts=3, delay=0.5, exceptions=(httpx.TransportError,))
        async def _fetch_live(self, params):
            ...
    """
    def _retryable(error: Exception) -> bool:
        return isinstance(error, exceptions) and not isinstance(error, NEVER_RETRIED)

    def _note(func_name: str, attempt: int, error: Exception, wait) -> None:
        if wait is None:
            logger.error(
                f"{func_name} gave up after {attempt} attempt(s)",
                extra={"function": func_name, "error": str(error), "attempts": attempt}
            )
        else:
            logger.warning(
                f"{func_name} failed (attempt {attempt}/{max_attempts}), retrying in {wait}s",
                extra={"function": func_name, "error": str(error), "delay": wait}
            )

    def decorator(func: Callable):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            waits = _backoff_delays(delay, backoff, max_attempts)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    wait = next(waits, None) if _retryable(e) else None
                    _note(func.__name__, attempt, e, wait)
                    if wait is None:
                        raise
                    await asyncio.sleep(wait)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            waits = _backoff_delays(delay, backoff, max_attempts)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    wait = next(waits, None) if _retryable(e) else None
                    _note(func.__name__, attempt, e, wait)
                    if wait is None:
                        raise
                    time.sleep(wait)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def timeout(seconds: float):
    """
    Timeout decorator for async functions.

    Raises the builtin ``TimeoutError`` once ``seconds`` have elapsed; the
    wrapped coroutine is cancelled.
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
            except asyncio.TimeoutError:
                logger.error(
                    f"Function {func.__name__} timed out after {seconds}s",
                    extra={"timeout": seconds}
                )
                raise TimeoutError(f"{func.__name__} exceeded timeout of {seconds}s")

        return wrapper

    return decorator


def log_execution(log_args: bool = True, log_result: bool = False):
    """
    Decorator to log function execution with timing.

    Args:
        log_args: Whether to log function arguments
        log_result: Whether to log function result
    """
    def _start(func_name: str, args, kwargs) -> float:
        extra = {"function": func_name}
        if log_args:
            extra["function_args"] = str(args)[:100]
            extra["function_kwargs"] = str(kwargs)[:100]
        logger.info(f"Starting {func_name}", extra=extra)
        return time.perf_counter()

    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    def _done(func_name: str, start: float, result) -> None:
        extra = {"function": func_name, "execution_time_ms": _elapsed_ms(start)}
        if log_result:
            extra["result"] = str(result)[:100]
        logger.info(f"Completed {func_name}", extra=extra)

    def _failed(func_name: str, start: float, error: BaseException) -> None:
        logger.error(
            f"Failed {func_name}",
            extra={"function": func_name, "execution_time_ms": _elapsed_ms(start), "error": str(error)}
        )

    def decorator(func: Callable):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = _start(func.__name__, args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _failed(func.__name__, start, e)
                raise
            _done(func.__name__, start, result)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = _start(func.__name__, args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(func.__name__, start, e)
                raise
            _done(func.__name__, start, result)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
