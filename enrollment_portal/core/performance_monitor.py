import time
import logging
import inspect
from functools import wraps
from typing import Callable, Any

from .config import settings

logger = logging.getLogger(__name__)


def monitor_performance(operation_name: str = None):
    """Decorator to log slow or failed document store operations"""
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"

        def _report(start_time: float):
            execution_time = time.time() - start_time
            if execution_time > settings.slow_operation_seconds:
                logger.warning(f"Slow operation detected: {op_name} took {execution_time:.2f}s")
            else:
                logger.debug(f"Operation completed: {op_name} in {execution_time:.2f}s")

        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Operation failed: {op_name} after {time.time() - start_time:.2f}s - {str(e)}")
                raise
            _report(start_time)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Operation failed: {op_name} after {time.time() - start_time:.2f}s - {str(e)}")
                raise
            _report(start_time)
            return result

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

    return decorator
