import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')

SLOW_EXECUTION_THRESHOLD = 0.25


def time_execution_sync(additional_text: str = '') -> Callable[[Callable[P, R]], Callable[P, R]]:
	"""Log a debug line when the wrapped call takes longer than 250ms."""

	def decorator(func: Callable[P, R]) -> Callable[P, R]:
		@wraps(func)
		def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
			start_time = time.time()
			result = func(*args, **kwargs)
			execution_time = time.time() - start_time
			if execution_time > SLOW_EXECUTION_THRESHOLD:
				label = additional_text.strip('-') or func.__name__
				logger.debug(f'⏳ {label}() took {execution_time:.2f}s')
			return result

		return wrapper

	return decorator


def cap_text_length(text: str, max_length: int) -> str:
	"""Cap text length for display."""
	if len(text) <= max_length:
		return text
	return text[:max_length] + '...'
