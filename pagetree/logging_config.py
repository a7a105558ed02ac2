import logging
import sys

from pagetree.config import CONFIG

RESULT_LEVEL = 35


def addLoggingLevel(level_name: str, level_num: int, method_name: str | None = None) -> None:
	"""Register a new logging level plus the matching ``Logger`` method.

	Does nothing when the level already exists, so repeated setup is safe.
	"""
	if not method_name:
		method_name = level_name.lower()

	if hasattr(logging, level_name) or hasattr(logging.getLoggerClass(), method_name):
		return

	def log_for_level(self, message, *args, **kwargs):
		if self.isEnabledFor(level_num):
			self._log(level_num, message, args, **kwargs)

	def log_to_root(message, *args, **kwargs):
		logging.log(level_num, message, *args, **kwargs)

	logging.addLevelName(level_num, level_name)
	setattr(logging, level_name, level_num)
	setattr(logging.getLoggerClass(), method_name, log_for_level)
	setattr(logging, method_name, log_to_root)


class PageTreeFormatter(logging.Formatter):
	"""Shortens ``pagetree.dom.serializer.simplifier`` style names to the last component."""

	def format(self, record: logging.LogRecord) -> str:
		if isinstance(record.name, str) and record.name.startswith('pagetree.'):
			record.name = record.name.rsplit('.', 1)[-1]
		return super().format(record)


def setup_logging(log_level: str | None = None, stream=None, force_setup: bool = False) -> logging.Logger:
	"""Configure the ``pagetree`` logger.

	Args:
		log_level: ``debug``, ``info``, ``warning`` or ``result``. Defaults to
			``PAGETREE_LOGGING_LEVEL``.
		stream: Output stream for the handler, ``sys.stdout`` by default.
		force_setup: Replace handlers even if the logger is already configured.

	Returns:
		The configured ``pagetree`` logger.
	"""
	addLoggingLevel('RESULT', RESULT_LEVEL)

	logger = logging.getLogger('pagetree')
	if logger.handlers and not force_setup:
		return logger

	level_name = (log_level or CONFIG.PAGETREE_LOGGING_LEVEL).lower()
	if level_name == 'result':
		level = RESULT_LEVEL
		formatter = PageTreeFormatter('%(message)s')
	else:
		level = getattr(logging, level_name.upper(), logging.INFO)
		formatter = PageTreeFormatter('%(levelname)-8s [%(name)s] %(message)s')

	logger.handlers.clear()
	handler = logging.StreamHandler(stream or sys.stdout)
	handler.setFormatter(formatter)
	logger.addHandler(handler)
	logger.setLevel(level)
	logger.propagate = False

	# protocol clients are chatty at debug level
	for third_party in ('cdp_use', 'cdp_use.client', 'websockets'):
		logging.getLogger(third_party).setLevel(logging.WARNING)

	logger.debug(f'pagetree logging initialized at level {level_name}')
	return logger
