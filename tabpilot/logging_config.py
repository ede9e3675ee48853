import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

RESULT_LEVEL = 35


def add_logging_level(level_name: str, level_num: int, method_name: str | None = None) -> None:
	"""
	Comprehensively adds a new logging level to the `logging` module and the
	currently configured logging class.

	`level_name` becomes an attribute of the `logging` module with the value
	`level_num`. `method_name` becomes a convenience method for both `logging`
	itself and the class returned by `logging.getLoggerClass()`.
	"""
	if not method_name:
		method_name = level_name.lower()

	if hasattr(logging, level_name):
		raise AttributeError(f'{level_name} already defined in logging module')
	if hasattr(logging.getLoggerClass(), method_name):
		raise AttributeError(f'{method_name} already defined in logger class')

	def log_for_level(self, message, *args, **kwargs):
		if self.isEnabledFor(level_num):
			self._log(level_num, message, args, **kwargs)

	def log_to_root(message, *args, **kwargs):
		logging.log(level_num, message, *args, **kwargs)

	logging.addLevelName(level_num, level_name)
	setattr(logging, level_name, level_num)
	setattr(logging.getLoggerClass(), method_name, log_for_level)
	setattr(logging, method_name, log_to_root)


class TabpilotFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		if isinstance(record.name, str) and record.name.startswith('tabpilot.'):
			record.name = record.name.split('.')[-2]
		return super().format(record)


def setup_logging() -> None:
	"""Configure the tabpilot logger from TABPILOT_LOGGING_LEVEL (result, info or debug)"""
	try:
		add_logging_level('RESULT', RESULT_LEVEL)
	except AttributeError:
		pass  # already registered

	log_type = os.getenv('TABPILOT_LOGGING_LEVEL', 'info').lower()

	tabpilot_logger = logging.getLogger('tabpilot')
	if tabpilot_logger.handlers:
		return

	console = logging.StreamHandler(sys.stdout)
	if log_type == 'result':
		console.setLevel(RESULT_LEVEL)
		console.setFormatter(TabpilotFormatter('%(message)s'))
	else:
		console.setFormatter(TabpilotFormatter('%(levelname)-8s [%(name)s] %(message)s'))

	tabpilot_logger.addHandler(console)
	tabpilot_logger.propagate = False

	if log_type == 'result':
		tabpilot_logger.setLevel(RESULT_LEVEL)
	elif log_type == 'debug':
		tabpilot_logger.setLevel(logging.DEBUG)
	else:
		tabpilot_logger.setLevel(logging.INFO)
