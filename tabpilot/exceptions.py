class TabpilotError(Exception):
	"""Base class for all tabpilot errors"""


class InvalidInputError(TabpilotError):
	"""Raised when the arguments of an action call do not match its parameter model.

	The handler is never invoked when this is raised, so the call had no side effects.
	"""

	def __init__(self, action_name: str, message: str):
		self.action_name = action_name
		self.message = message
		super().__init__(f'Invalid input for action {action_name}: {message}')


class InvalidActionError(TabpilotError):
	"""Raised when a call names an unknown action or does not select exactly one action"""


class ElementNotFoundError(TabpilotError):
	"""Raised when an element index is not present in the current selector map"""

	def __init__(self, index: int):
		self.index = index
		super().__init__(f'Element with index {index} does not exist - retry or use alternative actions')
