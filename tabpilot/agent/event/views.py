from enum import Enum
from typing import Any

from bubus import BaseEvent
from pydantic import Field


class Actors(str, Enum):
	SYSTEM = 'system'
	PLANNER = 'planner'
	NAVIGATOR = 'navigator'
	VALIDATOR = 'validator'


class ExecutionState(str, Enum):
	# task level
	TASK_START = 'task.start'
	TASK_OK = 'task.ok'
	TASK_FAIL = 'task.fail'
	TASK_CANCEL = 'task.cancel'

	# step level
	STEP_START = 'step.start'
	STEP_OK = 'step.ok'
	STEP_FAIL = 'step.fail'

	# action level
	ACT_START = 'act.start'
	ACT_OK = 'act.ok'
	ACT_FAIL = 'act.fail'

	@property
	def is_terminal_action_state(self) -> bool:
		return self in (ExecutionState.ACT_OK, ExecutionState.ACT_FAIL)


class ExecutionEvent(BaseEvent[None]):
	"""A start/ok/fail notification emitted around one action call.

	The sequence of these events is the audit trail of a run; the tab policy
	check in :mod:`tabpilot.agent.event.compliance` is computed from it.
	"""

	event_type: str = 'ExecutionEvent'
	task_id: str
	actor: Actors
	state: ExecutionState
	details: str = ''
	step: int = 0
	payload: dict[str, Any] = Field(default_factory=dict)

	@property
	def action(self) -> str | None:
		return self.payload.get('action')
