from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from bubus import EventBus
from pydantic import BaseModel, ConfigDict, Field

from tabpilot.agent.event.service import EventLog
from tabpilot.agent.event.views import Actors, ExecutionEvent, ExecutionState
from tabpilot.browser.types import BrowserContext


class AgentOptions(BaseModel):
	"""Options for the agent"""

	use_vision: bool = False
	max_actions_per_step: int = 10
	wait_between_actions: float = 0.5
	exclude_actions: list[str] = Field(default_factory=list)


class ActionResult(BaseModel):
	"""Result of executing an action"""

	model_config = ConfigDict(frozen=True)

	is_done: Optional[bool] = False
	extracted_content: Optional[str] = None
	error: Optional[str] = None
	include_in_memory: bool = False  # whether to include in past messages as context or not


@dataclass
class AgentContext:
	"""Per-run dependencies shared by every action handler"""

	browser_context: BrowserContext
	options: AgentOptions = field(default_factory=AgentOptions)
	event_log: EventLog = field(default_factory=EventLog)
	event_bus: EventBus | None = None
	task_id: str = field(default_factory=lambda: str(uuid.uuid4()))
	n_steps: int = 0

	def emit_event(self, actor: Actors, state: ExecutionState, details: str, **payload: Any) -> ExecutionEvent:
		event = ExecutionEvent(
			task_id=self.task_id,
			actor=actor,
			state=state,
			details=details,
			step=self.n_steps,
			payload=payload,
		)
		self.event_log.append(event)
		if self.event_bus is not None:
			self.event_bus.dispatch(event)
		return event
