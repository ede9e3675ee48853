import logging
from typing import Iterator

from tabpilot.agent.event.views import Actors, ExecutionEvent, ExecutionState

logger = logging.getLogger(__name__)


class EventLog:
	"""Append-only record of the execution events of one agent run"""

	def __init__(self) -> None:
		self._events: list[ExecutionEvent] = []

	def append(self, event: ExecutionEvent) -> None:
		self._events.append(event)
		logger.debug(f'{event.actor.value} {event.state.value}: {event.details}')

	def filter(self, actor: Actors | None = None, state: ExecutionState | None = None) -> list[ExecutionEvent]:
		return [
			event
			for event in self._events
			if (actor is None or event.actor == actor) and (state is None or event.state == state)
		]

	@property
	def last(self) -> ExecutionEvent | None:
		return self._events[-1] if self._events else None

	def __iter__(self) -> Iterator[ExecutionEvent]:
		return iter(list(self._events))

	def __len__(self) -> int:
		return len(self._events)

	def __getitem__(self, index: int) -> ExecutionEvent:
		return self._events[index]
