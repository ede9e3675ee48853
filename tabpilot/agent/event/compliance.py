"""Tab isolation policy check over the execution event log.

The navigator must do all of its web work in tabs it opened itself, in
background mode, and close every such tab before the run ends. The check
reads only the event stream, so it can be run after the fact on any
recorded run.
"""

import logging
from typing import Iterable

from pydantic import BaseModel, Field

from tabpilot.agent.event.views import Actors, ExecutionEvent, ExecutionState
from tabpilot.browser.views import TabId

logger = logging.getLogger(__name__)

# actions that do not touch the browser
NON_BROWSER_ACTIONS = frozenset({'done', 'cache_content'})


class ComplianceReport(BaseModel):
	"""Result of checking one run against the tab isolation policy"""

	is_valid: bool
	violations: list[str] = Field(default_factory=list)
	# calls that started but raised before emitting a terminal event
	unterminated: list[str] = Field(default_factory=list)
	opened_tabs: list[TabId] = Field(default_factory=list)
	closed_tabs: list[TabId] = Field(default_factory=list)

	@property
	def reason(self) -> str:
		if self.is_valid:
			return 'All browser operations happened in background tabs opened and closed by the agent'
		return '; '.join(self.violations)


def check_tab_policy(events: Iterable[ExecutionEvent]) -> ComplianceReport:
	violations: list[str] = []
	unterminated: list[str] = []
	opened: list[TabId] = []
	closed: list[TabId] = []
	first_browser_action: str | None = None
	open_call: ExecutionEvent | None = None

	for event in events:
		if event.actor != Actors.NAVIGATOR:
			continue

		if event.state == ExecutionState.ACT_START:
			if open_call is not None:
				unterminated.append(open_call.action or 'unknown')
			open_call = event
			continue

		if not ExecutionState(event.state).is_terminal_action_state:
			continue

		if open_call is None:
			violations.append(f'{event.action} emitted {event.state.value} without a preceding act.start')
			continue
		if open_call.action != event.action:
			violations.append(f'{event.action} emitted {event.state.value} for a call started by {open_call.action}')
		open_call = None

		if event.state != ExecutionState.ACT_OK:
			continue

		if event.payload.get('background') is False:
			violations.append(f'{event.action} ran outside background mode')

		if first_browser_action is None and event.action not in NON_BROWSER_ACTIONS:
			first_browser_action = event.action
			if event.action != 'open_tab':
				violations.append(f'The first browser action was {event.action}, the agent must start with open_tab')

		if 'opened_tab_id' in event.payload:
			opened.append(event.payload['opened_tab_id'])
		if 'switched_tab_id' in event.payload and event.payload['switched_tab_id'] not in opened:
			violations.append(f'Switched to tab {event.payload["switched_tab_id"]} which the agent did not open')
		if 'closed_tab_id' in event.payload:
			tab_id = event.payload['closed_tab_id']
			if tab_id not in opened:
				violations.append(f'Closed tab {tab_id} which the agent did not open')
			closed.append(tab_id)

	if open_call is not None:
		unterminated.append(open_call.action or 'unknown')

	for tab_id in opened:
		if tab_id not in closed:
			violations.append(f'Tab {tab_id} opened by the agent was left open')

	if violations:
		logger.warning(f'Tab policy violations: {violations}')

	return ComplianceReport(
		is_valid=not violations,
		violations=violations,
		unterminated=unterminated,
		opened_tabs=opened,
		closed_tabs=closed,
	)
