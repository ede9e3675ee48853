import pytest

from tabpilot.agent.event.compliance import check_tab_policy
from tabpilot.agent.event.service import EventLog
from tabpilot.agent.event.views import Actors, ExecutionState
from tabpilot.controller.service import Controller
from tabpilot.exceptions import ElementNotFoundError
from tests.utils import FakeBrowserContext, FakeElement, MockLLM, create_context


@pytest.fixture
def browser():
	return FakeBrowserContext(tab_ids=[1])


@pytest.fixture
def context(browser):
	return create_context(browser, wait_between_actions=0)


@pytest.fixture
def controller(context):
	return Controller(context, MockLLM(responses=['summary']))


async def test_compliant_run(controller):
	await controller.execute_action('open_tab', {'url': 'https://example.com'})
	await controller.execute_action('scroll_down', {})
	await controller.execute_action('extract_content', {'goal': 'summary'})
	await controller.execute_action('close_tab', {})
	await controller.execute_action('done', {'text': 'summary'})

	report = controller.check_compliance()

	assert report.is_valid, report.violations
	assert report.opened_tabs == report.closed_tabs
	assert report.reason == 'All browser operations happened in background tabs opened and closed by the agent'
	assert report.unterminated == []


async def test_must_start_with_open_tab(controller):
	await controller.execute_action('go_to_url', {'url': 'https://example.com'})
	await controller.execute_action('done', {'text': 'ok'})

	report = controller.check_compliance()

	assert not report.is_valid
	assert any('must start with open_tab' in violation for violation in report.violations)


async def test_tabs_left_open(controller, browser):
	await controller.execute_action('open_tab', {'url': 'https://example.com'})
	tab_id = browser.current_tab_id
	await controller.execute_action('done', {'text': 'ok'})

	report = controller.check_compliance()

	assert not report.is_valid
	assert report.violations == [f'Tab {tab_id} opened by the agent was left open']
	assert report.reason == f'Tab {tab_id} opened by the agent was left open'


async def test_tab_opened_by_click_must_be_closed(controller, browser):
	await controller.execute_action('open_tab', {'url': 'https://example.com'})
	page = browser.current_page
	page.elements[1] = FakeElement(index=1, tag_name='a')
	page.click_opens_tabs[1] = [500]
	await controller.execute_action('click_element', {'index': 1})
	await controller.execute_action('close_tab', {'tab_id': page.tab_id})

	report = controller.check_compliance()

	assert report.violations == ['Tab 500 opened by the agent was left open']

	await controller.execute_action('close_tab', {})
	assert controller.check_compliance().is_valid


async def test_operating_in_user_tabs(controller, browser):
	browser.add_tab(2)
	await controller.execute_action('open_tab', {'url': 'https://example.com'})
	await controller.execute_action('switch_tab', {'tab_id': 2})
	await controller.execute_action('close_tab', {'tab_id': 1})

	report = controller.check_compliance()

	assert 'Switched to tab 2 which the agent did not open' in report.violations
	assert 'Closed tab 1 which the agent did not open' in report.violations


async def test_raised_calls_are_unterminated_not_violations(controller):
	await controller.execute_action('open_tab', {'url': 'https://example.com'})
	with pytest.raises(ElementNotFoundError):
		await controller.execute_action('click_element', {'index': 3})
	await controller.execute_action('close_tab', {})

	report = controller.check_compliance()

	assert report.is_valid
	assert report.unterminated == ['click_element']


async def test_terminal_event_without_start(context):
	context.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_OK, 'rogue', action='go_back')

	report = check_tab_policy(context.event_log)

	assert not report.is_valid
	assert report.violations[0] == 'go_back emitted act.ok without a preceding act.start'


async def test_two_terminal_events_for_one_call(context):
	context.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_START, 'start', action='cache_content')
	context.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_OK, 'ok', action='cache_content')
	context.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_FAIL, 'fail', action='cache_content')

	report = check_tab_policy(context.event_log)

	assert report.violations == ['cache_content emitted act.fail without a preceding act.start']


async def test_other_actors_are_ignored(context):
	context.emit_event(Actors.PLANNER, ExecutionState.STEP_OK, 'plan ready')
	context.emit_event(Actors.VALIDATOR, ExecutionState.ACT_OK, 'not an action')

	assert check_tab_policy(context.event_log).is_valid


async def test_event_log_is_append_only(context):
	context.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_START, 'start', action='done')
	log: EventLog = context.event_log

	snapshot = list(log)
	snapshot.clear()

	assert len(log) == 1
	assert log[0].details == 'start'
	assert log.filter(actor=Actors.NAVIGATOR, state=ExecutionState.ACT_START) == [log[0]]
	assert log.filter(state=ExecutionState.ACT_OK) == []
	assert not hasattr(log, 'clear')
