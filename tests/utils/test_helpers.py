"""Test helper utilities for tabpilot tests.

This module provides in-memory fakes of the browser collaborators and
helpers for inspecting the execution event log.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage

from tabpilot.agent.event.views import Actors, ExecutionEvent, ExecutionState
from tabpilot.agent.views import AgentContext, AgentOptions
from tabpilot.browser.views import DropdownOption, PageState, ReadabilityContent, TabNotFoundError


class MockLLM:
	"""Mock LLM for deterministic testing."""

	def __init__(self, responses: List[str] | None = None, error: Exception | None = None):
		"""Initialize with predefined responses.

		Args:
		    responses: List of responses to return in order
		    error: Exception raised by every call instead of responding
		"""
		self.responses = responses or []
		self.error = error
		self.call_count = 0
		self.messages_received: List[Any] = []

	async def ainvoke(self, messages: Any, **kwargs) -> AIMessage:
		self.messages_received.append(messages)
		self.call_count += 1
		if self.error is not None:
			raise self.error
		if self.call_count <= len(self.responses):
			return AIMessage(content=self.responses[self.call_count - 1])
		return AIMessage(content='Default response')


@dataclass
class FakeElement:
	"""Element of the selector map"""

	index: int
	tag_name: Optional[str] = 'button'
	text: str = 'Click me'
	attributes: Dict[str, str] = field(default_factory=dict)

	@property
	def xpath(self) -> str:
		return f'html/body/{self.tag_name}[{self.index}]'

	def get_all_text_till_next_clickable_element(self, max_depth: int = -1) -> str:
		return self.text


class FakePage:
	"""In-memory page that records every call made on it"""

	def __init__(self, browser: 'FakeBrowserContext', tab_id: int, url: str = 'about:blank'):
		self.browser = browser
		self.tab_id = tab_id
		self.url = url
		self.elements: Dict[int, FakeElement] = {}
		self.texts: List[str] = []
		self.dropdown_options: Dict[int, List[DropdownOption]] = {}
		self.readability_html = '<article><h1>Title</h1><p>Body text</p></article>'
		self.file_uploaders: set[int] = set()
		self.click_error: Exception | None = None
		self.scroll_error: Exception | None = None
		# tab ids opened by clicking, keyed by element index
		self.click_opens_tabs: Dict[int, List[int]] = {}
		self.calls: List[tuple] = []

	async def get_state(self) -> PageState:
		return PageState(url=self.url, selector_map=dict(self.elements))

	async def go_back(self) -> None:
		self.calls.append(('go_back',))

	async def click_element_node(self, use_vision: bool, element_node: FakeElement) -> None:
		self.calls.append(('click', element_node.index, use_vision))
		if self.click_error is not None:
			raise self.click_error
		for tab_id in self.click_opens_tabs.get(element_node.index, []):
			self.browser.add_tab(tab_id)

	async def input_text_element_node(self, use_vision: bool, element_node: FakeElement, text: str) -> None:
		self.calls.append(('input', element_node.index, text))

	async def is_file_uploader(self, element_node: FakeElement) -> bool:
		return element_node.index in self.file_uploaders

	async def scroll_down(self, amount: int | None = None) -> None:
		self.calls.append(('scroll_down', amount))

	async def scroll_up(self, amount: int | None = None) -> None:
		self.calls.append(('scroll_up', amount))

	async def send_keys(self, keys: str) -> None:
		self.calls.append(('send_keys', keys))

	async def scroll_to_text(self, text: str) -> bool:
		if self.scroll_error is not None:
			raise self.scroll_error
		return any(text in page_text for page_text in self.texts)

	async def get_dropdown_options(self, index: int) -> List[DropdownOption]:
		return self.dropdown_options.get(index, [])

	async def select_dropdown_option(self, index: int, text: str) -> str:
		options = self.dropdown_options.get(index, [])
		for option in options:
			if option.text == text:
				self.calls.append(('select', index, text))
				return f'selected option {text} with value {option.value}'
		raise ValueError(f'Option {text} not found')

	async def get_readability_content(self) -> ReadabilityContent:
		return ReadabilityContent(title='Title', content=self.readability_html)


class FakeBrowserContext:
	"""In-memory tab driver; records the background flag of every call"""

	def __init__(self, tab_ids: List[int] | None = None):
		self.pages: Dict[int, FakePage] = {}
		for tab_id in tab_ids or [1]:
			self.add_tab(tab_id)
		self.current_tab_id = next(iter(self.pages))
		self.next_tab_id = max(self.pages) + 100
		self.calls: List[tuple] = []

	def add_tab(self, tab_id: int, url: str = 'about:blank') -> FakePage:
		page = FakePage(self, tab_id, url)
		self.pages[tab_id] = page
		return page

	@property
	def current_page(self) -> FakePage:
		return self.pages[self.current_tab_id]

	async def navigate_to(self, url: str, background: bool = False) -> None:
		self.calls.append(('navigate_to', url, background))
		self.current_page.url = url

	async def get_current_page(self, background: bool = False) -> FakePage:
		return self.current_page

	async def open_tab(self, url: str, background: bool = False) -> FakePage:
		self.calls.append(('open_tab', url, background))
		page = self.add_tab(self.next_tab_id, url)
		self.next_tab_id += 1
		self.current_tab_id = page.tab_id
		return page

	async def close_tab(self, tab_id: int) -> None:
		self.calls.append(('close_tab', tab_id))
		if tab_id not in self.pages:
			raise TabNotFoundError(f'No tab with id {tab_id}')
		del self.pages[tab_id]
		if self.current_tab_id == tab_id and self.pages:
			self.current_tab_id = next(iter(self.pages))

	async def switch_tab(self, tab_id: int, background: bool = False) -> FakePage:
		self.calls.append(('switch_tab', tab_id, background))
		if tab_id not in self.pages:
			raise TabNotFoundError(f'No tab with id {tab_id}')
		self.current_tab_id = tab_id
		return self.pages[tab_id]

	async def get_all_tab_ids(self) -> set[int]:
		return set(self.pages)


def create_context(browser: FakeBrowserContext | None = None, **options: Any) -> AgentContext:
	return AgentContext(browser_context=browser or FakeBrowserContext(), options=AgentOptions(**options))


def event_states(context: AgentContext) -> List[ExecutionState]:
	return [event.state for event in context.event_log if event.actor == Actors.NAVIGATOR]


def assert_single_call_events(events: List[ExecutionEvent], terminal: ExecutionState):
	"""Assert that the events of one call are exactly START then the given terminal state.

	Args:
	    events: Events emitted by the call
	    terminal: Expected terminal state (ACT_OK or ACT_FAIL)
	"""
	states = [event.state for event in events]
	assert states == [ExecutionState.ACT_START, terminal], f'Expected [act.start, {terminal.value}], got {states}'
