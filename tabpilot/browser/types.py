# interfaces of the browser driver used by the action handlers

from typing import Any, Protocol, runtime_checkable

from tabpilot.browser.views import DropdownOption, PageState, ReadabilityContent, TabId


@runtime_checkable
class DOMElementNode(Protocol):
	tag_name: str | None
	xpath: str
	attributes: dict[str, str]

	def get_all_text_till_next_clickable_element(self, max_depth: int = -1) -> str: ...


@runtime_checkable
class Page(Protocol):
	tab_id: TabId

	async def get_state(self) -> PageState: ...

	async def go_back(self) -> None: ...

	async def click_element_node(self, use_vision: bool, element_node: Any) -> None: ...

	async def input_text_element_node(self, use_vision: bool, element_node: Any, text: str) -> None: ...

	async def is_file_uploader(self, element_node: Any) -> bool: ...

	async def scroll_down(self, amount: int | None = None) -> None: ...

	async def scroll_up(self, amount: int | None = None) -> None: ...

	async def send_keys(self, keys: str) -> None: ...

	async def scroll_to_text(self, text: str) -> bool: ...

	async def get_dropdown_options(self, index: int) -> list[DropdownOption]: ...

	async def select_dropdown_option(self, index: int, text: str) -> str: ...

	async def get_readability_content(self) -> ReadabilityContent: ...


@runtime_checkable
class BrowserContext(Protocol):
	"""Tab-level driver. Every call made by the action layer requests background mode."""

	async def navigate_to(self, url: str, background: bool = False) -> None: ...

	async def get_current_page(self, background: bool = False) -> Page: ...

	async def open_tab(self, url: str, background: bool = False) -> Page: ...

	async def close_tab(self, tab_id: TabId) -> None: ...

	async def switch_tab(self, tab_id: TabId, background: bool = False) -> Page: ...

	async def get_all_tab_ids(self) -> set[TabId]: ...
