from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

TabId = int


class DropdownOption(BaseModel):
	"""One option of a native <select> element"""

	index: int
	text: str  # not trimmed, select_dropdown_option matches it exactly
	value: str = ''


class ReadabilityContent(BaseModel):
	"""Readability-processed snapshot of a page"""

	title: str = ''
	content: str  # html of the main article
	text_content: str = ''
	excerpt: str | None = None


@dataclass
class PageState:
	"""Indexed view of the current page, produced by the DOM service"""

	url: str = ''
	title: str = ''
	selector_map: dict[int, Any] = field(default_factory=dict)


class BrowserError(Exception):
	"""Base class for all browser errors"""


class TabNotFoundError(BrowserError):
	"""Error raised when a tab id is not known to the browser"""
