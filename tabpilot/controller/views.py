from pydantic import BaseModel, ConfigDict, Field, model_validator

from tabpilot.controller.registry.views import ActionSchema

DESC_FIELD_DESCRIPTION = 'Very short explanation of the intent or purpose for calling this action'


# Action Input Models
class DoneAction(BaseModel):
	text: str = Field(description='Final answer or summary of the completed task')


class SearchGoogleAction(BaseModel):
	query: str = Field(description='Search query')


class GoToUrlAction(BaseModel):
	url: str = Field(description='URL to navigate to')


class ClickElementAction(BaseModel):
	desc: str | None = Field(None, description=DESC_FIELD_DESCRIPTION)
	index: int = Field(description='Index of the element in the selector map')
	xpath: str | None = None


class InputTextAction(BaseModel):
	desc: str | None = Field(None, description=DESC_FIELD_DESCRIPTION)
	index: int = Field(description='Index of the input element in the selector map')
	text: str = Field(description='Text to type into the element')
	xpath: str | None = None


class SwitchTabAction(BaseModel):
	tab_id: int = Field(description='Id of the tab to switch to')


class OpenTabAction(BaseModel):
	url: str = Field(description='URL to open in the new tab')


class CloseTabAction(BaseModel):
	tab_id: int | None = Field(None, description='Id of the tab to close, defaults to the current tab')


class ExtractContentAction(BaseModel):
	goal: str = Field(description='What information to extract from the page')


class CacheContentAction(BaseModel):
	content: str = Field(description='Findings to keep for later steps')


class ScrollAction(BaseModel):
	desc: str | None = Field(None, description=DESC_FIELD_DESCRIPTION)
	amount: int | None = Field(None, description='Pixels to scroll, one page if omitted')


class SendKeysAction(BaseModel):
	desc: str | None = Field(None, description=DESC_FIELD_DESCRIPTION)
	keys: str = Field(description='Key or shortcut to send, e.g. Enter or Control+o')


class ScrollToTextAction(BaseModel):
	desc: str | None = Field(None, description=DESC_FIELD_DESCRIPTION)
	text: str = Field(description='Text to scroll to')


class GetDropdownOptionsAction(BaseModel):
	index: int = Field(description='Index of the dropdown element')


class SelectDropdownOptionAction(BaseModel):
	index: int = Field(description='Index of the dropdown element')
	text: str = Field(description='Exact text of the option to select')


class NoParamsAction(BaseModel):
	"""
	Accepts absolutely anything in the incoming data
	and discards it, so the final parsed model is empty.
	"""

	model_config = ConfigDict(extra='allow')

	@model_validator(mode='before')
	@classmethod
	def ignore_all_inputs(cls, values):
		# No matter what the caller sends, discard it and return empty.
		return {}


# Action Schemas
done_action_schema = ActionSchema(
	name='done',
	description='Complete task',
	param_model=DoneAction,
)

search_google_action_schema = ActionSchema(
	name='search_google',
	description='Search Google with the query in a background tab, the query should be concrete and not vague or super long',
	param_model=SearchGoogleAction,
)

go_to_url_action_schema = ActionSchema(
	name='go_to_url',
	description='Navigate to URL in the current tab (background mode)',
	param_model=GoToUrlAction,
)

go_back_action_schema = ActionSchema(
	name='go_back',
	description='Go back to the previous page',
	param_model=NoParamsAction,
)

click_element_action_schema = ActionSchema(
	name='click_element',
	description='Click element by index',
	param_model=ClickElementAction,
	has_index=True,
)

input_text_action_schema = ActionSchema(
	name='input_text',
	description='Input text into an interactive input element',
	param_model=InputTextAction,
	has_index=True,
)

switch_tab_action_schema = ActionSchema(
	name='switch_tab',
	description='Switch to a tab opened by you, the switch happens in background mode',
	param_model=SwitchTabAction,
)

open_tab_action_schema = ActionSchema(
	name='open_tab',
	description='Open URL in a new background tab, always start a web task with this action',
	param_model=OpenTabAction,
)

close_tab_action_schema = ActionSchema(
	name='close_tab',
	description='Close a tab by id, or the current tab if no id is given. Close every tab you opened before finishing',
	param_model=CloseTabAction,
)

extract_content_action_schema = ActionSchema(
	name='extract_content',
	description='Extract page content to retrieve specific information from the page, e.g. all company names, a specific description, all information about, links with companies in structured format or simply links',
	param_model=ExtractContentAction,
)

cache_content_action_schema = ActionSchema(
	name='cache_content',
	description='Cache what you have found so far from the current page for future use',
	param_model=CacheContentAction,
)

scroll_down_action_schema = ActionSchema(
	name='scroll_down',
	description='Scroll down the page by pixel amount - if no amount is specified, scroll down one page',
	param_model=ScrollAction,
)

scroll_up_action_schema = ActionSchema(
	name='scroll_up',
	description='Scroll up the page by pixel amount - if no amount is specified, scroll up one page',
	param_model=ScrollAction,
)

send_keys_action_schema = ActionSchema(
	name='send_keys',
	description='Send strings of special keys like Backspace, Insert, PageDown, Delete, Enter, Shortcuts such as `Control+o`, `Control+Shift+T` are supported as well. This gets used in keyboard press. Be aware of different operating systems and their shortcuts',
	param_model=SendKeysAction,
)

scroll_to_text_action_schema = ActionSchema(
	name='scroll_to_text',
	description='If you dont find something which you want to interact with, scroll to it',
	param_model=ScrollToTextAction,
)

get_dropdown_options_action_schema = ActionSchema(
	name='get_dropdown_options',
	description='Get all options from a native dropdown',
	param_model=GetDropdownOptionsAction,
	has_index=True,
)

select_dropdown_option_action_schema = ActionSchema(
	name='select_dropdown_option',
	description='Select dropdown option for interactive element index by the text of the option you want to select',
	param_model=SelectDropdownOptionAction,
	has_index=True,
)

DEFAULT_ACTION_SCHEMAS: tuple[ActionSchema, ...] = (
	done_action_schema,
	search_google_action_schema,
	go_to_url_action_schema,
	go_back_action_schema,
	click_element_action_schema,
	input_text_action_schema,
	switch_tab_action_schema,
	open_tab_action_schema,
	close_tab_action_schema,
	extract_content_action_schema,
	cache_content_action_schema,
	scroll_down_action_schema,
	scroll_up_action_schema,
	send_keys_action_schema,
	scroll_to_text_action_schema,
	get_dropdown_options_action_schema,
	select_dropdown_option_action_schema,
)
