import asyncio
import json
import logging
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote_plus

import markdownify
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import PromptTemplate
from pydantic import ValidationError

from tabpilot.agent.event.compliance import ComplianceReport, check_tab_policy
from tabpilot.agent.event.views import Actors, ExecutionState
from tabpilot.agent.views import ActionResult, AgentContext
from tabpilot.controller.registry.service import Action, build_dynamic_action_schema
from tabpilot.controller.registry.views import ActionModel, ActionSchema
from tabpilot.controller.views import (
	CacheContentAction,
	ClickElementAction,
	CloseTabAction,
	DoneAction,
	ExtractContentAction,
	GetDropdownOptionsAction,
	GoToUrlAction,
	InputTextAction,
	NoParamsAction,
	OpenTabAction,
	ScrollAction,
	ScrollToTextAction,
	SearchGoogleAction,
	SelectDropdownOptionAction,
	SendKeysAction,
	SwitchTabAction,
	cache_content_action_schema,
	click_element_action_schema,
	close_tab_action_schema,
	done_action_schema,
	extract_content_action_schema,
	get_dropdown_options_action_schema,
	go_back_action_schema,
	go_to_url_action_schema,
	input_text_action_schema,
	open_tab_action_schema,
	scroll_down_action_schema,
	scroll_to_text_action_schema,
	scroll_up_action_schema,
	search_google_action_schema,
	select_dropdown_option_action_schema,
	send_keys_action_schema,
	switch_tab_action_schema,
)
from tabpilot.exceptions import ElementNotFoundError, InvalidActionError, InvalidInputError
from tabpilot.logging_config import RESULT_LEVEL
from tabpilot.utils import time_execution_async, truncate

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = 'Your task is to extract the content of the page. You will be given a page and a goal and you should extract all relevant information around this goal from the page. If the goal is vague, summarize the page. Respond in json format. Extraction goal: {goal}, Page: {page}'

EXTRACTION_FALLBACK_MSG = 'Failed to extract content from page, you need to extract content from the current state of the page and store it in the memory. Then scroll down if you still need more information.'


class ActionBuilder:
	"""Builds the default action set bound to one agent run"""

	def __init__(self, context: AgentContext, extractor_llm: BaseChatModel):
		self.context = context
		self.extractor_llm = extractor_llm

	def _emit(self, state: ExecutionState, details: str, action: str, **payload: Any) -> None:
		self.context.emit_event(Actors.NAVIGATOR, state, details, action=action, **payload)

	def build_default_actions(self) -> list[Action]:
		"""Create every default browser action"""
		actions: list[Action] = []
		emit = self._emit
		context = self.context

		def action(schema: ActionSchema):
			def decorator(func):
				actions.append(Action(func, schema))
				return func

			return decorator

		@action(done_action_schema)
		async def done(params: DoneAction):
			emit(ExecutionState.ACT_START, done_action_schema.name, 'done')
			logger.log(RESULT_LEVEL, f'📄 Result: {params.text}')
			emit(ExecutionState.ACT_OK, params.text, 'done')
			return ActionResult(is_done=True, extracted_content=params.text)

		# Basic Navigation Actions
		@action(search_google_action_schema)
		async def search_google(params: SearchGoogleAction):
			emit(ExecutionState.ACT_START, f'Searching for "{params.query}" in Google', 'search_google')

			await context.browser_context.navigate_to(f'https://www.google.com/search?q={quote_plus(params.query)}', background=True)

			msg = f'🔍  Searched for "{params.query}" in Google (background)'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'search_google', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(go_to_url_action_schema)
		async def go_to_url(params: GoToUrlAction):
			emit(ExecutionState.ACT_START, f'Navigating to {params.url}', 'go_to_url')

			await context.browser_context.navigate_to(params.url, background=True)

			msg = f'🔗  Navigated to {params.url} (in background)'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'go_to_url', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(go_back_action_schema)
		async def go_back(_: NoParamsAction):
			emit(ExecutionState.ACT_START, 'Navigating back', 'go_back')

			page = await context.browser_context.get_current_page(background=True)
			await page.go_back()

			msg = '🔙  Navigated back (background)'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'go_back', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		# Element Interaction Actions
		@action(click_element_action_schema)
		async def click_element(params: ClickElementAction):
			emit(ExecutionState.ACT_START, params.desc or f'Click element with index {params.index}', 'click_element')

			browser = context.browser_context
			page = await browser.get_current_page(background=True)
			state = await page.get_state()

			element_node = state.selector_map.get(params.index)
			if element_node is None:
				raise ElementNotFoundError(params.index)

			# if element has file uploader then dont click
			if await page.is_file_uploader(element_node):
				msg = f'Index {params.index} - has an element which opens file upload dialog. To upload files please use a specific function to upload files'
				logger.info(msg)
				emit(ExecutionState.ACT_OK, msg, 'click_element', background=True)
				return ActionResult(extracted_content=msg, include_in_memory=True)

			try:
				initial_tab_ids = set(await browser.get_all_tab_ids())
				await page.click_element_node(context.options.use_vision, element_node)
				msg = f'🖱️  Clicked button with index {params.index}: {element_node.get_all_text_till_next_clickable_element(max_depth=2)}'
				logger.info(msg)
				logger.debug(f'Element xpath: {element_node.xpath}')

				payload: dict[str, Any] = {'background': True}
				new_tab_ids = set(await browser.get_all_tab_ids()) - initial_tab_ids
				if len(new_tab_ids) == 1:
					new_tab_id = new_tab_ids.pop()
					new_tab_msg = 'New tab opened - switching to it'
					msg += f' - {new_tab_msg}'
					logger.info(new_tab_msg)
					await browser.switch_tab(new_tab_id, background=True)
					payload['opened_tab_id'] = new_tab_id
				elif new_tab_ids:
					msg += f' - {len(new_tab_ids)} new tabs opened ({sorted(new_tab_ids)}), use switch_tab to pick one'
					logger.warning(f'Click opened several tabs: {new_tab_ids}')

				emit(ExecutionState.ACT_OK, msg, 'click_element', **payload)
				return ActionResult(extracted_content=msg, include_in_memory=True)
			except Exception as e:
				msg = f'Element no longer available with index {params.index} - most likely the page changed'
				logger.warning(f'{msg}: {e}')
				emit(ExecutionState.ACT_FAIL, msg, 'click_element')
				return ActionResult(error=f'{msg}: {e}', include_in_memory=True)

		@action(input_text_action_schema)
		async def input_text(params: InputTextAction):
			emit(ExecutionState.ACT_START, params.desc or f'Input text into index {params.index}', 'input_text')

			page = await context.browser_context.get_current_page(background=True)
			state = await page.get_state()

			element_node = state.selector_map.get(params.index)
			if element_node is None:
				raise ElementNotFoundError(params.index)

			await page.input_text_element_node(context.options.use_vision, element_node, params.text)
			msg = f'⌨️  Input {params.text} into index {params.index}'
			logger.info(msg)
			logger.debug(f'Element xpath: {element_node.xpath}')
			emit(ExecutionState.ACT_OK, msg, 'input_text', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		# Tab Management Actions
		@action(switch_tab_action_schema)
		async def switch_tab(params: SwitchTabAction):
			emit(ExecutionState.ACT_START, f'Switching to tab {params.tab_id}', 'switch_tab')

			# background mode keeps the user's focus where it is
			await context.browser_context.switch_tab(params.tab_id, background=True)

			msg = f'🔄  Switched to tab {params.tab_id} (in background)'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'switch_tab', background=True, switched_tab_id=params.tab_id)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(open_tab_action_schema)
		async def open_tab(params: OpenTabAction):
			emit(ExecutionState.ACT_START, f'Opening {params.url} in new tab (background)', 'open_tab')

			page = await context.browser_context.open_tab(params.url, background=True)

			msg = f'🔗  Opened {params.url} in new tab (ID: {page.tab_id}, background mode)'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'open_tab', background=True, opened_tab_id=page.tab_id)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(close_tab_action_schema)
		async def close_tab(params: CloseTabAction):
			if params.tab_id is not None:
				emit(ExecutionState.ACT_START, f'Closing tab {params.tab_id}', 'close_tab')
				tab_id = params.tab_id
				msg = f'❌  Closed tab {tab_id}'
			else:
				emit(ExecutionState.ACT_START, 'Closing current tab', 'close_tab')
				page = await context.browser_context.get_current_page(background=True)
				tab_id = page.tab_id
				msg = f'❌  Closed current tab {tab_id}'

			await context.browser_context.close_tab(tab_id)

			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'close_tab', background=True, closed_tab_id=tab_id)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		# Content Actions
		@action(extract_content_action_schema)
		async def extract_content(params: ExtractContentAction):
			emit(ExecutionState.ACT_START, f'Extracting content: {truncate(params.goal)}', 'extract_content')

			try:
				page = await context.browser_context.get_current_page(background=True)
				readable = await page.get_readability_content()
				content = markdownify.markdownify(readable.content)

				template = PromptTemplate(input_variables=['goal', 'page'], template=EXTRACTION_PROMPT)
				output = await self.extractor_llm.ainvoke(template.format(goal=params.goal, page=content))
				msg = f'📄  Extracted from page\n: {output.content}\n'
				logger.info(msg)
				emit(ExecutionState.ACT_OK, 'Extracted content from page', 'extract_content', background=True)
				return ActionResult(extracted_content=msg, include_in_memory=True)
			except Exception as e:
				logger.error(f'Error extracting content: {e}')
				emit(ExecutionState.ACT_FAIL, EXTRACTION_FALLBACK_MSG, 'extract_content')
				return ActionResult(
					extracted_content=EXTRACTION_FALLBACK_MSG,
					error=f'Failed to extract content: {e}',
					include_in_memory=True,
				)

		# cache content for future use
		@action(cache_content_action_schema)
		async def cache_content(params: CacheContentAction):
			emit(ExecutionState.ACT_START, cache_content_action_schema.name, 'cache_content')

			msg = f'Cached findings: {params.content}'
			emit(ExecutionState.ACT_OK, msg, 'cache_content')
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(scroll_down_action_schema)
		async def scroll_down(params: ScrollAction):
			emit(ExecutionState.ACT_START, params.desc or 'Scroll down the page', 'scroll_down')

			page = await context.browser_context.get_current_page(background=True)
			await page.scroll_down(params.amount)

			amount = f'{params.amount} pixels' if params.amount is not None else 'one page'
			msg = f'🔍  Scrolled down the page by {amount}'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'scroll_down', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(scroll_up_action_schema)
		async def scroll_up(params: ScrollAction):
			emit(ExecutionState.ACT_START, params.desc or 'Scroll up the page', 'scroll_up')

			page = await context.browser_context.get_current_page(background=True)
			await page.scroll_up(params.amount)

			amount = f'{params.amount} pixels' if params.amount is not None else 'one page'
			msg = f'🔍  Scrolled up the page by {amount}'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'scroll_up', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		# Keyboard Actions
		@action(send_keys_action_schema)
		async def send_keys(params: SendKeysAction):
			emit(ExecutionState.ACT_START, params.desc or f'Send keys: {params.keys}', 'send_keys')

			page = await context.browser_context.get_current_page(background=True)
			await page.send_keys(params.keys)

			msg = f'⌨️  Sent keys: {params.keys}'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'send_keys', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(scroll_to_text_action_schema)
		async def scroll_to_text(params: ScrollToTextAction):
			emit(ExecutionState.ACT_START, params.desc or f'Scroll to text: {params.text}', 'scroll_to_text')

			page = await context.browser_context.get_current_page(background=True)
			try:
				scrolled = await page.scroll_to_text(params.text)
			except Exception as e:
				msg = f"Failed to scroll to text '{params.text}': {e}"
				logger.error(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'scroll_to_text')
				return ActionResult(error=msg, include_in_memory=True)

			if scrolled:
				msg = f'🔍  Scrolled to text: {params.text}'
			else:
				msg = f"Text '{params.text}' not found or not visible on page"
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'scroll_to_text', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(get_dropdown_options_action_schema)
		async def get_dropdown_options(params: GetDropdownOptionsAction):
			emit(ExecutionState.ACT_START, f'Getting options from dropdown with index {params.index}', 'get_dropdown_options')

			page = await context.browser_context.get_current_page(background=True)
			state = await page.get_state()

			if params.index not in state.selector_map:
				msg = f'Element with index {params.index} does not exist - retry or use alternative actions'
				logger.error(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'get_dropdown_options')
				return ActionResult(error=msg, include_in_memory=True)

			try:
				options = await page.get_dropdown_options(params.index)
			except Exception as e:
				msg = f'Failed to get dropdown options: {e}'
				logger.error(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'get_dropdown_options')
				return ActionResult(error=msg, include_in_memory=True)

			if not options:
				msg = f'No options found in dropdown with index {params.index}'
				logger.info(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'get_dropdown_options')
				return ActionResult(error=msg, include_in_memory=True)

			formatted_options = []
			for opt in options:
				# encoding ensures AI uses the exact string in select_dropdown_option
				encoded_text = json.dumps(opt.text)
				formatted_options.append(f'{opt.index}: text={encoded_text}')

			msg = '\n'.join(formatted_options)
			msg += '\nUse the exact text string in select_dropdown_option'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, f'Got {len(options)} options from dropdown', 'get_dropdown_options', background=True)
			return ActionResult(extracted_content=msg, include_in_memory=True)

		@action(select_dropdown_option_action_schema)
		async def select_dropdown_option(params: SelectDropdownOptionAction):
			emit(
				ExecutionState.ACT_START,
				f'Select option "{params.text}" from dropdown with index {params.index}',
				'select_dropdown_option',
			)

			page = await context.browser_context.get_current_page(background=True)
			state = await page.get_state()

			dom_element = state.selector_map.get(params.index)
			if dom_element is None:
				msg = f'Element with index {params.index} does not exist - retry or use alternative actions'
				logger.error(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'select_dropdown_option')
				return ActionResult(error=msg, include_in_memory=True)

			# Validate that we're working with a select element
			tag_name = dom_element.tag_name or 'unknown'
			if tag_name.lower() != 'select':
				msg = f'Cannot select option: Element with index {params.index} is a {tag_name}, not a SELECT'
				logger.error(f'{msg}. Attributes: {dom_element.attributes}')
				emit(ExecutionState.ACT_FAIL, msg, 'select_dropdown_option')
				return ActionResult(error=msg, include_in_memory=True)

			logger.debug(f"Attempting to select '{params.text}' using xpath: {dom_element.xpath}")

			try:
				selected = await page.select_dropdown_option(params.index, params.text)
			except Exception as e:
				msg = f'Failed to select option: {e}'
				logger.error(msg)
				emit(ExecutionState.ACT_FAIL, msg, 'select_dropdown_option')
				return ActionResult(error=msg, include_in_memory=True)

			msg = f'Selected option "{params.text}" from dropdown with index {params.index}'
			logger.info(msg)
			emit(ExecutionState.ACT_OK, msg, 'select_dropdown_option', background=True)
			return ActionResult(extracted_content=selected or msg, include_in_memory=True)

		return actions


class Controller:
	"""Dispatches the model's action calls to the actions of one agent run"""

	def __init__(
		self,
		context: AgentContext,
		extractor_llm: BaseChatModel,
		exclude_actions: Optional[Sequence[str]] = None,
	):
		self.context = context
		if exclude_actions is None:
			exclude_actions = context.options.exclude_actions
		self.exclude_actions = set(exclude_actions)

		builder = ActionBuilder(context, extractor_llm)
		self.actions = [a for a in builder.build_default_actions() if a.name not in self.exclude_actions]
		self.registry: dict[str, Action] = {a.name: a for a in self.actions}
		self.ActionModel = build_dynamic_action_schema(self.actions)

	def prompt_description(self) -> str:
		"""Descriptions of every registered action for the system prompt"""
		return '\n'.join(action.prompt() for action in self.actions)

	async def execute_action(self, action_name: str, params: Any) -> ActionResult:
		"""Execute one action by name, handler errors propagate"""
		action = self.registry.get(action_name)
		if action is None:
			raise InvalidActionError(f'Action {action_name} not found, available actions: {", ".join(self.registry)}')

		logger.debug(f'Executing action {action_name} with params {params}')
		return await action.call(params)

	@time_execution_async('--act')
	async def act(self, action: ActionModel | dict[str, Any]) -> ActionResult:
		"""Execute the single action selected in the model output"""
		action = self._to_action_model(action)

		selected = action.selected_actions()
		if not selected:
			raise InvalidActionError('No action selected - set exactly one action per call')
		if len(selected) > 1:
			names = ', '.join(name for name, _ in selected)
			raise InvalidActionError(f'Multiple actions selected ({names}) - set exactly one action per call')

		action_name, params = selected[0]
		return await self.execute_action(action_name, params)

	@time_execution_async('--multi-act')
	async def multi_act(
		self,
		actions: Sequence[ActionModel | dict[str, Any]],
		check_for_new_elements: bool = True,
		check_break_if_paused: Callable[[], Any] | None = None,
	) -> list[ActionResult]:
		"""Execute actions one after another and turn raised errors into failed results.

		Stops at the first result that is done or has an error, and before an
		index-bearing action if new elements appeared on the page.
		"""
		self.context.n_steps += 1
		results: list[ActionResult] = []
		actions = list(actions)[: self.context.options.max_actions_per_step]

		cached_xpaths = await self._selector_map_xpaths() if check_for_new_elements else set()

		for i, action in enumerate(actions):
			if check_break_if_paused:
				check_break_if_paused()

			try:
				action = self._to_action_model(action)
			except (InvalidInputError, InvalidActionError) as e:
				logger.warning(f'Invalid action {i + 1}: {e}')
				results.append(ActionResult(error=str(e), include_in_memory=True))
				break

			index = action.get_index()
			if index is not None and i != 0 and check_for_new_elements:
				new_xpaths = await self._selector_map_xpaths()
				if not new_xpaths.issubset(cached_xpaths):
					# next action requires index but there are new elements on the page
					logger.info(f'Something new appeared after action {i} / {len(actions)}')
					break

			try:
				result = await self.act(action)
			except (InvalidInputError, InvalidActionError) as e:
				logger.warning(f'Invalid action {i + 1}: {e}')
				result = ActionResult(error=str(e), include_in_memory=True)
			except Exception as e:
				logger.error(f'Action {i + 1} / {len(actions)} failed: {type(e).__name__}: {e}')
				result = ActionResult(error=f'{type(e).__name__}: {e}', include_in_memory=True)

			results.append(result)

			logger.debug(f'Executed action {i + 1} / {len(actions)}')
			if result.is_done or result.error or i == len(actions) - 1:
				break

			await asyncio.sleep(self.context.options.wait_between_actions)

		return results

	def check_compliance(self) -> ComplianceReport:
		"""Check the run's event log against the tab isolation policy"""
		report = check_tab_policy(self.context.event_log)
		if report.is_valid:
			logger.info(f'✅ Tab policy: {report.reason}')
		else:
			logger.info(f'❌ Tab policy: {report.reason}')
		return report

	def _to_action_model(self, action: ActionModel | dict[str, Any]) -> ActionModel:
		if isinstance(action, ActionModel):
			return action
		if isinstance(action, dict):
			unknown = [name for name in action if name not in self.registry]
			if unknown:
				raise InvalidActionError(
					f'Unknown action {", ".join(unknown)}, available actions: {", ".join(self.registry)}'
				)
		try:
			return self.ActionModel.model_validate(action)
		except ValidationError as e:
			raise InvalidInputError('action', str(e)) from e

	async def _selector_map_xpaths(self) -> set[str]:
		page = await self.context.browser_context.get_current_page(background=True)
		state = await page.get_state()
		return {element.xpath for element in state.selector_map.values()}
