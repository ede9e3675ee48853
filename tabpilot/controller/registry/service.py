import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, create_model

from tabpilot.agent.views import ActionResult
from tabpilot.controller.registry.views import ActionModel, ActionSchema
from tabpilot.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Any], Awaitable[ActionResult]]


def _json_type(prop: dict[str, Any]) -> str:
	"""Type name of a json schema property, ignoring the null branch of optionals"""
	if 'type' in prop:
		return prop['type']
	if '$ref' in prop:
		return 'object'
	for option in prop.get('anyOf', []):
		option_type = _json_type(option)
		if option_type != 'null':
			return option_type
	return 'any'


class Action:
	"""An action is a validated handler that takes raw input and returns an ActionResult"""

	def __init__(self, handler: ActionHandler, schema: ActionSchema):
		self.handler = handler
		self.schema = schema

	@property
	def name(self) -> str:
		return self.schema.name

	@property
	def has_index(self) -> bool:
		return self.schema.has_index

	def validate(self, raw_input: Any) -> BaseModel:
		"""Parse raw input into the parameter model, raising InvalidInputError on mismatch"""
		param_model = self.schema.param_model

		# actions without parameters ignore whatever they are given
		if self.schema.takes_no_params:
			return param_model()

		try:
			return param_model.model_validate(raw_input)
		except ValidationError as e:
			raise InvalidInputError(self.name, str(e)) from e

	async def call(self, raw_input: Any) -> ActionResult:
		params = self.validate(raw_input)
		return await self.handler(params)

	def prompt(self) -> str:
		"""Describe the action for the model, derived from the parameter model"""
		properties = self.schema.param_model.model_json_schema().get('properties', {})
		schema_properties = []
		for key, field in self.schema.param_model.model_fields.items():
			field_type = _json_type(properties.get(key, {}))
			requirement = "'required': true" if field.is_required() else "'optional': true"
			schema_properties.append(f"'{key}': {{'type': '{field_type}', {requirement}}}")

		if schema_properties:
			schema_str = f'{{{self.name}: {{{", ".join(schema_properties)}}}}}'
		else:
			schema_str = f'{{{self.name}: {{}}}}'
		return f'{self.schema.description}:\n{schema_str}'

	def get_index_arg(self, raw_input: Any) -> int | None:
		"""Get the element index from raw input if this action carries one"""
		if not self.has_index:
			return None
		if isinstance(raw_input, Mapping):
			index = raw_input.get('index')
			if isinstance(index, bool):
				return None
			if isinstance(index, int):
				return index
			# models sometimes emit 2.0 for 2
			if isinstance(index, float) and index.is_integer():
				return int(index)
		return None

	def __repr__(self) -> str:
		return f'Action(name={self.name!r}, has_index={self.has_index})'


def build_dynamic_action_schema(actions: Sequence[Action]) -> type[ActionModel]:
	"""Create a model with one optional, nullable field per action.

	Exactly-one-of is not expressed in the schema since several providers
	reject it; the controller checks that a single action was chosen.
	"""
	fields: dict[str, Any] = {
		action.name: (
			Optional[action.schema.param_model],
			Field(default=None, description=action.schema.description),
		)
		for action in actions
	}
	model = create_model('ActionModel', __base__=ActionModel, **fields)
	model.__doc__ = 'ActionModel with the registered actions'
	return model
