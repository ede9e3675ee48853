from typing import Any

from pydantic import BaseModel, ConfigDict


class ActionSchema(BaseModel):
	"""Static descriptor of one action kind"""

	model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

	name: str
	description: str
	param_model: type[BaseModel]
	# whether the action targets an element of the selector map through an `index` argument
	has_index: bool = False

	@property
	def takes_no_params(self) -> bool:
		return len(self.param_model.model_fields) == 0


class ActionModel(BaseModel):
	"""Base model for the dynamically created action model.

	Every registered action is an optional, nullable field of the subclass,
	see :func:`tabpilot.controller.registry.service.build_dynamic_action_schema`.
	"""

	model_config = ConfigDict(arbitrary_types_allowed=True, extra='forbid')

	def selected_actions(self) -> list[tuple[str, dict[str, Any]]]:
		"""Return (action name, params) for every populated field"""
		return [
			(name, params)
			for name, params in self.model_dump(exclude_unset=True).items()
			if params is not None
		]

	def get_index(self) -> int | None:
		"""Get the index of the first selected action, if it has one"""
		for _, params in self.selected_actions():
			if isinstance(params, dict) and 'index' in params:
				return params['index']
		return None
