from tabpilot.logging_config import setup_logging

setup_logging()

from tabpilot.agent.event.compliance import ComplianceReport, check_tab_policy  # noqa: E402
from tabpilot.agent.event.views import Actors, ExecutionEvent, ExecutionState  # noqa: E402
from tabpilot.agent.views import ActionResult, AgentContext, AgentOptions  # noqa: E402
from tabpilot.controller.registry.service import Action, build_dynamic_action_schema  # noqa: E402
from tabpilot.controller.registry.views import ActionModel, ActionSchema  # noqa: E402
from tabpilot.controller.service import ActionBuilder, Controller  # noqa: E402
from tabpilot.exceptions import ElementNotFoundError, InvalidActionError, InvalidInputError  # noqa: E402

__all__ = [
	'Action',
	'ActionBuilder',
	'ActionModel',
	'ActionResult',
	'ActionSchema',
	'Actors',
	'AgentContext',
	'AgentOptions',
	'ComplianceReport',
	'Controller',
	'ElementNotFoundError',
	'ExecutionEvent',
	'ExecutionState',
	'InvalidActionError',
	'InvalidInputError',
	'build_dynamic_action_schema',
	'check_tab_policy',
]
