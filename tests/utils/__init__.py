"""Test utilities package for tabpilot tests."""

from tests.utils.test_helpers import (
	FakeBrowserContext,
	FakeElement,
	FakePage,
	MockLLM,
	assert_single_call_events,
	create_context,
	event_states,
)

__all__ = [
	'FakeBrowserContext',
	'FakeElement',
	'FakePage',
	'MockLLM',
	'assert_single_call_events',
	'create_context',
	'event_states',
]
