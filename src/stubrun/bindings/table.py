"""Binding table of the native capability set.

The binding table maps every required capability to a resolved callable.
It is built once when the native module is opened and never changes
afterwards.
"""

from collections.abc import Callable
from typing import Any

from pydantic import Field

from stubrun.models import SchemaModel

#: Opaque native object handle.
type Handle = Any

#: Capabilities invoked while opening and closing the module.
LIFECYCLE_CAPABILITIES = (
    'initialize',
    'shutdown',
    'get_base_context',
)

#: Capabilities invoked while executing steps.
STEP_CAPABILITIES = (
    'resolve_test_id',
    'can_execute',
    'execute_sync',
    'execute_async_start',
    'poll_async_result',
    'release_handler',
    'get_handler',
)

#: Full required capability set.
CAPABILITIES = (*LIFECYCLE_CAPABILITIES, *STEP_CAPABILITIES)


class BindingTable(SchemaModel):
    """Resolved native entry points and the shared base context.

    Every field is required: a table can only exist if every capability
    resolved.
    """

    context: Handle = Field(
        title='Base context',
        description='Handle of the single native object all steps execute against.',
    )

    initialize: Callable[[], bool]
    shutdown: Callable[[], None]
    get_base_context: Callable[[], Handle]

    resolve_test_id: Callable[[str], int] = Field(
        description='Map a step name to an internal test id, -1 if unknown.',
    )
    can_execute: Callable[[Handle, int], bool] = Field(
        description='Tell whether a handler may execute a test id.',
    )
    execute_sync: Callable[[Handle, int, str], int] = Field(
        description='Execute a test and block until its result code is known.',
    )
    execute_async_start: Callable[[Handle, int, str], Any] = Field(
        description='Start a test and return immediately.',
    )
    poll_async_result: Callable[[], tuple[bool, int]] = Field(
        description='Return readiness and result code of the started test.',
    )
    release_handler: Callable[[str, Handle, Handle], None] = Field(
        description='Return a handler object to the base context.',
    )
    get_handler: Callable[[str, Handle], Handle] = Field(
        description='Obtain a handler object for a class name.',
    )
