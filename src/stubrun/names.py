"""Run-file language markers and step name rules.

This module defines the fixed lexical markers of the run-file language
and the rules used to split a symbolic step name into its parts.

The rules defined here form part of the public run-file contract and are
relied upon by the parser, the compiler, and the execution engine.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Line prefix of a comment or directive line.
COMMENT_MARKER = ';'

#: Line prefix opening a closure block.
BLOCK_OPEN = '('

#: Line prefix closing a closure block.
BLOCK_CLOSE = ')'

#: Separator of a directive keyword and its argument.
DIRECTIVE_SEPARATOR = '::'

#: Directive splicing another run-file in place.
INCLUDE_DIRECTIVE = 'INCLUDE'

#: Separator of step line fields.
FIELD_SEPARATOR = ','

#: Maximum number of fields of a step line.
MAX_FIELDS = 3

#: Separator of symbolic step name parts.
NAME_SEPARATOR = '__'

#: Number of parts in a symbolic step name.
NAME_PARTS = 4

#: Compiled pattern for a block close line with an optional repeat suffix.
BLOCK_CLOSE_PATTERN = regexp(
    r'^\)\s*(\*\s*(?P<count>\S*))?\s*$',
    flags=ASCII,
)

#: Markers selecting the polled long-running execution strategy.
LONG_RUNNING_MARKERS = (
    'SaveTillDone',
    'PreviewTillDone',
    'AnalyseTillDone',
)


StepName = Annotated[
    str, Field(
        min_length=1,
        title='Step name',
        description=(
            'Symbolic test identifier of the form '
            '`<prefix>__<class>__<interface>__<function>`. '
            'The native module resolves it to an internal test id.'
        ),
        examples=[
            'MVRT0001__CMVCore__IMVCore__Init',
        ],
    ),
]

RepeatCount = Annotated[
    int, Field(
        ge=0,
        title='Repeat count',
        description='Additional repetitions beyond the first execution.',
    ),
]


def split_name(name: str) -> list[str]:
    """Split a symbolic step name into its parts.

    Args:
        name: Symbolic step name.

    Returns:
        Name parts in order: prefix, class, interface, function.
    """
    return name.split(NAME_SEPARATOR)


def is_long_running(name: str, markers: tuple[str, ...] = LONG_RUNNING_MARKERS) -> bool:
    """Check whether a step name selects the polled strategy.

    Args:
        name: Symbolic step name.
        markers: Substrings marking long-running operations.

    Returns:
        True if any marker is contained in the name.
    """
    return any(marker in name for marker in markers)
