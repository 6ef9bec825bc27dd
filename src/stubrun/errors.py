"""Core exception hierarchy.

This module defines the error types used across the library to report
run-file parsing and compilation failures, native module binding
failures, and per-step execution faults in a structured way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

if TYPE_CHECKING:
    from typing import Self

if TYPE_CHECKING:
    from pydantic import BaseModel

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unicode string>'
FORMAT_INDENT = 4

MAPPINGS = (dict,)
SCALARS = (str, bytes, int, float, bool)
SEQUENCES = (list, tuple, set)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file where the error occurred.
    filename: str | None

    #: Line number in the source file (1-based).
    line_num: int | None

    #: Position of the step in the compiled step list (0-based).
    step_num: int | None

    #: Underlying exception that triggered formatting.
    error: Exception | None

    #: Element associated with the error.
    element: Any


class ErrorFormatter:
    """Utility class for formatting run-related errors.

    Produces human-readable messages with optional source location
    and a YAML snippet of the failing element.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and execution location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line
            and step numbers when available.
        """
        indent = cls._ensure_indent(indent)

        filename = context.get('filename')
        if not filename:
            filename = FORMAT_FILENAME

        message = f'{indent}in "{filename}"'
        if (line_num := context.get('line_num')) is not None:
            message += f', line {line_num}'
        message += linesep

        if (step_num := context.get('step_num')) is not None:
            message += f'{indent}on step {step_num + 1}{linesep}'

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a formatted snippet illustrating the error context.

        Args:
            context: Error context containing element data.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no snippet data is available.
        """
        indent = cls._ensure_indent(indent)

        element = context.get('element')
        if element is None or element == '':
            return ''

        snippet = f'{indent}{SNIPPET_ELLIPSIS}'
        snippet += cls._make_yaml(element, indent)
        snippet += linesep

        return snippet

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively sanitize values for safe YAML serialization.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, MAPPINGS):
            return {
                key: cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, SEQUENCES):
            return [cls._filter_unsafe(item) for item in value]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a value to an indented YAML string.

        Args:
            value: Arbitrary value to serialize.
            indent: Optional indentation prefix.

        Returns:
            A YAML-formatted string representation of the value.
        """
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string, dropping blank lines."""
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip() and line.strip() != '...'
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class StubRunError(Exception, ErrorFormatter):
    """Base exception for all stubrun errors.

    All custom exceptions raised by the library inherit from this
    class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Optional error context for formatting.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class ParseError(StubRunError):
    """Error raised when a run-file is structurally invalid.

    Covers unbalanced or misplaced block markers, step lines with too
    many fields, bad repeat suffixes, and unreadable or cyclic includes.
    Parsing is aborted and no step is compiled.
    """

    @classmethod
    def at_line(cls, message: str, filename: str | None,
                line_num: int | None = None, text: str | None = None) -> 'Self':
        """Create a parse error pointing at a run-file line.

        Args:
            message: Human-readable error message.
            filename: Run-file the line belongs to.
            line_num: 1-based line number.
            text: Offending line text.

        Returns:
            An initialized ParseError with location context.
        """
        return cls(message, context=ErrorContext(
            filename=filename,
            line_num=line_num,
            element=text,
        ))


class CompileError(StubRunError):
    """Error raised when a run-file line cannot become a step.

    Raised for step names that do not split into four parts and for
    repeat counts that are not non-negative integers.
    """


class BindingError(StubRunError):
    """Error raised when a native entry point cannot be resolved.

    This is fatal: it aborts startup before any step runs.
    """

    def __init__(self, message: str, *,
                 symbol: str | None = None,
                 context: ErrorContext | None = None) -> None:
        """Initialize a binding error.

        Args:
            message: Human-readable error description.
            symbol: Name of the entry point that failed to resolve.
            context: Optional error context for formatting.
        """
        self.symbol = symbol

        super().__init__(message, context=context)


class ModuleLoadError(BindingError):
    """Error raised when the native module itself cannot be loaded."""


class InitError(BindingError):
    """Error raised when the native module reports initialization failure."""


class ContextError(BindingError):
    """Error raised when the native module returns no base context."""


class StepError(StubRunError):
    """Base error for recoverable per-step faults.

    In tolerant mode these faults mark the step as failed and the run
    proceeds to the next step.
    """

    @classmethod
    def for_step(cls, message: str, step: 'BaseModel', *,
                 step_num: int | None = None) -> 'Self':
        """Create a step error carrying a snippet of the step.

        Args:
            message: Human-readable error message.
            step: Step model the fault belongs to.
            step_num: Position of the step in the run.

        Returns:
            An initialized step error.
        """
        return cls(message, context=ErrorContext(
            filename=getattr(step, 'source', None),
            line_num=getattr(step, 'line', None),
            step_num=step_num,
            element=step.model_dump(include={'name', 'config_file', 'repeat'}),
        ))


class UnknownTestError(StepError):
    """Error raised when the native module does not know a test name."""


class NotExecutableError(StepError):
    """Error raised when a handler refuses to execute a test."""


class StepTimeoutError(StepError, TimeoutError):
    """Error raised when a long-running step does not finish in time.

    The underlying native operation is not cancelled; only the wait
    is abandoned.
    """
