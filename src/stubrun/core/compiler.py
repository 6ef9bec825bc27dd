"""Step compiler.

Converts parsed run-file instructions into structured step records:
splits the symbolic name, resolves the config file against the
resources root, and parses the optional repeat count.
"""

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from stubrun.errors import CompileError, ErrorContext
from stubrun.names import NAME_PARTS, NAME_SEPARATOR, split_name
from stubrun.schema import Instruction, Step

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = getLogger(__name__)

#: Compiled steps of a run.
type Steps = list[Step]


class StepCompiler:
    """Compiler of instructions into steps.

    Compilation is deterministic: compiling the same instruction list
    twice yields equal step sequences, as long as the file system does
    not change in between.
    """

    def __init__(self, resources_path: 'Path | str' = '.') -> None:
        """Initialize the compiler.

        Args:
            resources_path: Root folder used to resolve relative config files.
        """
        self.resources_path = Path(resources_path)

    def compile(self, instructions: 'Iterable[Instruction | str]') -> Steps:
        """Compile instructions into an ordered step list.

        Args:
            instructions: Parsed instructions or raw step lines.

        Returns:
            Steps in the order of the instructions.

        Raises:
            CompileError: If a step name or repeat count is malformed.
        """
        steps = [
            self.compile_line(item if isinstance(item, Instruction) else Instruction(text=item))
            for item in instructions
        ]

        logger.debug('Compiled %d steps', len(steps))

        return steps

    def compile_line(self, instruction: Instruction) -> Step:
        """Compile a single instruction.

        Args:
            instruction: Parsed step line.

        Returns:
            A step ready for execution.

        Raises:
            CompileError: If a step name or repeat count is malformed.
        """
        tokens = instruction.tokens
        name = tokens[0]

        parts = split_name(name)
        if len(parts) != NAME_PARTS:
            raise self._error(
                f'Step name must have {NAME_PARTS} parts separated by {NAME_SEPARATOR!r}, '
                f'got {len(parts)}',
                instruction,
            )

        config_field = tokens[1] if len(tokens) > 1 else ''

        repeat = 0
        if len(tokens) > 2 and tokens[2]:
            repeat = self._parse_repeat(tokens[2], instruction)

        prefix, class_name, interface_name, function_name = parts

        return Step(
            name=name,
            prefix=prefix,
            class_name=class_name,
            interface_name=interface_name,
            function_name=function_name,
            config_file=self.resolve_config(name, config_field),
            repeat=repeat,
            source=instruction.source,
            line=instruction.line,
        )

    def resolve_config(self, name: str, value: str) -> str:
        """Resolve a config file field to an existing path.

        The value is used verbatim if it names an existing file, then
        retried as `<resources>/<name>/<value>`. A value that resolves
        to nothing means the step has no config file.

        Args:
            name: Symbolic step name.
            value: Config file field of the step line.

        Returns:
            The resolved path, or an empty string.
        """
        if not value:
            return ''

        candidate = Path(value)
        if candidate.is_file():
            return str(candidate)

        candidate = self.resources_path / name / value
        if candidate.is_file():
            return str(candidate)

        return ''

    @classmethod
    def _parse_repeat(cls, value: str, instruction: Instruction) -> int:
        """Parse a repeat field as a non-negative integer."""
        if not (value.isascii() and value.isdigit()):
            raise cls._error(
                f'Invalid repeat count {value!r}, a non-negative integer expected',
                instruction,
            )

        return int(value)

    @staticmethod
    def _error(message: str, instruction: Instruction) -> CompileError:
        """Build a compile error pointing at an instruction."""
        return CompileError(message, context=ErrorContext(
            filename=instruction.source,
            line_num=instruction.line,
            element=instruction.text,
        ))
