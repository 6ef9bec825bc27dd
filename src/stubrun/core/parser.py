"""Run-file parser.

This module reads a run-file and every file it transitively includes,
expands repeatable closure blocks, and validates the structure of the
file, producing a flat ordered list of step instructions.

The parser works over a list of non-blank trimmed lines with an explicit
cursor: every recursive block parse returns the next unconsumed position
instead of sharing an iterator between calls.
"""

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from stubrun.errors import ParseError
from stubrun.names import (
    BLOCK_CLOSE,
    BLOCK_CLOSE_PATTERN,
    BLOCK_OPEN,
    COMMENT_MARKER,
    DIRECTIVE_SEPARATOR,
    FIELD_SEPARATOR,
    INCLUDE_DIRECTIVE,
    MAX_FIELDS,
)
from stubrun.schema import Instruction

if TYPE_CHECKING:
    from os import PathLike

logger = getLogger(__name__)

#: Numbered non-blank line of a run-file.
type Line = tuple[int, str]

#: Parsed instructions of a run-file.
type Instructions = tuple[Instruction, ...]


class RunFileParser:
    """Parser of the block-structured run-file language.

    The parser is stateless between calls and may be reused for any
    number of files.
    """

    def __init__(self, encoding: str = 'utf-8') -> None:
        """Initialize the parser.

        Args:
            encoding: Text encoding of run-files.
        """
        self.encoding = encoding

    def parse(self, path: 'str | PathLike[str]') -> Instructions:
        """Parse a run-file into a flat ordered instruction list.

        Args:
            path: Path to the root run-file.

        Returns:
            Step instructions in execution order, with blocks expanded
            and includes spliced in place.

        Raises:
            ParseError: If the file or any included file is unreadable
                or structurally invalid.
        """
        instructions = tuple(self._parse_file(Path(path), ()))

        logger.debug('Parsed %d instructions from %s', len(instructions), path)

        return instructions

    def parse_text(self, text: str, *, filename: str | None = None) -> Instructions:
        """Parse run-file content held in memory.

        Includes are resolved relative to the directory of `filename`,
        or to the working directory if it is not given.

        Args:
            text: Run-file content.
            filename: Optional name used for diagnostics and includes.

        Returns:
            Step instructions in execution order.

        Raises:
            ParseError: If the content is structurally invalid.
        """
        path = Path(filename or '<unicode string>')
        return tuple(self._parse_content(text, path, ()))

    def _parse_file(self, path: Path, stack: tuple[Path, ...]) -> list[Instruction]:
        """Read and parse one file, guarding against include cycles."""
        resolved = path.resolve()
        if resolved in stack:
            raise ParseError.at_line(
                f'Circular include of {path}',
                filename=str(stack[-1]) if stack else None,
            )

        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeError) as base:
            raise ParseError.at_line(f'Can not read run-file: {base}', str(path)) from base

        return self._parse_content(text, path, (*stack, resolved))

    def _parse_content(self, text: str, path: Path,
                       stack: tuple[Path, ...]) -> list[Instruction]:
        """Validate marker balance and parse the top level of a file."""
        opened, closed = text.count(BLOCK_OPEN), text.count(BLOCK_CLOSE)
        if opened != closed:
            raise ParseError.at_line(
                f'Mismatched number of braces: {opened} opening, {closed} closing',
                str(path),
            )

        lines = [
            (line_num, stripped)
            for line_num, line in enumerate(text.splitlines(), start=1)
            if (stripped := line.strip())
        ]

        instructions, _ = self._parse_block(lines, 0, path, stack)

        return instructions

    def _parse_block(self, lines: list[Line], position: int, path: Path,
                     stack: tuple[Path, ...],
                     opened_at: int | None = None) -> tuple[list[Instruction], int]:
        """Parse lines until the end of the current block.

        Args:
            lines: Numbered non-blank lines of the file.
            position: Cursor of the first line to consume.
            path: File being parsed.
            stack: Resolved paths of the files currently being included.
            opened_at: Line number of the block open marker, or None for
                the top level of a file.

        Returns:
            The block's expanded instructions and the next unconsumed position.
        """
        block: list[Instruction] = []

        while position < len(lines):
            line_num, text = lines[position]

            if text.startswith(BLOCK_OPEN):
                nested, position = self._parse_block(lines, position + 1, path, stack, line_num)
                block.extend(nested)
                continue

            if text.startswith(BLOCK_CLOSE):
                if opened_at is None:
                    raise ParseError.at_line('Unexpected block close', str(path), line_num, text)
                return block * self._repeat_count(line_num, text, path), position + 1

            if text.startswith(COMMENT_MARKER):
                block.extend(self._parse_directive(line_num, text, path, stack))
            else:
                block.append(self._parse_step_line(line_num, text, path))

            position += 1

        if opened_at is not None:
            raise ParseError.at_line('Block is never closed', str(path), opened_at, BLOCK_OPEN)

        return block, position

    @staticmethod
    def _repeat_count(line_num: int, text: str, path: Path) -> int:
        """Parse the repeat suffix of a block close line."""
        match = BLOCK_CLOSE_PATTERN.match(text)
        if not match:
            raise ParseError.at_line('Invalid block close', str(path), line_num, text)

        count = match.group('count')
        if count is None:
            return 1

        if not (count.isascii() and count.isdigit()):
            raise ParseError.at_line(
                f'Block repeat count must be a non-negative integer, got {count!r}',
                str(path), line_num, text,
            )

        return int(count)

    def _parse_directive(self, line_num: int, text: str, path: Path,
                         stack: tuple[Path, ...]) -> list[Instruction]:
        """Handle a comment line, splicing in the target of an include."""
        tokens = text[len(COMMENT_MARKER):].split(DIRECTIVE_SEPARATOR, 1)
        if len(tokens) < 2 or tokens[0].strip().upper() != INCLUDE_DIRECTIVE:
            return []

        target = Path(tokens[1].strip())
        if not target.is_file():
            target = path.parent / target

        if not target.is_file():
            raise ParseError.at_line(
                f'Included file {tokens[1].strip()!r} not found',
                str(path), line_num, text,
            )

        logger.debug('Including %s from %s:%d', target, path, line_num)

        return self._parse_file(target, stack)

    @staticmethod
    def _parse_step_line(line_num: int, text: str, path: Path) -> Instruction:
        """Validate a step line and wrap it into an instruction."""
        if len(text.split(FIELD_SEPARATOR)) > MAX_FIELDS:
            raise ParseError.at_line(
                f'Invalid number of tokens, at most {MAX_FIELDS} expected',
                str(path), line_num, text,
            )

        return Instruction(text=text, source=str(path), line=line_num)
