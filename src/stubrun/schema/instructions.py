"""Run-file instruction record."""

from pydantic import Field

from stubrun.models import SchemaModel
from stubrun.names import FIELD_SEPARATOR


class Instruction(SchemaModel):
    """A single step line surviving run-file parsing.

    Block markers, comments and include directives never appear as
    instructions: they are consumed by the parser. The source location
    is kept only for diagnostics.
    """

    text: str = Field(
        min_length=1,
        title='Instruction text',
        description='Trimmed step line, kept verbatim for the compiler.',
    )

    source: str | None = Field(
        default=None,
        title='Source file',
        description='Run-file the line was read from.',
    )

    line: int | None = Field(
        default=None,
        ge=1,
        title='Source line',
        description='1-based line number in the source file.',
    )

    @property
    def tokens(self) -> list[str]:
        """Return the comma-separated fields of the line, trimmed."""
        return [item.strip() for item in self.text.split(FIELD_SEPARATOR)]

    def __str__(self) -> str:
        """String representation."""
        return self.text
