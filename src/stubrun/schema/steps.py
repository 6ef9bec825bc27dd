"""Compiled step record.

A step is created once by the compiler and updated exactly once by the
executor after it ran. It is owned by the run's step list for the whole
lifetime of the run.
"""

from datetime import timedelta

from pydantic import ConfigDict, Field

from stubrun.models import SchemaModel
from stubrun.names import RepeatCount, StepName  # noqa: TC001


class Step(SchemaModel):
    """Executable unit compiled from one run-file line."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=False,
        validate_assignment=True,
        extra='forbid',
    )

    name: StepName
    prefix: str = Field(
        title='Name prefix',
        description='First part of the symbolic name, usually a test number.',
    )
    class_name: str = Field(
        title='Handler class',
        description='Class requested from the native handler factory.',
    )
    interface_name: str = Field(
        title='Interface',
        description='Interface part of the symbolic name.',
    )
    function_name: str = Field(
        title='Function',
        description='Function part of the symbolic name.',
    )
    config_file: str = Field(
        default='',
        title='Config file',
        description='Resolved config file path, or empty when the step has none.',
    )
    repeat: RepeatCount = 0

    source: str | None = Field(
        default=None,
        exclude=True,
        description='Run-file the step was compiled from.',
    )
    line: int | None = Field(
        default=None,
        exclude=True,
        description='1-based line number in the source file.',
    )

    passed: bool = False
    elapsed: timedelta = timedelta(0)

    @property
    def elapsed_ms(self) -> float:
        """Return the elapsed time in milliseconds."""
        return self.elapsed / timedelta(milliseconds=1)

    @property
    def runs(self) -> int:
        """Return the maximum number of executions of this step."""
        return 1 + self.repeat
