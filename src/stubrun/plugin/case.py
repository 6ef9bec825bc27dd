"""Runtime execution layer for collected run-file steps.

This module defines the session shared by every collected step and the
pytest item executing a single step against it.
"""

from typing import TYPE_CHECKING

import pytest

from stubrun.bindings import BindingResolver
from stubrun.errors import ErrorContext, StubRunError
from stubrun.runtime import StepExecutor

if TYPE_CHECKING:
    from os import PathLike
    from typing import Any

if TYPE_CHECKING:
    from stubrun.bindings import BindingTable
    from stubrun.models import RunSettings
    from stubrun.schema import Step


class StepSession:
    """Native module session shared by all collected steps.

    The module is loaded on first use and released by `close`. Step
    faults are raised rather than tolerated so that pytest reports them.
    """

    def __init__(self, module: 'str | PathLike[str]', settings: 'RunSettings') -> None:
        """Initialize the session.

        Args:
            module: Path to the native module.
            settings: Run configuration.
        """
        self.module = module
        self.settings = settings
        self.resolver = BindingResolver()
        self.executor = StepExecutor.from_settings(settings, strict=True)

    @property
    def table(self) -> 'BindingTable':
        """Return the binding table, loading the module if needed."""
        if not self.resolver.is_open:
            return self.resolver.open(self.module)

        return self.resolver.table

    def close(self) -> None:
        """Release the native module."""
        self.resolver.close()


class StepItem(pytest.Item):
    """Pytest item executing a single compiled step."""

    def __init__(self, *,
                 step: 'Step',
                 step_num: int,
                 session: StepSession,
                 **kwargs: 'Any') -> None:
        """Initialize a pytest item backed by a step.

        Args:
            step: Compiled step.
            step_num: Position of the step in its run-file.
            session: Shared native module session.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.step = step
        self.step_num = step_num
        self.session = session

    def runtest(self) -> None:
        """Execute the step.

        Raises:
            AssertionError: If the step reports a non-positive result.
            StepError: If the step can not be executed.
        """
        passed, _ = self.session.executor.execute(
            self.step,
            self.session.table,
            self.session.settings.timeout,
            step_num=self.step_num,
        )

        if not passed:
            raise AssertionError(StubRunError.format(
                f'Step {self.step.name} failed',
                ErrorContext(
                    filename=self.step.source,
                    line_num=self.step.line,
                    step_num=self.step_num,
                    element=self.step.model_dump(include={'name', 'config_file', 'repeat'}),
                ),
            ))

    def reportinfo(self) -> tuple['PathLike[str] | str', int | None, str]:
        """Return location information for test reports."""
        line = self.step.line - 1 if self.step.line else None
        return self.path, line, self.step.name
