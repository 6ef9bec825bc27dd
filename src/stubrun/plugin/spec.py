"""Pytest integration for run-files.

This module defines a pytest file collector that treats a run-file as
an ordered sequence of test items, one per compiled step.
"""

from typing import TYPE_CHECKING

import pytest

from stubrun.core import RunFileParser, StepCompiler

from .case import StepItem

if TYPE_CHECKING:
    from collections.abc import Iterable


class RunFileSpec(pytest.File):
    """Pytest file collector for run-files.

    The file is parsed and compiled when collected; parse and compile
    errors surface as collection errors.
    """

    def collect(self) -> 'Iterable[StepItem]':
        """Collect one test item per compiled step.

        Returns:
            Iterable of `StepItem` instances in execution order.

        Raises:
            ParseError: If the run-file is structurally invalid.
            CompileError: If a step line is malformed.
        """
        session = self.config.stubrun_session  # type: ignore[attr-defined]

        instructions = RunFileParser().parse(self.path)
        steps = StepCompiler(session.settings.resources_path).compile(instructions)

        for step_num, step in enumerate(steps):
            yield StepItem.from_parent(
                self,
                name=f'{step.name}[{step_num}]',
                step=step,
                step_num=step_num,
                session=session,
            )
