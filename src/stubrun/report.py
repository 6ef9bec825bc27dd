"""Flat text report of a run.

The report starts with a header block (start time and counters) followed
by one four-line block per step: name, config file, `1`/`0` for
passed/failed, and elapsed milliseconds. Blocks are separated by a blank
line.
"""

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from os import PathLike

if TYPE_CHECKING:
    from stubrun.runtime import RunSummary
    from stubrun.schema import Step

logger = getLogger(__name__)

TIME_FORMAT = '%m-%d-%Y, %H:%M:%S'


class ReportWriter:
    """Serializer of run summaries and step outcomes."""

    def write(self, path: 'str | PathLike[str]', summary: 'RunSummary',
              steps: 'Sequence[Step]') -> Path:
        """Write a report, overwriting any existing file.

        Args:
            path: Output file path.
            summary: Counters of the run.
            steps: Steps of the run, executed or not.

        Returns:
            The path of the written report.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open('wt', encoding='utf-8') as output:
            output.writelines(f'{line}\n' for line in self.render(summary, steps))

        logger.info('Report written to %s', path)

        return path

    @staticmethod
    def render(summary: 'RunSummary', steps: 'Sequence[Step]') -> 'Iterable[str]':
        """Render the report as lines.

        Args:
            summary: Counters of the run.
            steps: Steps of the run.

        Yields:
            Report lines without line terminators.
        """
        yield f'time:{summary.start_time.strftime(TIME_FORMAT)}'
        yield f'passes:{summary.passed}'
        yield f'failures:{summary.failed}'
        yield f'untested:{summary.skipped}'
        yield ''

        for step in steps:
            yield step.name
            yield step.config_file
            yield '1' if step.passed else '0'
            yield f'{step.elapsed_ms:.3f}'
            yield ''
