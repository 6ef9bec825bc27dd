"""Run controller and run summary."""

from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ConfigDict, Field

from stubrun.errors import StepError
from stubrun.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Sequence

if TYPE_CHECKING:
    from stubrun.bindings import BindingTable
    from stubrun.schema import Step

    from .executor import StepExecutor

logger = getLogger(__name__)


class RunSummary(SchemaModel):
    """Counters of a run.

    Skipped steps are never counted: they are whatever is left once a
    run stops before processing every step.
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        extra='forbid',
    )

    start_time: datetime = Field(default_factory=datetime.now)
    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    aborted: bool = False

    @property
    def skipped(self) -> int:
        """Return the number of steps that were never executed."""
        return self.total - self.passed - self.failed


class RunController:
    """Sequential driver of a compiled step list.

    At most one step is in flight at any time.
    """

    def __init__(self, executor: 'StepExecutor') -> None:
        """Initialize the controller.

        Args:
            executor: Executor used for every step.
        """
        self.executor = executor

    def run_all(self, steps: 'Sequence[Step]', table: 'BindingTable', timeout: int, *,
                summary: RunSummary | None = None) -> RunSummary:
        """Execute every step in order and count outcomes.

        The summary is updated in place, so a caller passing its own
        summary still sees the partial counts if the run is aborted.

        Args:
            steps: Compiled steps in execution order.
            table: Resolved binding table.
            timeout: Seconds a polled execution may take.
            summary: Optional summary to accumulate into.

        Returns:
            The run summary.

        Raises:
            KeyboardInterrupt: If the operator aborts the run.
            StepError: On a step fault in strict mode; the step counts
                as failed.
            Exception: Any fatal fault escaping the executor.
        """
        if summary is None:
            summary = RunSummary()
        summary.total = len(steps)

        try:
            for step_num, step in enumerate(steps):
                try:
                    passed, _ = self.executor.execute(step, table, timeout, step_num=step_num)
                except StepError:
                    summary.failed += 1
                    raise

                if passed:
                    summary.passed += 1
                else:
                    summary.failed += 1

        except KeyboardInterrupt:
            summary.aborted = True
            logger.warning('Run interrupted by operator')
            raise

        except Exception as error:
            summary.aborted = True
            logger.error('Run terminated: %s', error)
            raise

        finally:
            logger.info(
                'Passes %d, Failures %d, Untested %d',
                summary.passed, summary.failed, summary.skipped,
            )

        return summary
