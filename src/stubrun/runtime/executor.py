"""Step executor.

Executes one compiled step against the binding table. Ordinary test
failures and recoverable faults never escape the executor: the step is
recorded as failed and the fault is logged. Only binding or environment
faults propagate, or any fault when running in strict mode.

Two execution strategies exist:
- synchronous: a single blocking call returns the result code;
- polled: the native module starts the test and returns immediately,
  and the executor polls for the result until a deadline. On timeout
  only the wait is abandoned; the native operation is not cancelled,
  since the capability set offers no way to do so.
"""

import time
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from stubrun.errors import NotExecutableError, StepError, StepTimeoutError, UnknownTestError
from stubrun.names import LONG_RUNNING_MARKERS, is_long_running

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Self

if TYPE_CHECKING:
    from stubrun.bindings import BindingTable, Handle
    from stubrun.models import RunSettings
    from stubrun.schema import Step

logger = getLogger(__name__)

#: Internal test id returned for unknown test names.
UNKNOWN_TEST_ID = -1


class StepExecutor:
    """Executor of single steps.

    Time sources are injectable so that polling and timeouts can be
    exercised without waiting.
    """

    def __init__(self, *,  # noqa: PLR0913
                 poll_interval: float = 1.0,
                 repeat_pause: float = 1.0,
                 long_running: tuple[str, ...] = LONG_RUNNING_MARKERS,
                 strict: bool = False,
                 clock: 'Callable[[], float]' = time.monotonic,
                 sleep: 'Callable[[float], object]' = time.sleep) -> None:
        """Initialize the executor.

        Args:
            poll_interval: Seconds between readiness polls.
            repeat_pause: Seconds to pause between repetitions.
            long_running: Step name substrings selecting the polled strategy.
            strict: Re-raise step faults instead of tolerating them.
            clock: Monotonic clock returning seconds.
            sleep: Function blocking for a number of seconds.
        """
        self.poll_interval = poll_interval
        self.repeat_pause = repeat_pause
        self.long_running = long_running
        self.strict = strict
        self.clock = clock
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: 'RunSettings', **kwargs: 'object') -> 'Self':
        """Create an executor configured from run settings.

        Args:
            settings: Run configuration.
            **kwargs: Overrides, such as time sources.

        Returns:
            A configured executor.
        """
        options = {
            'poll_interval': settings.poll_interval,
            'repeat_pause': settings.repeat_pause,
            'long_running': settings.long_running,
            'strict': settings.strict,
            **kwargs,
        }

        return cls(**options)  # type: ignore[arg-type]

    def execute(self, step: 'Step', table: 'BindingTable', timeout: int, *,
                step_num: int | None = None) -> tuple[bool, timedelta]:
        """Execute a step and record its outcome on it.

        Args:
            step: Step to execute.
            table: Resolved binding table.
            timeout: Seconds a polled execution may take.
            step_num: Position of the step, for diagnostics.

        Returns:
            Whether the step passed and the time it took.

        Raises:
            StepError: On a step fault in strict mode.
        """
        started = self.clock()
        result = 0

        try:
            result = self._run(step, table, timeout, step_num)

        except StepError as error:
            logger.error('Exception caught during %s: %s', step.name, error)
            if self.strict:
                raise

        finally:
            step.passed = result > 0
            step.elapsed = timedelta(seconds=self.clock() - started)

        logger.info(
            '%s %s in %.0f ms',
            step.name, 'passed' if step.passed else 'failed', step.elapsed_ms,
        )

        return step.passed, step.elapsed

    def is_polled(self, step: 'Step') -> bool:
        """Tell whether a step runs with the polled strategy."""
        return is_long_running(step.name, self.long_running)

    def _run(self, step: 'Step', table: 'BindingTable', timeout: int,
             step_num: int | None) -> int:
        """Resolve the step's test and handler and run all repetitions."""
        try:
            test_id = table.resolve_test_id(step.name)
        except Exception as base:
            raise UnknownTestError.for_step(
                f'Could not resolve {step.name}: {base!r}', step, step_num=step_num,
            ) from base

        if test_id == UNKNOWN_TEST_ID:
            raise UnknownTestError.for_step(
                f'Test stub not found for {step.name}', step, step_num=step_num,
            )

        try:
            handler = table.get_handler(step.class_name, table.context)
            executable = handler is not None and table.can_execute(handler, test_id)
        except Exception as base:
            raise NotExecutableError.for_step(
                f'Cannot get class object {step.class_name}: {base!r}', step, step_num=step_num,
            ) from base

        if not executable:
            raise NotExecutableError.for_step(
                f'Cannot get class object {step.class_name}', step, step_num=step_num,
            )

        result = 0
        for repetition in range(step.runs):
            if repetition and self.repeat_pause:
                self.sleep(self.repeat_pause)

            try:
                if self.is_polled(step):
                    result = self._execute_polled(step, table, handler, test_id, timeout, step_num)
                else:
                    result = int(table.execute_sync(handler, test_id, step.config_file))
            finally:
                table.release_handler(step.class_name, handler, table.context)

            if result <= 0:
                if repetition < step.repeat:
                    logger.warning(
                        '%s failed on run %d of %d, remaining runs skipped',
                        step.name, repetition + 1, step.runs,
                    )
                break

        return result

    def _execute_polled(self, step: 'Step', table: 'BindingTable', handler: 'Handle',  # noqa: PLR0913
                        test_id: int, timeout: int, step_num: int | None) -> int:
        """Start a long-running test and poll for its result."""
        table.execute_async_start(handler, test_id, step.config_file)
        deadline = self.clock() + timeout

        while True:
            ready, result = table.poll_async_result()
            if ready:
                return int(result)

            if self.clock() >= deadline:
                raise StepTimeoutError.for_step(
                    f'{timeout} seconds reached', step, step_num=step_num,
                )

            self.sleep(self.poll_interval)
