"""Run front ends.

A runner owns everything one run needs and exposes the counters and the
report of that run. `NativeRunner` compiles a run-file and drives its
steps against a native module; the scripting backend lives in
`stubrun.scripting` and implements the same protocol.
"""

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from stubrun.bindings import BindingResolver
from stubrun.core import RunFileParser, StepCompiler
from stubrun.models import RunSettings
from stubrun.report import ReportWriter

from .controller import RunController, RunSummary
from .executor import StepExecutor

if TYPE_CHECKING:
    from os import PathLike
    from types import TracebackType
    from typing import Self

if TYPE_CHECKING:
    from stubrun.bindings import ModuleHandle

logger = getLogger(__name__)


@runtime_checkable
class Runner(Protocol):
    """Common interface of run front ends."""

    timeout: int

    @property
    def passed(self) -> int:
        """Return the number of passed steps."""
        ...  # pragma: no cover

    @property
    def failed(self) -> int:
        """Return the number of failed steps."""
        ...  # pragma: no cover

    @property
    def skipped(self) -> int:
        """Return the number of steps that never ran."""
        ...  # pragma: no cover

    def run_all(self) -> None:
        """Run every step."""
        ...  # pragma: no cover

    def dump_report(self, path: 'str | PathLike[str]') -> None:
        """Write the run report."""
        ...  # pragma: no cover

    def close(self) -> None:
        """Release every resource held by the runner."""
        ...  # pragma: no cover


class NativeRunner:
    """Runner driving a compiled run-file against a native module.

    The run-file is parsed and compiled on construction, so structural
    errors surface before the native module is touched. The module is
    loaded by `run_all` and released when it returns, on every exit path.
    """

    def __init__(self, run_file: 'str | PathLike[str]',
                 module: 'str | PathLike[str] | ModuleHandle',
                 settings: RunSettings | None = None, *,
                 executor: StepExecutor | None = None) -> None:
        """Initialize the runner.

        Args:
            run_file: Path to the root run-file.
            module: Path to the native module, or a loaded module handle.
            settings: Run configuration.
            executor: Optional preconfigured step executor.

        Raises:
            ParseError: If the run-file is structurally invalid.
            CompileError: If a step line is malformed.
        """
        self.settings = settings or RunSettings()
        self.run_file = Path(run_file)
        self.module = module
        self.timeout = self.settings.timeout

        instructions = RunFileParser().parse(self.run_file)
        self.steps = StepCompiler(self.settings.resources_path).compile(instructions)

        self.resolver = BindingResolver()
        self.controller = RunController(executor or StepExecutor.from_settings(self.settings))
        self.summary = RunSummary(total=len(self.steps))

    @property
    def passed(self) -> int:
        """Return the number of passed steps."""
        return self.summary.passed

    @property
    def failed(self) -> int:
        """Return the number of failed steps."""
        return self.summary.failed

    @property
    def skipped(self) -> int:
        """Return the number of steps that never ran."""
        return self.summary.skipped

    def run_all(self) -> None:
        """Load the native module and run every step.

        Raises:
            BindingError: If the native module can not be opened.
            KeyboardInterrupt: If the operator aborts the run; the native
                module is shut down before the interrupt propagates.
        """
        with self.resolver:
            table = self.resolver.open(self.module)
            self.controller.run_all(self.steps, table, self.timeout, summary=self.summary)

    def dump_report(self, path: 'str | PathLike[str]') -> None:
        """Write the run report, whatever the state of the run."""
        ReportWriter().write(path, self.summary, self.steps)

    def close(self) -> None:
        """Release the native module if it is still loaded."""
        self.resolver.close()

    def __enter__(self) -> 'Self':
        """Enter the runtime context."""
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        """Release resources on every exit path."""
        self.close()
