"""Scripting backend.

Runs a Python test script instead of a run-file. The script drives its
tests by itself; the runner only reads the outcome afterwards from the
script's `result` object, or from the script's module scope when it
defines no `result`:
- `passed`, `failed` (or `failures`), `skipped`: counts, given either as
  integers or as collections of test records;
- `logfile`: path of the report the script produced.
"""

import runpy
import shutil
import sys
from collections.abc import Sized
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stubrun.errors import StubRunError
from stubrun.models import RunSettings

if TYPE_CHECKING:
    from os import PathLike
    from types import TracebackType
    from typing import Self

logger = getLogger(__name__)

#: Name of the scope variable holding the script outcome.
RESULT_VARIABLE = 'result'


class ScriptError(StubRunError):
    """Error raised when a test script can not run or reports no outcome."""


class ScriptRunner:
    """Runner executing a Python test script."""

    def __init__(self, script: 'str | PathLike[str]',
                 settings: RunSettings | None = None) -> None:
        """Initialize the runner.

        Args:
            script: Path to the test script.
            settings: Run configuration.

        Raises:
            ScriptError: If the script does not exist.
        """
        self.settings = settings or RunSettings()
        self.script = Path(script)
        self.timeout = self.settings.timeout
        self.scope: dict[str, Any] | None = None

        if not self.script.is_file():
            raise ScriptError(f'Script {self.script} does not exist')

    @property
    def has_run(self) -> bool:
        """Return whether the script ran and reported an outcome."""
        return self.scope is not None

    @property
    def passed(self) -> int:
        """Return the number of passed tests."""
        return self._count('passed')

    @property
    def failed(self) -> int:
        """Return the number of failed tests."""
        return self._count('failed', 'failures')

    @property
    def skipped(self) -> int:
        """Return the number of skipped tests."""
        return self._count('skipped')

    @property
    def logfile(self) -> Path | None:
        """Return the report path produced by the script, if any."""
        value = self._lookup('logfile')
        if not value:
            return None

        return Path(value)

    def run_all(self) -> None:
        """Execute the script as `__main__`.

        The script directory is put on the import path so the script
        can import adjacent modules.

        Raises:
            ScriptError: If the script defines no outcome.
            KeyboardInterrupt: If the operator aborts the script.
            Exception: Anything raised by the script itself.
        """
        directory = str(self.script.parent.resolve())
        sys.path.insert(0, directory)

        try:
            scope = runpy.run_path(str(self.script), run_name='__main__')
        finally:
            sys.path.remove(directory)

        if scope.get(RESULT_VARIABLE) is None and 'passed' not in scope:
            raise ScriptError(f'Script {self.script} must store its outcome in {RESULT_VARIABLE!r}')

        self.scope = scope

        logger.info(
            'Passes %d, Failures %d, Untested %d',
            self.passed, self.failed, self.skipped,
        )

    def dump_report(self, path: 'str | PathLike[str]') -> None:
        """Copy the report produced by the script.

        Args:
            path: Destination path, overwritten if it exists.
        """
        logfile = self.logfile
        if logfile is None:
            logger.warning('No results available')
            return

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(logfile, path)

    def close(self) -> None:
        """Drop the script scope."""
        self.scope = None

    def _lookup(self, *names: str) -> Any:  # noqa: ANN401
        """Find an outcome value on the result object or in the scope."""
        if self.scope is None:
            return None

        result = self.scope.get(RESULT_VARIABLE)
        for name in names:
            if result is not None:
                if isinstance(result, dict) and name in result:
                    return result[name]
                if hasattr(result, name):
                    return getattr(result, name)
            if name in self.scope:
                return self.scope[name]

        return None

    def _count(self, *names: str) -> int:
        """Read a count given as an integer or as a collection."""
        value = self._lookup(*names)
        if value is None:
            return 0

        if isinstance(value, Sized) and not isinstance(value, str):
            return len(value)

        return int(value)

    def __enter__(self) -> 'Self':
        """Enter the runtime context."""
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        """Release resources on every exit path."""
        self.close()
