"""Pytest plugin collecting run-files as test items.

This module integrates the run-file engine with pytest by:
- registering custom command-line options;
- configuring a shared session that owns the native module;
- collecting `*.run` files as executable step sequences.

Run-files are only collected when a native module is given with
`--stubrun-module`.
"""

from typing import TYPE_CHECKING

from stubrun.models import RunSettings

from .case import StepSession
from .spec import RunFileSpec

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.nodes import Node

#: File suffix of collected run-files.
RUN_FILE_SUFFIX = '.run'


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for stubrun.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('stubrun', 'run-file execution')
    group.addoption(
        '--stubrun-module',
        action='store',
        dest='stubrun_module',
        default=None,
        help=(
            'Native test-stub module (shared library or `.py` stub) '
            'driving collected run-files. Run-files are not collected '
            'without it.'
        ),
    )
    group.addoption(
        '--stubrun-timeout',
        action='store',
        type=int,
        dest='stubrun_timeout',
        default=None,
        help='Seconds before a long-running step is abandoned.',
    )
    group.addoption(
        '--stubrun-resources',
        action='store',
        dest='stubrun_resources',
        default=None,
        help='Root folder of step config files.',
    )


def pytest_configure(config: 'Config') -> None:
    """Configure the shared stubrun session.

    The session is attached to the pytest configuration object as
    `config.stubrun_session`. The native module itself is loaded on
    first use.

    Args:
        config: Pytest configuration object.
    """
    module = config.getoption('stubrun_module', default=None)
    if not module:
        config.stubrun_session = None  # type: ignore[attr-defined]
        return

    options = {
        'timeout': config.getoption('stubrun_timeout', default=None),
        'resources_path': config.getoption('stubrun_resources', default=None),
    }

    config.stubrun_session = StepSession(  # type: ignore[attr-defined]
        module,
        RunSettings(**{
            name: value
            for name, value in options.items()
            if value is not None
        }),
    )


def pytest_unconfigure(config: 'Config') -> None:
    """Release the native module at the end of the test session.

    Args:
        config: Pytest configuration object.
    """
    if session := getattr(config, 'stubrun_session', None):
        session.close()


def pytest_collect_file(parent: 'Node', file_path: 'Path') -> RunFileSpec | None:
    """Collect run-files.

    Args:
        parent: Parent pytest collection node.
        file_path: Path to the file being considered.

    Returns:
        A `RunFileSpec` collector if the file is a run-file and a native
        module is configured, otherwise ``None``.
    """
    if file_path.suffix != RUN_FILE_SUFFIX:
        return None

    if not getattr(parent.config, 'stubrun_session', None):
        return None

    return RunFileSpec.from_parent(parent, path=file_path)
