"""Tests for the pytest plugin."""

from typing import TYPE_CHECKING

import pytest

from stubrun.models import RunSettings
from stubrun.plugin.case import StepSession

from .conftest import STUB_SOURCE

if TYPE_CHECKING:
    from pathlib import Path

RUN_FILE_CONTENT = '''
; smoke run
01__Exposure__IExposure__Start
(
02__Storage__IStorage__SaveTillDone
03__Exposure__IExposure__Fail
)*2
'''


@pytest.fixture
def stub_file(pytester: pytest.Pytester) -> 'Path':
    """Provide a stub module and a run-file in the pytester directory."""
    pytester.makefile('.run', main=RUN_FILE_CONTENT)
    return pytester.makepyfile(stub=STUB_SOURCE)


def test_run_file_collected_as_steps(pytester: pytest.Pytester, stub_file: 'Path') -> None:
    """Collect one item per compiled step."""
    result = pytester.runpytest('--stubrun-module', str(stub_file), '--collect-only', '-q')

    result.stdout.fnmatch_lines([
        'main.run::01__Exposure__IExposure__Start[[]0[]]',
        'main.run::02__Storage__IStorage__SaveTillDone[[]1[]]',
        'main.run::03__Exposure__IExposure__Fail[[]2[]]',
        'main.run::02__Storage__IStorage__SaveTillDone[[]3[]]',
        'main.run::03__Exposure__IExposure__Fail[[]4[]]',
    ])


def test_run_file_executed(pytester: pytest.Pytester, stub_file: 'Path') -> None:
    """Execute steps and report failing ones."""
    result = pytester.runpytest('--stubrun-module', str(stub_file), '--stubrun-timeout', '5')

    result.assert_outcomes(passed=3, failed=2)
    result.stdout.fnmatch_lines(['*Step 03__Exposure__IExposure__Fail failed*'])


def test_unknown_step_fails(pytester: pytest.Pytester, stub_file: 'Path') -> None:
    """Report step faults as failures."""
    pytester.makefile('.run', main='09__Missing__IMissing__Run')

    result = pytester.runpytest('--stubrun-module', str(stub_file))

    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(['*Test stub not found*'])


def test_invalid_run_file(pytester: pytest.Pytester, stub_file: 'Path') -> None:
    """Report structurally invalid run-files as collection errors."""
    pytester.makefile('.run', main='(\n01__Exposure__IExposure__Start')

    result = pytester.runpytest('--stubrun-module', str(stub_file))

    result.assert_outcomes(errors=1)


def test_run_files_ignored_without_module(pytester: pytest.Pytester) -> None:
    """Skip run-files when no native module is configured."""
    pytester.makefile('.run', main=RUN_FILE_CONTENT)

    result = pytester.runpytest()

    result.assert_outcomes()


def test_session_loads_module_once(stub_path: 'Path') -> None:
    """Load the module on first use and keep it until closed."""
    session = StepSession(stub_path, RunSettings())

    assert not session.resolver.is_open

    table = session.table

    assert session.table is table
    assert session.executor.strict

    session.close()

    assert not session.resolver.is_open
