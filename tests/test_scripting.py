"""Tests for the scripting backend."""

import sys
from typing import TYPE_CHECKING

import pytest

from stubrun.runtime import Runner
from stubrun.scripting import ScriptError, ScriptRunner

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize('source, counts', (
    pytest.param(
        'passed = 3\nfailed = 1\nskipped = 0\n',
        (3, 1, 0),
        id='module counters',
    ),
    pytest.param(
        'result = {"passed": ["a", "b"], "failures": ["c"], "skipped": []}\n',
        (2, 1, 0),
        id='result dict of collections',
    ),
    pytest.param(
        'class Result:\n'
        '    passed = 5\n'
        '    failed = 0\n'
        '    skipped = 2\n'
        'result = Result()\n',
        (5, 0, 2),
        id='result object',
    ),
))
def test_outcome(tmp_path: 'Path', source: str, counts: tuple[int, int, int]) -> None:
    """Read the outcome reported by the script."""
    script = tmp_path / 'suite.py'
    script.write_text(source, encoding='utf-8')

    with ScriptRunner(script) as runner:
        assert isinstance(runner, Runner)
        assert not runner.has_run

        runner.run_all()

        assert runner.has_run
        assert (runner.passed, runner.failed, runner.skipped) == counts


def test_script_runs_as_main(tmp_path: 'Path') -> None:
    """Run the script as `__main__` with its directory importable."""
    (tmp_path / 'helpers.py').write_text('VALUE = 4\n', encoding='utf-8')
    script = tmp_path / 'suite.py'
    script.write_text(
        'import helpers\n'
        'passed = helpers.VALUE if __name__ == "__main__" else 0\n',
        encoding='utf-8',
    )

    runner = ScriptRunner(script)
    runner.run_all()

    assert runner.passed == 4
    assert str(tmp_path.resolve()) not in sys.path


def test_script_without_outcome(tmp_path: 'Path') -> None:
    """Reject scripts that report nothing."""
    script = tmp_path / 'suite.py'
    script.write_text('value = 1\n', encoding='utf-8')

    with pytest.raises(ScriptError, match='outcome'):
        ScriptRunner(script).run_all()


def test_missing_script(tmp_path: 'Path') -> None:
    """Reject a script path naming no file."""
    with pytest.raises(ScriptError, match='does not exist'):
        ScriptRunner(tmp_path / 'missing.py')


def test_dump_report_copies_logfile(tmp_path: 'Path') -> None:
    """Copy the report the script produced."""
    logfile = tmp_path / 'script.log'
    logfile.write_text('all good\n', encoding='utf-8')
    script = tmp_path / 'suite.py'
    script.write_text(f'passed = 1\nlogfile = {str(logfile)!r}\n', encoding='utf-8')

    runner = ScriptRunner(script)
    runner.run_all()
    runner.dump_report(tmp_path / 'debug' / 'report.txt')

    assert (tmp_path / 'debug' / 'report.txt').read_text(encoding='utf-8') == 'all good\n'


def test_dump_report_without_results(tmp_path: 'Path', caplog: pytest.LogCaptureFixture) -> None:
    """Write nothing when the script never ran."""
    script = tmp_path / 'suite.py'
    script.write_text('passed = 1\n', encoding='utf-8')

    ScriptRunner(script).dump_report(tmp_path / 'report.txt')

    assert not (tmp_path / 'report.txt').exists()
    assert 'No results available' in caplog.text
