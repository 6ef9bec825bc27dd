"""Tests for records, settings and error formatting."""

from datetime import timedelta
from typing import TYPE_CHECKING

import pydantic
import pytest

from stubrun.core import StepCompiler
from stubrun.errors import ErrorContext, ParseError, StepError, StepTimeoutError
from stubrun.models import RunSettings
from stubrun.names import is_long_running
from stubrun.schema import Instruction, Step

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def test_instruction_tokens() -> None:
    """Split instruction text into trimmed fields."""
    instruction = Instruction(text='01__A__IA__Run , cfg.xml ,2')

    assert instruction.tokens == ['01__A__IA__Run', 'cfg.xml', '2']
    assert str(instruction) == '01__A__IA__Run , cfg.xml ,2'


@pytest.mark.parametrize('content', (
    pytest.param({'text': ''}, id='empty text'),
    pytest.param({'text': 'A', 'line': 0}, id='zero line'),
    pytest.param({'text': 'A', 'column': 1}, id='extra field'),
))
def test_invalid_instruction(content: dict) -> None:
    """Reject malformed instruction records."""
    with pytest.raises(pydantic.ValidationError):
        Instruction.model_validate(content)


def test_step_is_updated_once_run() -> None:
    """Validate step outcome assignments."""
    step = Step(
        name='01__A__IA__Run',
        prefix='01',
        class_name='A',
        interface_name='IA',
        function_name='Run',
        repeat=1,
    )

    step.passed = True
    step.elapsed = timedelta(microseconds=2500)

    assert step.elapsed_ms == 2.5
    assert step.runs == 2

    with pytest.raises(pydantic.ValidationError):
        step.repeat = -1


@pytest.mark.parametrize('name, expected', (
    pytest.param('02__Storage__IStorage__SaveTillDone', True, id='save'),
    pytest.param('02__View__IView__PreviewTillDone', True, id='preview'),
    pytest.param('02__Scan__IScan__AnalyseTillDone', True, id='analyse'),
    pytest.param('02__Storage__IStorage__Save', False, id='short'),
))
def test_long_running_markers(name: str, expected: bool) -> None:
    """Detect long-running steps by name."""
    assert is_long_running(name) is expected


def test_settings_from_environment(mocker: 'MockerFixture') -> None:
    """Read settings from prefixed environment variables."""
    mocker.patch.dict('os.environ', {
        'STUBRUN_TIMEOUT': '30',
        'STUBRUN_STRICT': 'true',
        'STUBRUN_DEBUG_DIR': '/tmp/stubrun',
        'STUBRUN_LOG_FILE': 'run.log',
    })

    settings = RunSettings()

    assert settings.timeout == 30
    assert settings.strict
    assert str(settings.log_path) == '/tmp/stubrun/run.log'


def test_settings_defaults() -> None:
    """Use a two hour timeout and no log file by default."""
    settings = RunSettings()

    assert settings.timeout == 7200
    assert settings.log_path is None


def test_settings_reject_non_positive_timeout() -> None:
    """Reject timeouts that are not positive."""
    with pytest.raises(pydantic.ValidationError):
        RunSettings(timeout=0)


def test_error_formatting() -> None:
    """Format an error with location and a YAML snippet."""
    error = ParseError('Invalid block close', context=ErrorContext(
        filename='main.run',
        line_num=3,
        element=') x',
    ))

    message = str(error)

    assert message.startswith('Invalid block close')
    assert 'in "main.run", line 3' in message
    assert ') x' in message


def test_step_error_snippet() -> None:
    """Describe the faulting step in step errors."""
    step, = StepCompiler().compile([
        Instruction(text='01__A__IA__Run,,2', source='main.run', line=5),
    ])

    error = StepTimeoutError.for_step('10 seconds reached', step, step_num=6)

    assert isinstance(error, StepError)
    assert isinstance(error, TimeoutError)

    message = str(error)

    assert 'in "main.run", line 5' in message
    assert 'on step 7' in message
    assert 'name: 01__A__IA__Run' in message
    assert 'repeat: 2' in message
