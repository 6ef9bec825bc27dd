"""Command-line front end.

`stubrun run` executes a run-file against a native module (or a Python
test script through the scripting backend) and always writes a report.
`stubrun steps` prints the compiled steps of a run-file without loading
any native module.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from click import ClickException, IntRange, echo, group, option, pause
from click import Path as PathParam
from click import argument

from stubrun.core import RunFileParser, StepCompiler
from stubrun.errors import StubRunError
from stubrun.models import RunSettings
from stubrun.runtime import NativeRunner
from stubrun.scripting import ScriptRunner

if TYPE_CHECKING:
    from stubrun.runtime import Runner

LOG_FORMAT = '%(asctime)s\t\tDETAILS: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

#: Exit code of a run aborted by the operator.
EXIT_INTERRUPTED = 130

InputFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)

OutputFilepath = PathParam(
    dir_okay=False,
    writable=True,
    path_type=Path,
)

Directory = PathParam(
    file_okay=False,
    path_type=Path,
)


def configure_logging(settings: RunSettings, verbose: bool = False) -> None:
    """Replace the root logger handlers with console and file handlers.

    Args:
        settings: Run configuration naming the log file.
        verbose: Whether to log debug records to the console.
    """
    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter('%(levelname)s %(message)s'))

    handlers: list[logging.Handler] = [console]

    if (log_path := settings.log_path) is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding='utf-8')
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handlers.append(handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)


def make_settings(**options: object) -> RunSettings:
    """Build run settings from CLI options, ignoring unset ones."""
    return RunSettings(**{
        name: value
        for name, value in options.items()
        if value is not None
    })


@group(help='Run-file interpreter and step execution engine for native test stubs.')
def cli() -> None:
    """Root CLI group."""
    return None


@cli.command(
    name='run',
    help=(
        'Execute RUNFILE against a native module and write a report. '
        'A `.py` RUNFILE is executed by the scripting backend instead.'
    ),
)
@argument('run_file', type=InputFilepath)
@option('-m', '--module', type=InputFilepath, help='Native module (shared library or `.py` stub).')
@option('-t', '--timeout', type=IntRange(min=1), help='Seconds before a long-running step is abandoned.')
@option('-r', '--resources', 'resources_path', type=Directory, help='Root folder of step config files.')
@option('-d', '--debug-dir', type=Directory, help='Directory receiving reports and logs.')
@option('-l', '--log-file', help='Log file name inside the debug directory.')
@option('-o', '--report', type=OutputFilepath, help='Report path, defaults to <debug-dir>/<run-file>.txt.')
@option('--strict/--tolerant', default=None, help='Abort the run on the first failing step.')
@option('--debug-break', is_flag=True, help='Pause before running so a debugger can be attached.')
@option('-v', '--verbose', is_flag=True, help='Log debug records to the console.')
def run(run_file: Path, module: Path | None, report: Path | None,  # noqa: PLR0913
        debug_break: bool, verbose: bool, **options: object) -> None:
    """Execute a run-file and write its report."""
    settings = make_settings(**options)
    configure_logging(settings, verbose=verbose)

    runner: Runner
    try:
        if run_file.suffix.lower() == '.py':
            runner = ScriptRunner(run_file, settings)
        elif module is None:
            raise ClickException('Native module is not set, use --module')
        else:
            runner = NativeRunner(run_file, module, settings)
    except StubRunError as error:
        raise ClickException(str(error)) from error

    if debug_break:
        pause('Attach a debugger now, then press any key.')

    if report is None:
        report = settings.debug_dir / f'{run_file.stem}.txt'

    exit_code = 0
    with runner:
        try:
            runner.run_all()
        except KeyboardInterrupt:
            logging.getLogger(__name__).warning('Run interrupted')
            exit_code = EXIT_INTERRUPTED
        except StubRunError as error:
            logging.getLogger(__name__).error('Run terminated: %s', error)
            exit_code = 1
        except Exception:
            logging.getLogger(__name__).exception('Run terminated')
            exit_code = 1
        finally:
            runner.dump_report(report)

    echo(f'Passes {runner.passed}, Failures {runner.failed}, Untested {runner.skipped}')

    if not exit_code and runner.failed:
        exit_code = 1

    sys.exit(exit_code)


@cli.command(
    name='steps',
    help='Print the compiled steps of RUNFILE without loading any native module.',
)
@argument('run_file', type=InputFilepath)
@option('-r', '--resources', 'resources_path', type=Directory, help='Root folder of step config files.')
def print_steps(run_file: Path, resources_path: Path | None) -> None:
    """Parse, compile and print a run-file."""
    settings = make_settings(resources_path=resources_path)

    try:
        instructions = RunFileParser().parse(run_file)
        steps = StepCompiler(settings.resources_path).compile(instructions)
    except StubRunError as error:
        raise ClickException(str(error)) from error

    for step_num, step in enumerate(steps, start=1):
        repeat = f' x{step.runs}' if step.repeat else ''
        config = step.config_file or '-'
        echo(f'{step_num:>4} {step.name} {config}{repeat}')


if __name__ == '__main__':
    cli()
