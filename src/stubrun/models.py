"""Base Pydantic models and runtime settings.

This module defines the foundational model classes used by the engine
and the run configuration object that replaces process-wide fixed
paths with an explicit value threaded through every component.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from stubrun.names import LONG_RUNNING_MARKERS


class SchemaModel(BaseModel):
    """Base immutable model for engine records.

    Records cannot be modified after creation and unknown fields are
    rejected to avoid silent errors caused by typos.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Unknown or extra fields are ignored so the surrounding environment
    may contain unrelated variables.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )


class RunSettings(SettingsModel):
    """Configuration of a single run.

    Values may be passed explicitly or read from `STUBRUN_*`
    environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix='STUBRUN_',
        frozen=True,
        extra='ignore',
    )

    resources_path: Path = Field(
        default=Path('.'),
        title='Resources root',
        description=(
            'Root folder used to resolve step config files that do not '
            'exist verbatim. A config file is looked up as '
            '`<resources_path>/<step name>/<config file>`.'
        ),
    )

    debug_dir: Path = Field(
        default=Path('debug'),
        title='Debug output directory',
        description='Directory receiving reports and the log file.',
    )

    log_file: str | None = Field(
        default=None,
        title='Log file name',
        description='Optional log file created inside the debug directory.',
    )

    timeout: int = Field(
        default=7200,
        gt=0,
        title='Step timeout',
        description='Seconds a long-running step may take before it is abandoned.',
    )

    poll_interval: float = Field(
        default=1.0,
        gt=0,
        title='Poll interval',
        description='Seconds between readiness polls of a long-running step.',
    )

    repeat_pause: float = Field(
        default=1.0,
        ge=0,
        title='Repeat pause',
        description='Seconds to pause between repetitions of a step.',
    )

    long_running: tuple[str, ...] = Field(
        default=LONG_RUNNING_MARKERS,
        title='Long-running markers',
        description='Step name substrings selecting the polled strategy.',
    )

    strict: bool = Field(
        default=False,
        title='Strict mode',
        description=(
            'Abort the whole run on the first step fault instead of '
            'marking the step failed and continuing.'
        ),
    )

    @property
    def log_path(self) -> Path | None:
        """Return the full log file path, if logging to a file."""
        if not self.log_file:
            return None

        return self.debug_dir / self.log_file
