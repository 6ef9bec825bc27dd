"""Step execution engine.

This package drives compiled steps against a binding table:
- `StepExecutor` executes one step with a synchronous or polled strategy;
- `RunController` executes a step list in order and counts outcomes;
- `NativeRunner` ties parsing, binding, execution and reporting together.
"""

from .controller import RunController, RunSummary
from .executor import StepExecutor
from .runner import NativeRunner, Runner

__all__ = (
    'NativeRunner',
    'RunController',
    'RunSummary',
    'Runner',
    'StepExecutor',
)
