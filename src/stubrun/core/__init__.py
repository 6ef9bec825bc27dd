"""Run-file front end.

This package turns run-files into executable steps:
- `RunFileParser` reads a run-file and its includes, expands closure
  blocks and validates structure;
- `StepCompiler` converts each surviving line into a `Step`.
"""

from stubrun.schema import Instruction

from .compiler import StepCompiler, Steps
from .parser import Instructions, RunFileParser

__all__ = (
    'Instruction',
    'Instructions',
    'RunFileParser',
    'StepCompiler',
    'Steps',
)
