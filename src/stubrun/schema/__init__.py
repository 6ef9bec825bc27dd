"""Records exchanged between the parser, compiler, and execution engine.

Defines the immutable instruction record produced by the run-file
parser and the step record compiled from it and updated once after
execution.
"""

from .instructions import Instruction
from .steps import Step

__all__ = (
    'Instruction',
    'Step',
)
