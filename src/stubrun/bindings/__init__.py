"""Native module binding layer.

Loads a native test-stub module and resolves the fixed capability set
the engine requires into an immutable binding table.
"""

from .modules import NATIVE_EXPORTS, ModuleHandle, PythonModule, SharedLibrary, load_module
from .resolver import BindingResolver
from .table import CAPABILITIES, BindingTable, Handle

__all__ = (
    'CAPABILITIES',
    'NATIVE_EXPORTS',
    'BindingResolver',
    'BindingTable',
    'Handle',
    'ModuleHandle',
    'PythonModule',
    'SharedLibrary',
    'load_module',
)
