"""Native module handles.

A module handle owns a loaded module and exposes its capabilities by
their abstract names. Two kinds of module are supported:
- shared libraries loaded with `ctypes`, whose fixed C exports are
  adapted to the abstract calling convention;
- Python modules (or any object) exposing the capabilities directly,
  used to simulate a native module.
"""

import ctypes
from importlib.util import module_from_spec, spec_from_file_location
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from stubrun.errors import ModuleLoadError

if TYPE_CHECKING:
    from collections.abc import Callable
    from os import PathLike

logger = getLogger(__name__)

#: File suffix selecting the Python module backend.
PYTHON_SUFFIX = '.py'

#: C export names of the capabilities.
NATIVE_EXPORTS = {
    'initialize': 'Init',
    'shutdown': 'Shutdown',
    'get_base_context': 'GetBaseObject',
    'resolve_test_id': 'GetUTID',
    'can_execute': 'GenericCanExecute',
    'execute_sync': 'GenericExecute',
    'execute_async_start': 'ThreadedExecute',
    'poll_async_result': 'GetThreadedExecuteResult',
    'release_handler': 'SubmitClass',
    'get_handler': 'GetClass',
}


@runtime_checkable
class ModuleHandle(Protocol):
    """Exclusively owned loaded module."""

    def symbol(self, name: str) -> 'Callable[..., Any] | None':
        """Return the callable of a capability, or None if it is missing."""
        ...  # pragma: no cover

    def release(self) -> None:
        """Release the loaded module."""
        ...  # pragma: no cover


class PythonModule:
    """Module handle over a Python object exposing the capability set."""

    def __init__(self, module: object, name: str | None = None) -> None:
        """Initialize the handle.

        Args:
            module: Module or any object with capability attributes.
            name: Display name used in diagnostics.
        """
        self.module = module
        self.name = name or getattr(module, '__name__', type(module).__name__)

    @classmethod
    def from_file(cls, path: 'str | PathLike[str]') -> 'PythonModule':
        """Import a Python source file as a stub module.

        Args:
            path: Path to a `.py` file.

        Returns:
            A handle over the imported module.

        Raises:
            ModuleLoadError: If the file can not be imported.
        """
        path = Path(path)
        spec = spec_from_file_location(f'stubrun_module_{path.stem}', path)
        if spec is None or spec.loader is None:
            raise ModuleLoadError(f'Can not load module {path}')

        module = module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as base:
            raise ModuleLoadError(f'Can not load module {path}: {base!r}') from base

        return cls(module, name=str(path))

    def symbol(self, name: str) -> 'Callable[..., Any] | None':
        """Return the callable attribute named after a capability."""
        value = getattr(self.module, name, None)
        if not callable(value):
            return None

        return value  # type: ignore[no-any-return]

    def release(self) -> None:
        """Drop the reference to the module."""
        self.module = None


class SharedLibrary:
    """Module handle over a shared library loaded with `ctypes`.

    The library's C exports take wide strings with an explicit buffer
    size and return the async result through an out-parameter. The
    handle adapts them to the abstract calling convention.
    """

    def __init__(self, path: 'str | PathLike[str]') -> None:
        """Load the shared library.

        Args:
            path: Path to the shared library.

        Raises:
            ModuleLoadError: If the library can not be loaded.
        """
        self.name = str(path)

        try:
            self.library: ctypes.CDLL | None = ctypes.CDLL(self.name)
        except OSError as base:
            raise ModuleLoadError(f'Can not load library {self.name}: {base}') from base

    def symbol(self, name: str) -> 'Callable[..., Any] | None':
        """Return an adapter calling the C export of a capability."""
        if self.library is None:
            raise ModuleLoadError(f'Library {self.name} has already been released')

        export = NATIVE_EXPORTS.get(name)
        if export is None:
            return None

        try:
            function = getattr(self.library, export)
        except AttributeError:
            return None

        return getattr(self, f'_adapt_{name}')(function)  # type: ignore[no-any-return]

    def release(self) -> None:
        """Unload the shared library."""
        if self.library is None:
            return

        import _ctypes  # noqa: PLC0415

        handle = self.library._handle  # noqa: SLF001
        self.library = None

        if hasattr(_ctypes, 'FreeLibrary'):
            _ctypes.FreeLibrary(handle)
        else:
            _ctypes.dlclose(handle)

        logger.debug('Released library %s', self.name)

    @staticmethod
    def _adapt_initialize(function: Any) -> 'Callable[[], bool]':  # noqa: ANN401
        function.argtypes = []
        function.restype = ctypes.c_bool
        return lambda: bool(function())

    @staticmethod
    def _adapt_shutdown(function: Any) -> 'Callable[[], None]':  # noqa: ANN401
        function.argtypes = []
        function.restype = None
        return lambda: function()

    @staticmethod
    def _adapt_get_base_context(function: Any) -> 'Callable[[], int | None]':  # noqa: ANN401
        function.argtypes = []
        function.restype = ctypes.c_void_p
        return lambda: function()

    @staticmethod
    def _adapt_resolve_test_id(function: Any) -> 'Callable[[str], int]':  # noqa: ANN401
        function.argtypes = [ctypes.c_wchar_p, ctypes.c_int]
        function.restype = ctypes.c_int
        return lambda name: int(function(name, len(name) + 1))

    @staticmethod
    def _adapt_can_execute(function: Any) -> 'Callable[[int, int], bool]':  # noqa: ANN401
        function.argtypes = [ctypes.c_void_p, ctypes.c_int]
        function.restype = ctypes.c_bool
        return lambda handler, test_id: bool(function(handler, test_id))

    @staticmethod
    def _adapt_execute_sync(function: Any) -> 'Callable[[int, int, str], int]':  # noqa: ANN401
        function.argtypes = [ctypes.c_void_p, ctypes.c_int, ctypes.c_wchar_p, ctypes.c_int]
        function.restype = ctypes.c_int
        return lambda handler, test_id, config: int(
            function(handler, test_id, config, len(config) + 1),
        )

    @staticmethod
    def _adapt_execute_async_start(function: Any) -> 'Callable[[int, int, str], int | None]':  # noqa: ANN401
        function.argtypes = [ctypes.c_void_p, ctypes.c_int, ctypes.c_wchar_p, ctypes.c_int]
        function.restype = ctypes.c_void_p
        return lambda handler, test_id, config: function(handler, test_id, config, len(config) + 1)

    @staticmethod
    def _adapt_poll_async_result(function: Any) -> 'Callable[[], tuple[bool, int]]':  # noqa: ANN401
        function.argtypes = [ctypes.POINTER(ctypes.c_int)]
        function.restype = ctypes.c_bool

        def poll() -> tuple[bool, int]:
            result = ctypes.c_int(0)
            ready = bool(function(ctypes.byref(result)))
            return ready, result.value

        return poll

    @staticmethod
    def _adapt_release_handler(function: Any) -> 'Callable[[str, int, int], None]':  # noqa: ANN401
        function.argtypes = [ctypes.c_wchar_p, ctypes.c_int, ctypes.c_void_p, ctypes.c_void_p]
        function.restype = None
        return lambda class_name, handler, context: function(
            class_name, len(class_name) + 1, handler, context,
        )

    @staticmethod
    def _adapt_get_handler(function: Any) -> 'Callable[[str, int], int | None]':  # noqa: ANN401
        function.argtypes = [ctypes.c_wchar_p, ctypes.c_int, ctypes.c_void_p]
        function.restype = ctypes.c_void_p
        return lambda class_name, context: function(class_name, len(class_name) + 1, context)


def load_module(path: 'str | PathLike[str]') -> ModuleHandle:
    """Load a native module, choosing the backend by file suffix.

    Args:
        path: Path to a `.py` stub module or a shared library.

    Returns:
        An exclusively owned module handle.

    Raises:
        ModuleLoadError: If the module does not exist or can not be loaded.
    """
    path = Path(path)
    if not path.is_file():
        raise ModuleLoadError(f'Module {path} does not exist')

    if path.suffix.lower() == PYTHON_SUFFIX:
        return PythonModule.from_file(path)

    return SharedLibrary(path)
