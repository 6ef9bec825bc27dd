"""Binding resolver.

The resolver owns a loaded native module for the lifetime of a run. On
open it loads the module, initializes it, fetches the base context, and
resolves every remaining capability, failing fast if any is missing. On
close it shuts the module down and releases it exactly once.
"""

from logging import getLogger
from typing import TYPE_CHECKING

from stubrun.errors import BindingError, ContextError, InitError

from .modules import ModuleHandle, load_module
from .table import STEP_CAPABILITIES, BindingTable

if TYPE_CHECKING:
    from collections.abc import Callable
    from os import PathLike
    from types import TracebackType
    from typing import Any, Self

logger = getLogger(__name__)


class BindingResolver:
    """Exclusive owner of a native module and its binding table.

    The resolver is a context manager: leaving the `with` block closes
    the module on every exit path, including errors and interrupts.
    """

    def __init__(self) -> None:
        """Initialize a closed resolver."""
        self._module: ModuleHandle | None = None
        self._table: BindingTable | None = None
        self._shutdown: Callable[[], Any] | None = None

    @property
    def is_open(self) -> bool:
        """Return whether a module is currently loaded."""
        return self._module is not None

    @property
    def table(self) -> BindingTable:
        """Return the binding table of the open module.

        Raises:
            BindingError: If the resolver is not open.
        """
        if self._table is None:
            raise BindingError('Native module is not loaded')

        return self._table

    def open(self, module: 'str | PathLike[str] | ModuleHandle') -> BindingTable:
        """Load a native module and resolve its binding table.

        Args:
            module: Path to a module, or an already loaded module handle.

        Returns:
            The immutable binding table.

        Raises:
            ModuleLoadError: If the module can not be loaded.
            InitError: If the module reports initialization failure.
            ContextError: If the module returns no base context.
            BindingError: If a required capability is missing or the
                resolver is already open.
        """
        if self.is_open:
            raise BindingError('Native module is already loaded')

        self._module = module if isinstance(module, ModuleHandle) else load_module(module)

        try:
            self._table = self._resolve()

        except BaseException:
            self.close()
            raise

        logger.info('Loaded native module %s', getattr(self._module, 'name', module))

        return self._table

    def close(self) -> None:
        """Shut down and release the module.

        Closing a resolver that is not open is a no-op.
        """
        module, shutdown = self._module, self._shutdown
        if module is None:
            return

        self._module = self._table = self._shutdown = None

        try:
            if shutdown is not None:
                shutdown()
        finally:
            module.release()
            logger.debug('Native module released')

    def _require(self, name: str) -> 'Callable[..., Any]':
        """Resolve a capability or fail naming the missing symbol."""
        assert self._module is not None  # noqa: S101

        function = self._module.symbol(name)
        if function is None:
            raise BindingError(f'Could not resolve function {name!r}', symbol=name)

        return function

    def _resolve(self) -> BindingTable:
        """Run the open protocol against the loaded module."""
        initialize = self._require('initialize')
        shutdown = self._require('shutdown')
        get_base_context = self._require('get_base_context')

        if not self._invoke(initialize, InitError, 'Could not initialize native module'):
            raise InitError('Could not initialize native module', symbol='initialize')
        self._shutdown = shutdown

        context = self._invoke(get_base_context, ContextError, 'Could not get base context')
        if not context:
            raise ContextError('Could not get base context', symbol='get_base_context')

        return BindingTable(
            context=context,
            initialize=initialize,
            shutdown=shutdown,
            get_base_context=get_base_context,
            **{name: self._require(name) for name in STEP_CAPABILITIES},
        )

    @staticmethod
    def _invoke(function: 'Callable[[], Any]', error: type[BindingError],
                message: str) -> 'Any':  # noqa: ANN401
        """Call a lifecycle capability, wrapping its failures."""
        try:
            return function()
        except Exception as base:
            raise error(f'{message}: {base!r}', symbol=getattr(function, '__name__', None)) from base

    def __enter__(self) -> 'Self':
        """Enter the runtime context."""
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        """Close the module on every exit path."""
        self.close()
