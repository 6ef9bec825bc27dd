"""Tests configurations and fixtures."""

from typing import TYPE_CHECKING, Any

import pytest

from stubrun.bindings import BindingResolver, PythonModule
from stubrun.runtime import StepExecutor

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

if TYPE_CHECKING:
    from stubrun.bindings import BindingTable


STUB_SOURCE = """
TESTS = [
    "01__Exposure__IExposure__Start",
    "02__Storage__IStorage__SaveTillDone",
    "03__Exposure__IExposure__Fail",
]

calls = []

def initialize():
    calls.append("initialize")
    return True

def shutdown():
    calls.append("shutdown")

def get_base_context():
    return "context"

def resolve_test_id(name):
    return TESTS.index(name) if name in TESTS else -1

def get_handler(class_name, context):
    return class_name

def can_execute(handler, test_id):
    return True

def execute_sync(handler, test_id, config):
    return 0 if TESTS[test_id].endswith("Fail") else 1

def execute_async_start(handler, test_id, config):
    return None

def poll_async_result():
    return True, 1

def release_handler(class_name, handler, context):
    return None
"""


class StubModule:
    """In-memory native module implementing the capability set.

    Result codes are configured per step name, either as a single code
    or as a list consumed one code per execution. Every capability call
    is recorded in `calls`.
    """

    def __init__(self, results: dict[str, Any] | None = None, *,
                 init_ok: bool = True,
                 context: Any = 'base-context',  # noqa: ANN401
                 ready_after: int | None = 0) -> None:
        self.results = dict(results or {})
        self.init_ok = init_ok
        self.context = context
        self.ready_after = ready_after
        self.executable = True
        self.calls: list[tuple[Any, ...]] = []
        self.pending: int | None = None
        self.polls = 0

    @property
    def names(self) -> list[str]:
        return list(self.results)

    def initialize(self) -> bool:
        self.calls.append(('initialize',))
        return self.init_ok

    def shutdown(self) -> None:
        self.calls.append(('shutdown',))

    def get_base_context(self) -> Any:  # noqa: ANN401
        return self.context

    def resolve_test_id(self, name: str) -> int:
        if name not in self.results:
            return -1
        return self.names.index(name)

    def get_handler(self, class_name: str, context: Any) -> str:  # noqa: ANN401
        self.calls.append(('get_handler', class_name))
        return f'handler:{class_name}'

    def can_execute(self, handler: str, test_id: int) -> bool:
        return self.executable

    def execute_sync(self, handler: str, test_id: int, config: str) -> int:
        self.calls.append(('execute_sync', self.names[test_id], config))
        return self._result(test_id)

    def execute_async_start(self, handler: str, test_id: int, config: str) -> None:
        self.calls.append(('execute_async_start', self.names[test_id], config))
        self.pending = test_id
        self.polls = 0

    def poll_async_result(self) -> tuple[bool, int]:
        self.polls += 1
        if self.pending is None or self.ready_after is None or self.polls <= self.ready_after:
            return False, 0
        return True, self._result(self.pending)

    def release_handler(self, class_name: str, handler: str, context: Any) -> None:  # noqa: ANN401
        self.calls.append(('release_handler', class_name))

    def _result(self, test_id: int) -> int:
        value = self.results[self.names[test_id]]
        if isinstance(value, list):
            return value.pop(0)
        return value

    def called(self, name: str) -> list[tuple[Any, ...]]:
        """Return the recorded calls of a capability."""
        return [call for call in self.calls if call[0] == name]


class FakeClock:
    """Monotonic clock advanced only by its own `sleep`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def stub() -> StubModule:
    """Provide a stub module knowing a short and a long-running test.

    Both tests pass by default; tests adjust `stub.results` to change
    the outcome of an execution.
    """
    return StubModule({
        '01__Exposure__IExposure__Start': 1,
        '02__Storage__IStorage__SaveTillDone': 1,
    })


@pytest.fixture
def table(stub: StubModule) -> 'Iterator[BindingTable]':
    """Provide the binding table of the stub module.

    The stub is shut down and released when the test ends.
    """
    with BindingResolver() as resolver:
        yield resolver.open(PythonModule(stub, name='stub'))


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock so timeouts expire without waiting."""
    return FakeClock()


@pytest.fixture
def executor(clock: FakeClock) -> StepExecutor:
    """Provide a tolerant executor driven by the fake clock."""
    return StepExecutor(poll_interval=1.0, repeat_pause=1.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def stub_path(tmp_path: 'Path') -> 'Path':
    """Provide a stub module written as a `.py` file.

    The module knows `01__Exposure__IExposure__Start` and
    `02__Storage__IStorage__SaveTillDone`, which pass, and
    `03__Exposure__IExposure__Fail`, which fails.
    """
    path = tmp_path / 'stub.py'
    path.write_text(STUB_SOURCE, encoding='utf-8')
    return path
