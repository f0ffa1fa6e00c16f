import asyncio
import inspect
import os
from pathlib import Path
from collections.abc import Iterator

import pytest

from faultqueue.config import override_runtime_env
from faultqueue.db import init_db, reset_engine_for_tests

_MANAGED_ENV = (
    "DATABASE_URL",
    "FAULT_QUEUE_ENABLED",
    "FAULT_QUEUE_RUN_ON_START",
    "FAULTQUEUE_ENV_FILE",
)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None
    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None
    fixtureinfo = getattr(pyfuncitem, "_fixtureinfo", None)
    if fixtureinfo is None:
        return None
    kwargs = {name: pyfuncitem.funcargs[name] for name in fixtureinfo.argnames}
    asyncio.run(test_func(**kwargs))
    return True


@pytest.fixture(autouse=True)
def _test_environment(tmp_path: Path) -> Iterator[None]:
    previous = {name: os.environ.get(name) for name in _MANAGED_ENV}
    db_path = tmp_path / "data" / "faultqueue.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"
    os.environ["FAULT_QUEUE_ENABLED"] = "false"
    os.environ["FAULT_QUEUE_RUN_ON_START"] = "false"
    os.environ["FAULTQUEUE_ENV_FILE"] = str(tmp_path / "missing.env")

    override_runtime_env(None)
    reset_engine_for_tests()
    init_db()
    try:
        yield
    finally:
        reset_engine_for_tests()
        override_runtime_env(None)
        for name, value in previous.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value
