import asyncio
import inspect
import pathlib
import sys

import pytest

TESTS_DIR = pathlib.Path(__file__).resolve().parent

# Package root for crypto_portfolio, tests dir for the shared price stubs.
for entry in (TESTS_DIR.parent, TESTS_DIR):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run ``async def`` tests on their own event loop."""

    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None

    wanted = pyfuncitem._fixtureinfo.argnames
    coroutine = pyfuncitem.obj(**{name: pyfuncitem.funcargs[name] for name in wanted})
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(coroutine)
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True
