import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The application is built on asyncio (asyncio.to_thread, asyncio.Lock).
    return "asyncio"
