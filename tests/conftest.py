import httpx
import pytest

from pulse.core.config import get_settings
from tests.fakes import FakeAdapter, make_account


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fast_retry_config():
    """Adapter config keys that keep retries instantaneous."""
    return {"max_retries": 1, "retry_backoff_factor": 0}


@pytest.fixture
def mock_http():
    """
    Build an ``httpx.AsyncClient`` served by a handler.

    Returns the client and the list every request it sees is appended to.
    """
    def factory(handler):
        requests = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)), requests

    return factory


@pytest.fixture
def two_adapters():
    first = FakeAdapter("alpha", accounts=[make_account("a-1"), make_account("a-2")])
    second = FakeAdapter("beta", accounts=[make_account("b-1")])
    return first, second
