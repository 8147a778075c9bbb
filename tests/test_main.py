import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_relationship_registry
from app.main import app as fastapi_app

pytestmark = pytest.mark.anyio


@pytest.fixture
async def raising_client():
    def broken_registry():
        raise RuntimeError("registry exploded")

    fastapi_app.dependency_overrides[get_relationship_registry] = broken_registry
    transport = ASGITransport(app=fastapi_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    fastapi_app.dependency_overrides.pop(get_relationship_registry, None)


async def test_unhandled_errors_hide_the_traceback_outside_local(raising_client, caplog):
    raising_client.cookies.set("access_token", "anything")

    r = await raising_client.get("/friends")

    assert r.status_code == 500
    assert r.text == "Internal Server Error"
    assert "registry exploded" not in r.text
    assert "Unhandled exception for GET /friends" in caplog.text
