import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from config import Settings
from src.api.main import create_app
from src.executor import RequirementType
from src.mcp import ToolRegistry
from tests.fakes import FailingTool, RecordingTool, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        RecordingTool("warehouse_sql", insights=["Revenue fell 12% in Q3"]),
        capabilities=[RequirementType.DATABASE_QUERY],
    )
    registry.register(
        RecordingTool("trend_analyzer", insights=["Decline concentrated in EMEA"]),
        capabilities=[RequirementType.TOOL_EXECUTION],
    )
    registry.register(FailingTool("broken_tool"))
    return registry


@pytest.fixture
def app_factory(registry):
    def _factory(**executor_overrides):
        return create_app(make_settings(**executor_overrides), registry=registry)

    return _factory


@pytest.fixture
async def client(app_factory):
    app = app_factory()
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            http_client.app = app  # type: ignore[attr-defined]
            yield http_client
