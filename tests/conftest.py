"""全局 pytest 配置 -- 临时 SQLite 数据库 + 内存 Redis 替身 + httpx AsyncClient"""

import itertools
import os
import tempfile
from collections.abc import AsyncGenerator

# 必须在导入 tasknest 之前设置，engine / settings 在模块导入时初始化
_TMP_DIR = tempfile.mkdtemp(prefix="tasknest-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["ENV"] = "test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tasknest.cache.redis_client import get_redis  # noqa: E402
from tasknest.db.engine import engine  # noqa: E402
from tasknest.db.models import Base  # noqa: E402
from tasknest.main import create_app  # noqa: E402

PASSWORD = "secret123"


class FakeRedis:
    """只实现 Token 黑名单用到的命令"""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self.store)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


@pytest_asyncio.fixture
async def db_schema() -> AsyncGenerator[None, None]:
    """每个测试重建表结构"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # 连接池里的连接绑定在当前事件循环上，测试结束即释放
    await engine.dispose()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def app(db_schema, fake_redis: FakeRedis):
    """创建测试用 FastAPI app（不触发 lifespan，Redis 用替身）"""
    application = create_app()
    application.dependency_overrides[get_redis] = lambda: fake_redis
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_client(app):
    """每个客户端独立的 cookie jar，用于模拟多个用户 / 多台设备"""
    clients: list[AsyncClient] = []

    async def _make() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture
async def client(make_client) -> AsyncClient:
    """未登录的 httpx AsyncClient"""
    return await make_client()


@pytest_asyncio.fixture
async def make_user(make_client):
    """注册一个新用户，返回 (已登录的 client, 用户信息)"""
    counter = itertools.count(1)

    async def _make(name: str = "Alice") -> tuple[AsyncClient, dict]:
        ac = await make_client()
        n = next(counter)
        resp = await ac.post(
            "/api/auth/signup",
            json={"name": name, "email": f"user{n}@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 201, resp.text
        return ac, resp.json()

    return _make
