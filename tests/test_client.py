"""客户端镜像测试

测试内容：
1. filter_tasks 纯函数：状态 → 优先级 → 关键字 组合过滤
2. TaskBoard 写操作仅在服务端确认后生效，失败不改本地状态
3. 同一任务并发编辑只接受最后发出请求的响应
4. AuthSession 启动恢复 / 注销
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport

from tasknest.client import ApiError, AuthSession, TaskApiClient, TaskBoard, TaskFilters, filter_tasks, is_overdue
from tasknest.tasks.schemas import TaskOut

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def make_task(title: str, *, description=None, status="incomplete", priority="medium", deadline=None, task_id=None):
    return TaskOut(
        id=task_id or uuid.uuid4(),
        title=title,
        description=description,
        status=status,
        priority=priority,
        deadline=deadline,
        user_id=uuid.uuid4(),
        created_at=NOW,
        updated_at=NOW,
    )


SAMPLE = [
    make_task("Buy milk", description="2 litres", priority="low"),
    make_task("Write report", description="Quarterly NUMBERS", status="completed", priority="high"),
    make_task("Call plumber", priority="high"),
    make_task("Pay rent", status="completed", priority="medium"),
]


class TestFilterTasks:
    def test_no_filters_returns_everything(self):
        assert filter_tasks(SAMPLE, TaskFilters()) == SAMPLE

    def test_status_filter(self):
        titles = [t.title for t in filter_tasks(SAMPLE, TaskFilters(status="completed"))]
        assert titles == ["Write report", "Pay rent"]

    def test_priority_filter(self):
        titles = [t.title for t in filter_tasks(SAMPLE, TaskFilters(priority="high"))]
        assert titles == ["Write report", "Call plumber"]

    def test_search_is_case_insensitive_over_title_and_description(self):
        assert [t.title for t in filter_tasks(SAMPLE, TaskFilters(search="MILK"))] == ["Buy milk"]
        assert [t.title for t in filter_tasks(SAMPLE, TaskFilters(search="numbers"))] == ["Write report"]

    def test_filters_compose(self):
        filters = TaskFilters(status="incomplete", priority="high", search="plumb")
        assert [t.title for t in filter_tasks(SAMPLE, filters)] == ["Call plumber"]

    def test_does_not_mutate_source(self):
        source = list(SAMPLE)
        filter_tasks(source, TaskFilters(status="completed"))
        assert source == SAMPLE


class TestIsOverdue:
    def test_incomplete_past_deadline(self):
        task = make_task("late", deadline=NOW - timedelta(days=1))
        assert is_overdue(task, now=NOW)

    def test_completed_is_never_overdue(self):
        task = make_task("done", status="completed", deadline=NOW - timedelta(days=1))
        assert not is_overdue(task, now=NOW)

    def test_future_or_missing_deadline(self):
        assert not is_overdue(make_task("soon", deadline=NOW + timedelta(days=1)), now=NOW)
        assert not is_overdue(make_task("whenever"), now=NOW)


class GatedApi:
    """update_task 挂起直到测试放行，用于模拟响应乱序到达"""

    def __init__(self) -> None:
        self.pending: list[tuple[asyncio.Event, str, dict]] = []

    async def update_task(self, task_id: str, data: dict) -> TaskOut:
        gate = asyncio.Event()
        self.pending.append((gate, task_id, data))
        await gate.wait()
        return make_task(data["title"], task_id=uuid.UUID(task_id))


class FlakyApi:
    """delete_task 挂起后失败，update_task 立即失败"""

    def __init__(self) -> None:
        self.delete_gate = asyncio.Event()

    async def delete_task(self, task_id: str) -> None:
        await self.delete_gate.wait()
        raise ApiError(404, "Task not found")

    async def update_task(self, task_id: str, data: dict) -> TaskOut:
        raise ApiError(400, "title: String should have at least 1 character")


class TestTaskBoardLocalState:
    def test_visible_recomputed_from_state(self):
        board = TaskBoard(api=None)
        board.tasks = list(SAMPLE)
        assert len(board.visible) == 4

        board.set_filters(status="completed")
        assert [t.title for t in board.visible] == ["Write report", "Pay rent"]

        board.set_filters(search="rent")
        assert [t.title for t in board.visible] == ["Pay rent"]

        board.tasks = board.tasks[:2]
        assert board.visible == []

    def test_invalid_filter_rejected(self):
        board = TaskBoard(api=None)
        with pytest.raises(ValueError):
            board.set_filters(priority="urgent")
        assert board.filters == TaskFilters()

    def test_stats(self):
        board = TaskBoard(api=None)
        board.tasks = list(SAMPLE)
        assert board.stats() == {"total": 4, "completed": 2, "incomplete": 2}

    async def test_stale_update_response_is_discarded(self):
        api = GatedApi()
        board = TaskBoard(api)
        original = make_task("original")
        board.tasks = [original]
        task_id = str(original.id)

        first = asyncio.create_task(board.update(task_id, {"title": "first edit"}))
        await asyncio.sleep(0)
        second = asyncio.create_task(board.update(task_id, {"title": "second edit"}))
        await asyncio.sleep(0)
        assert len(api.pending) == 2

        # 后发的请求先返回
        api.pending[1][0].set()
        assert (await second).title == "second edit"
        api.pending[0][0].set()
        assert await first is None

        assert [t.title for t in board.tasks] == ["second edit"]


    async def test_stale_delete_failure_keeps_newer_error(self):
        api = FlakyApi()
        board = TaskBoard(api)
        task = make_task("contested")
        board.tasks = [task]
        task_id = str(task.id)

        deleting = asyncio.create_task(board.delete(task_id))
        await asyncio.sleep(0)
        assert await board.update(task_id, {"title": ""}) is None
        assert board.error == "title: String should have at least 1 character"

        api.delete_gate.set()
        assert await deleting is False
        assert board.error == "title: String should have at least 1 character"
        assert board.tasks == [task]


@pytest_asyncio.fixture
async def api(app):
    async with TaskApiClient("http://test", transport=ASGITransport(app=app)) as client:
        yield client


class TestTaskBoardAgainstServer:
    async def test_full_flow(self, api: TaskApiClient):
        session = AuthSession(api)
        await session.signup("Alice", "alice@example.com", "secret123")
        assert session.is_authenticated

        board = TaskBoard(api)
        assert await board.refresh()
        assert board.tasks == []

        created = await board.create({"title": "Buy milk"})
        assert created is not None
        await board.create({"title": "Walk dog", "priority": "high"})
        assert [t.title for t in board.tasks] == ["Walk dog", "Buy milk"]

        toggled = await board.toggle_status(str(created.id))
        assert toggled.status == "completed"
        assert board.find(str(created.id)).status == "completed"

        board.set_filters(status="completed")
        assert [t.title for t in board.visible] == ["Buy milk"]

        assert await board.delete(str(created.id))
        assert board.visible == []
        assert board.stats() == {"total": 1, "completed": 0, "incomplete": 1}

    async def test_failed_write_leaves_state_unchanged(self, api: TaskApiClient):
        session = AuthSession(api)
        await session.signup("Bob", "bob@example.com", "secret123")
        board = TaskBoard(api)
        await board.create({"title": "Keep me"})
        before = list(board.tasks)

        assert await board.create({"description": "no title"}) is None
        assert board.error == "Please provide a task title"
        assert board.tasks == before

        assert not await board.delete(str(uuid.uuid4()))
        assert board.error == "Task not found"
        assert board.tasks == before

    async def test_session_restore_and_logout(self, api: TaskApiClient):
        session = AuthSession(api)
        assert not await session.restore()

        await session.signup("Carol", "carol@example.com", "secret123")
        fresh = AuthSession(api)
        assert await fresh.restore()
        assert fresh.user["email"] == "carol@example.com"

        await fresh.logout()
        assert not fresh.is_authenticated
        assert not api.has_session_cookie

        with pytest.raises(ApiError) as exc_info:
            await api.me()
        assert exc_info.value.status_code == 401

    async def test_login_failure_surfaces_server_message(self, api: TaskApiClient):
        session = AuthSession(api)
        with pytest.raises(ApiError) as exc_info:
            await session.login("nobody@example.com", "whatever")
        assert exc_info.value.message == "Invalid email or password"
        assert not session.is_authenticated
