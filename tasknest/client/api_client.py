"""
TaskNest HTTP 客户端：httpx.AsyncClient 封装

Cookie 由 httpx 的 cookie jar 自动保存与回传；所有非 2xx 响应统一转换为 ApiError，
message 直接取服务端返回的 message 字段，便于原样展示给用户。
"""

from typing import Any

import httpx
import structlog

from tasknest.tasks.schemas import TaskOut

log = structlog.get_logger()


class ApiError(Exception):
    """服务端返回错误或网络失败（status_code=0）"""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class TaskApiClient:
    """与 /api/auth、/api/tasks 交互的异步客户端"""

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        cookie_name: str = "token",
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.cookie_name = cookie_name

    async def __aenter__(self) -> "TaskApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def has_session_cookie(self) -> bool:
        return self._http.cookies.get(self.cookie_name) is not None

    def clear_session(self) -> None:
        self._http.cookies.clear()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.warning("请求发送失败", method=method, path=path, error=str(e))
            raise ApiError(0, f"Network error: {e}")

        if resp.is_error:
            try:
                message = resp.json().get("message") or resp.reason_phrase
            except ValueError:
                message = resp.reason_phrase or f"HTTP {resp.status_code}"
            raise ApiError(resp.status_code, message)

        return resp.json()

    # ── 认证 ──

    async def signup(self, name: str, email: str, password: str) -> dict:
        return await self._request(
            "POST", "/api/auth/signup", json={"name": name, "email": email, "password": password}
        )

    async def login(self, email: str, password: str) -> dict:
        return await self._request("POST", "/api/auth/login", json={"email": email, "password": password})

    async def logout(self) -> dict:
        return await self._request("POST", "/api/auth/logout")

    async def me(self) -> dict:
        return await self._request("GET", "/api/auth/me")

    # ── 任务 ──

    async def list_tasks(self, status: str | None = None, priority: str | None = None) -> list[TaskOut]:
        params = {k: v for k, v in (("status", status), ("priority", priority)) if v}
        data = await self._request("GET", "/api/tasks", params=params)
        return [TaskOut.model_validate(item) for item in data]

    async def get_task(self, task_id: str) -> TaskOut:
        return TaskOut.model_validate(await self._request("GET", f"/api/tasks/{task_id}"))

    async def create_task(self, data: dict) -> TaskOut:
        return TaskOut.model_validate(await self._request("POST", "/api/tasks", json=data))

    async def update_task(self, task_id: str, data: dict) -> TaskOut:
        return TaskOut.model_validate(await self._request("PUT", f"/api/tasks/{task_id}", json=data))

    async def delete_task(self, task_id: str) -> dict:
        return await self._request("DELETE", f"/api/tasks/{task_id}")
