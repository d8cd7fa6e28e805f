"""
客户端会话状态：只有"已登录 / 未登录"两态

启动时 restore() 检查一次：本地有会话 Cookie 时调用 /api/auth/me 验证，
验证失败或主动注销都会清空会话。
"""

import structlog

from tasknest.client.api_client import ApiError, TaskApiClient

log = structlog.get_logger()


class AuthSession:
    def __init__(self, api: TaskApiClient) -> None:
        self.api = api
        self.user: dict | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self) -> bool:
        """启动时恢复会话"""
        if not self.api.has_session_cookie:
            self.user = None
            return False
        try:
            self.user = await self.api.me()
        except ApiError as e:
            log.info("会话已失效", status_code=e.status_code, message=e.message)
            self._clear()
        return self.is_authenticated

    async def login(self, email: str, password: str) -> dict:
        """失败时抛 ApiError，会话状态不变"""
        data = await self.api.login(email, password)
        self.user = {"id": data["id"], "name": data["name"], "email": data["email"]}
        return self.user

    async def signup(self, name: str, email: str, password: str) -> dict:
        data = await self.api.signup(name, email, password)
        self.user = {"id": data["id"], "name": data["name"], "email": data["email"]}
        return self.user

    async def logout(self) -> None:
        """服务端注销失败也清空本地会话"""
        try:
            await self.api.logout()
        except ApiError as e:
            log.warning("注销请求失败", status_code=e.status_code, message=e.message)
        finally:
            self._clear()

    def _clear(self) -> None:
        self.user = None
        self.api.clear_session()
