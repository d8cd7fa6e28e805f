"""
控制台任务看板：通过 HTTP 调用 TaskNest API，本地维护任务列表镜像

运行方式：
    python scripts/task_console.py [--base-url http://127.0.0.1:5000]

支持命令：
    /signup 名字 邮箱 密码       注册并登录
    /login 邮箱 密码             登录
    /logout                      注销
    /list                        重新拉取任务列表
    /add 标题 [| 描述 [| 优先级 [| 截止日期]]]
    /edit 序号 字段=值 [字段=值 ...]
    /done 序号                   切换完成状态
    /rm 序号                     删除
    /status all|completed|incomplete
    /priority all|low|medium|high
    /search 关键字                空关键字清除搜索
    /stats                       统计
    /quit                        退出
"""

import argparse
import asyncio
import shlex
import sys
from pathlib import Path

from prompt_toolkit import PromptSession

# 确保项目根目录在 sys.path 中
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from tasknest.client import ApiError, AuthSession, TaskApiClient, TaskBoard, is_overdue
from tasknest.tasks.schemas import TaskOut

_EDITABLE_FIELDS = ("title", "description", "status", "priority", "deadline")


def _render(board: TaskBoard) -> None:
    visible = board.visible
    f = board.filters
    print(f"\033[90m  ── status={f.status} | priority={f.priority} | search={f.search!r} "
          f"| {len(visible)}/{len(board.tasks)} ──\033[0m")
    if not visible:
        print("  (没有任务)")
    for idx, task in enumerate(visible, start=1):
        _render_task(idx, task)
    if board.error:
        print(f"\033[91m  ✗ {board.error}\033[0m")


def _render_task(idx: int, task: TaskOut) -> None:
    mark = "x" if task.status == "completed" else " "
    line = f"  {idx:>2}. [{mark}] {task.title}  ({task.priority.value})"
    if task.deadline:
        line += f"  截止 {task.deadline:%Y-%m-%d}"
    if is_overdue(task):
        line = f"\033[91m{line}  已逾期\033[0m"
    print(line)
    if task.description:
        print(f"\033[90m        {task.description}\033[0m")


def _pick(board: TaskBoard, arg: str) -> str | None:
    """按可见列表序号取任务 id"""
    try:
        return str(board.visible[int(arg) - 1].id)
    except (ValueError, IndexError):
        print("  序号无效")
        return None


def _parse_add(text: str) -> dict:
    parts = [p.strip() for p in text.split("|")]
    data = {"title": parts[0]}
    for key, value in zip(("description", "priority", "deadline"), parts[1:]):
        if value:
            data[key] = value
    return data


def _parse_assignments(args: list[str]) -> dict:
    data = {}
    for item in args:
        key, sep, value = item.partition("=")
        if not sep or key not in _EDITABLE_FIELDS:
            raise ValueError(f"无法识别的字段: {item}")
        data[key] = value
    return data


async def handle(cmd: str, args: list[str], rest: str, session: AuthSession, board: TaskBoard) -> bool:
    """执行一条命令，返回 False 表示退出"""
    if cmd == "/quit":
        return False

    if cmd == "/signup" and len(args) == 3:
        await session.signup(*args)
        await board.refresh()
    elif cmd == "/login" and len(args) == 2:
        await session.login(*args)
        await board.refresh()
    elif cmd == "/logout":
        await session.logout()
        board.tasks = []
        print("  已注销")
        return True
    elif not session.is_authenticated:
        print("  请先 /login 或 /signup")
        return True
    elif cmd == "/list":
        await board.refresh()
    elif cmd == "/add" and rest:
        await board.create(_parse_add(rest))
    elif cmd == "/edit" and len(args) >= 2:
        task_id = _pick(board, args[0])
        if task_id:
            await board.update(task_id, _parse_assignments(args[1:]))
    elif cmd == "/done" and args:
        task_id = _pick(board, args[0])
        if task_id:
            await board.toggle_status(task_id)
    elif cmd == "/rm" and args:
        task_id = _pick(board, args[0])
        if task_id:
            await board.delete(task_id)
    elif cmd == "/status" and args:
        board.set_filters(status=args[0])
    elif cmd == "/priority" and args:
        board.set_filters(priority=args[0])
    elif cmd == "/search":
        board.set_filters(search=rest)
    elif cmd == "/stats":
        s = board.stats()
        print(f"  总数 {s['total']} | 已完成 {s['completed']} | 未完成 {s['incomplete']}")
        return True
    else:
        print("  未知命令，输入 /quit 退出")
        return True

    _render(board)
    return True


async def main(base_url: str) -> None:
    """交互式看板主循环"""
    print("=" * 60)
    print("  TaskNest 控制台")
    print(f"  服务地址: {base_url}")
    print("=" * 60)

    async with TaskApiClient(base_url) as api:
        session = AuthSession(api)
        board = TaskBoard(api)
        pt_session = PromptSession()

        if await session.restore():
            await board.refresh()
            _render(board)

        while True:
            try:
                line = (await pt_session.prompt_async("tasks> ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\n再见！")
                break
            if not line:
                continue

            cmd, _, rest = line.partition(" ")
            try:
                args = shlex.split(rest)
                if not await handle(cmd, args, rest.strip(), session, board):
                    print("再见！")
                    break
            except ApiError as e:
                print(f"\033[91m  ✗ {e.message}\033[0m")
            except ValueError as e:
                print(f"\033[93m  {e}\033[0m")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TaskNest 控制台")
    parser.add_argument("--base-url", default="http://127.0.0.1:5000")
    asyncio.run(main(parser.parse_args().base_url))
