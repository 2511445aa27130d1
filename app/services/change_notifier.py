import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Any, Optional

from app.utils.helpers import now_utc, format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """数据变更事件"""
    table: str                      # "lessons" / "review_schedule" / "waiting_lessons"
    action: str                     # "insert" / "update" / "delete"
    record_id: Optional[int] = None
    occurred_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "change",
            "table": self.table,
            "action": self.action,
            "record_id": self.record_id,
            "timestamp": format_timestamp(self.occurred_at),
        }


class ChangeNotifier:
    """
    变更通知中心
    订阅者只用它来刷新缓存/重新拉取数据，业务正确性不依赖通知。
    回调可以是普通函数或协程函数，单个订阅者出错不影响其他订阅者和发布方。
    """

    def __init__(self):
        self._subscribers: Dict[int, Callable[[ChangeEvent], Any]] = {}
        self._token_counter = itertools.count(1)
        self._pending_tasks = set()
        logger.info("变更通知中心初始化完成")

    def subscribe(self, callback: Callable[[ChangeEvent], Any]) -> int:
        """
        订阅变更事件

        Returns:
            int: 订阅令牌，用于取消订阅
        """
        token = next(self._token_counter)
        self._subscribers[token] = callback
        logger.debug(f"新增变更订阅: {token}")
        return token

    def unsubscribe(self, token: int) -> bool:
        """取消订阅"""
        removed = self._subscribers.pop(token, None) is not None
        if removed:
            logger.debug(f"取消变更订阅: {token}")
        return removed

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent):
        """向所有订阅者发布事件"""
        for token, callback in list(self._subscribers.items()):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    self._schedule(result)
            except Exception as e:
                logger.error(f"变更订阅者 {token} 处理事件失败: {e}")

    def notify(self, table: str, action: str, record_id: int = None):
        """发布事件的快捷方式"""
        self.publish(ChangeEvent(table=table, action=action, record_id=record_id))

    def _schedule(self, awaitable):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 没有运行中的事件循环（脚本或同步测试中），直接执行完
            asyncio.run(self._run_safely(awaitable))
            return
        task = loop.create_task(self._run_safely(awaitable))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def _run_safely(self, awaitable):
        try:
            await awaitable
        except Exception as e:
            logger.error(f"异步变更订阅者处理事件失败: {e}")


# 创建全局变更通知实例
change_notifier = ChangeNotifier()
