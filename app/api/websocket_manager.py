import itertools
import logging
import json
from typing import Dict, List, Optional
from fastapi import WebSocket

from app.services.change_notifier import ChangeEvent, ChangeNotifier, change_notifier

logger = logging.getLogger(__name__)


class WebSocketManager:
    """WebSocket连接管理器，把数据变更事件推送给所有已连接的客户端"""

    def __init__(self, notifier: ChangeNotifier = None):
        # 存储活跃连接: client_id -> WebSocket
        self.active_connections: Dict[int, WebSocket] = {}
        self._client_ids = itertools.count(1)
        self.notifier = notifier or change_notifier
        self._subscription: Optional[int] = None
        logger.info("WebSocket管理器初始化完成")

    async def connect(self, websocket: WebSocket) -> int:
        """
        保存WebSocket连接到管理器，第一个连接建立时订阅变更通知

        Args:
            websocket: 已经 accept 的WebSocket连接

        Returns:
            int: 客户端ID
        """
        client_id = next(self._client_ids)
        self.active_connections[client_id] = websocket
        if self._subscription is None:
            self._subscription = self.notifier.subscribe(self.handle_change)
        logger.info(f"WebSocket连接已建立: 客户端{client_id}")
        return client_id

    def disconnect(self, client_id: int):
        """
        断开WebSocket连接，最后一个连接断开时取消订阅

        Args:
            client_id: 客户端ID
        """
        if client_id in self.active_connections:
            del self.active_connections[client_id]
            logger.info(f"WebSocket连接已断开: 客户端{client_id}")
        if not self.active_connections and self._subscription is not None:
            self.notifier.unsubscribe(self._subscription)
            self._subscription = None

    async def handle_change(self, event: ChangeEvent):
        """变更通知回调"""
        await self.broadcast(event.to_dict())

    async def send_message(self, client_id: int, message: Dict):
        """
        向指定客户端发送消息

        Args:
            client_id: 客户端ID
            message: 消息数据
        """
        websocket = self.active_connections.get(client_id)
        if websocket:
            try:
                await websocket.send_text(json.dumps(message))
                logger.debug(f"消息已发送到客户端{client_id}: {message.get('type', 'unknown')}")
            except Exception as e:
                logger.error(f"发送消息到客户端{client_id}失败: {e}")
                self.disconnect(client_id)
        else:
            logger.warning(f"尝试向不存在的连接发送消息: 客户端{client_id}")

    async def broadcast(self, message: Dict, exclude_clients: List[int] = None):
        """
        广播消息到所有连接

        Args:
            message: 消息数据
            exclude_clients: 要排除的客户端ID列表
        """
        if exclude_clients is None:
            exclude_clients = []

        disconnected = []
        for client_id, websocket in list(self.active_connections.items()):
            if client_id in exclude_clients:
                continue

            try:
                await websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.error(f"广播消息到客户端{client_id}失败: {e}")
                disconnected.append(client_id)

        # 清理断开连接的客户端
        for client_id in disconnected:
            self.disconnect(client_id)

    def get_connection_count(self) -> int:
        """
        获取连接数量

        Returns:
            int: 连接数量
        """
        return len(self.active_connections)


# 创建全局WebSocket管理器实例
websocket_manager = WebSocketManager()
