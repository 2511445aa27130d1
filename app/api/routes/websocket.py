import logging
import json
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.api.websocket_manager import websocket_manager
from app.utils.helpers import format_timestamp

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws/changes")
async def changes_websocket_endpoint(websocket: WebSocket):
    """
    数据变更推送
    - 客户端收到 change 消息后自行重新拉取数据
    - 支持 heartbeat 心跳
    """
    await websocket.accept()
    client_id = await websocket_manager.connect(websocket)

    await websocket_manager.send_message(client_id, {
        "type": "connected",
        "client_id": client_id,
        "timestamp": format_timestamp()
    })

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"客户端{client_id}消息JSON解析失败: {data}")
                continue
            if not isinstance(message, dict):
                continue

            if message.get("type") == "heartbeat":
                await websocket_manager.send_message(client_id, {
                    "type": "heartbeat_ack",
                    "timestamp": format_timestamp()
                })
            else:
                await websocket_manager.send_message(client_id, {
                    "type": "error",
                    "message": f"未知的消息类型: {message.get('type')}",
                    "timestamp": format_timestamp()
                })
    except WebSocketDisconnect:
        logger.info(f"客户端{client_id} WebSocket连接正常断开")
    finally:
        websocket_manager.disconnect(client_id)
