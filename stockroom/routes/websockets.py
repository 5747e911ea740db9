# stockroom/routes/websockets.py
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    manager = websocket.app.state.connection_manager
    connection = await manager.connect(websocket)
    if connection is None:
        return
    try:
        while True:
            data = await websocket.receive_text()
            manager.handle_client_message(connection, data)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    finally:
        # Any exit from the receive loop unregisters the client
        manager.disconnect(connection)
