"""Main FastAPI server with WebSocket support."""
import asyncio
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from chipsync.config import config
from chipsync.game.betting import ActionResult
from chipsync.game.session import GameSession
from chipsync.protocol.handlers import MessageHandler
from chipsync.protocol.messages import (
    ConnectedMessage,
    RejectedMessage,
    state_message,
)
from chipsync.utils.logger import get_logger

logger = get_logger(__name__)


class GameServer:
    """Owns the session and every open connection.

    Messages are applied one at a time under a single lock, and each applied
    message is broadcast before the next one is looked at.
    """

    def __init__(self):
        self.session = GameSession()
        self.connections: dict[str, WebSocket] = {}  # connection_id -> websocket
        self.handler = MessageHandler(self)
        self._lock = asyncio.Lock()

    async def initialize(self):
        """Initialize server resources."""
        self.session = GameSession()
        self.connections = {}
        self._lock = asyncio.Lock()
        logger.info(f"Chip server initialized (port {config.port})")

    async def cleanup(self):
        """Close every open connection."""
        for connection_id, websocket in list(self.connections.items()):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing {connection_id}: {e}")
        self.connections.clear()
        logger.info("Chip server shutdown complete")

    def register_connection(self, websocket: WebSocket) -> str:
        """Register a WebSocket and assign it a connection id."""
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        return connection_id

    def unregister_connection(self, connection_id: str) -> None:
        """Forget a connection. Its player, if any, stays in the session."""
        self.connections.pop(connection_id, None)

    def state_message(self) -> dict:
        """Get the updateState message for the current session."""
        return state_message(self.session.get_state())

    async def greet(self, websocket: WebSocket) -> str:
        """Register a new connection and send it its id and the current state.

        Registration happens under the lock so no broadcast can reach the
        socket before its `connected` message.

        Returns:
            The assigned connection id.
        """
        async with self._lock:
            connection_id = self.register_connection(websocket)
            await self.send_to_connection(
                connection_id,
                ConnectedMessage(connection_id=connection_id).model_dump(by_alias=True),
            )
            await self.send_to_connection(connection_id, self.state_message())
        return connection_id

    async def dispatch(self, connection_id: str, raw_message: str) -> ActionResult:
        """Apply one inbound frame and broadcast if it changed the state.

        Args:
            connection_id: Connection the frame arrived on.
            raw_message: Raw JSON message string.

        Returns:
            Result of the message.
        """
        async with self._lock:
            result = self.handler.handle_message(connection_id, raw_message)
            if result.applied:
                await self.broadcast_state()
            elif config.report_rejections:
                await self.send_to_connection(
                    connection_id,
                    RejectedMessage(
                        message="Action rejected",
                        code=result.reason.value,
                    ).model_dump(by_alias=True),
                )
            return result

    async def send_to_connection(self, connection_id: str, message: dict) -> bool:
        """Send a message to a specific connection."""
        websocket = self.connections.get(connection_id)
        if websocket:
            try:
                await websocket.send_json(message)
                return True
            except Exception as e:
                logger.error(f"Failed to send to {connection_id}: {e}")
                self.unregister_connection(connection_id)
        return False

    async def broadcast_to_all(self, message: dict):
        """Broadcast a message to all connections."""
        for connection_id in list(self.connections.keys()):
            await self.send_to_connection(connection_id, message)

    async def broadcast_state(self):
        """Broadcast the full session state to all connections."""
        message = self.state_message()
        logger.debug(f"Broadcasting state to {len(self.connections)} connection(s)")
        await self.broadcast_to_all(message)


# Global server instance
server = GameServer()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await server.initialize()
    yield
    await server.cleanup()


# Create FastAPI app
app = FastAPI(
    title="Chip Tracker Server",
    description="Shared poker chip tracker with a WebSocket state feed",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware - allow local development
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",  # Allow any localhost port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/state")
async def get_state():
    """Current session snapshot."""
    return server.state_message()["state"]


# WebSocket endpoint
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for game communication."""
    await websocket.accept()

    connection_id = await server.greet(websocket)
    logger.info(f"New connection: {connection_id}")

    try:
        while True:
            data = await websocket.receive_text()
            await server.dispatch(connection_id, data)

    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected: {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error on {connection_id}: {e}")
    finally:
        server.unregister_connection(connection_id)


def run():
    """Run the server with uvicorn."""
    import uvicorn
    uvicorn.run(
        "chipsync.main:app",
        host=config.host,
        port=config.port,
    )


# Entry point
if __name__ == "__main__":
    run()
