"""
실시간 데이터용 WebSocket 클라이언트 (선택 기능)

상태 머신:
    disconnected --connect()--> connecting --open--> connected
    connected --close/error--> disconnected (+ 재연결 예약)

- 예기치 않은 종료 시 고정 지연(기본 3초) 후 최대 5회까지 재연결을 시도합니다.
  연결에 성공하면 시도 횟수는 0으로 초기화됩니다.
- 수신 메시지는 JSON `type` 필드와 같은 토픽의 구독자, 그리고 와일드카드(`*`)
  구독자에게 등록 순서대로 전달됩니다.
- 파싱할 수 없는 메시지는 로그만 남기고 버립니다.
"""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import aiohttp
import structlog

from crypto_dashboard.common.exceptions import MalformedMessageError, TransportError

logger = structlog.get_logger(__name__)

WILDCARD_TOPIC = "*"
DEFAULT_URL = "wss://ws.tokenmetrics.com"

MessageCallback = Callable[[Any], Any]
ConnectFactory = Callable[[str], Awaitable[Any]]


class ConnectionState(str, Enum):
    """WebSocket 연결 상태"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Subscription:
    """`subscribe()`가 반환하는 구독 핸들"""

    def __init__(self, client: "WebSocketClient", topic: str, callback: MessageCallback):
        self.client = client
        self.topic = topic
        self.callback = callback

    def unsubscribe(self) -> None:
        self.client.unsubscribe(self.topic, self.callback)

    def __repr__(self) -> str:
        return f"Subscription(topic='{self.topic}')"


class WebSocketClient:
    """
    재연결 정책과 토픽 기반 구독자 디스패치를 가진 WebSocket 클라이언트

    `connect_factory`는 URL을 받아 열린 연결을 반환하는 코루틴 함수입니다.
    반환된 연결은 aiohttp `ClientWebSocketResponse`처럼 `async for`로 메시지
    (`type`, `data` 속성)를 내주고 `send_str()`, `close()`를 지원해야 합니다.
    지정하지 않으면 aiohttp `ClientSession.ws_connect`를 사용합니다.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 3.0,
        connect_factory: ConnectFactory | None = None,
    ):
        self.url = url or DEFAULT_URL
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay

        self._connect_factory = connect_factory or self._aiohttp_connect
        self._session: aiohttp.ClientSession | None = None
        self._ws: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._reconnect_task: asyncio.Task | None = None
        self._reader_task: asyncio.Task | None = None
        self._closing = False
        self._listeners: dict[str, list[MessageCallback]] = {}

    # === 상태 조회 ===

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def has_pending_reconnect(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def is_connected(self) -> bool:
        """연결 여부"""
        return (
            self._state is ConnectionState.CONNECTED
            and self._ws is not None
            and not getattr(self._ws, "closed", False)
        )

    # === 연결 관리 ===

    async def _aiohttp_connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return await self._session.ws_connect(url, heartbeat=30.0)

    async def connect(self) -> None:
        """
        연결 수립

        Raises:
            TransportError: 연결이 열리기 전에 실패한 경우
        """
        if self.is_connected():
            logger.debug("websocket_already_connected", url=self.url)
            return

        self._closing = False
        await self._open()

    async def _open(self) -> None:
        self._state = ConnectionState.CONNECTING
        try:
            ws = await self._connect_factory(self.url)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            self._state = ConnectionState.DISCONNECTED
            logger.error("websocket_connect_failed", url=self.url, error=str(e))
            raise TransportError(
                f"WebSocket connection failed: {e}", api_name="websocket"
            ) from e

        if self._closing:
            # disconnect() was called while the handshake was in flight
            await ws.close()
            self._state = ConnectionState.DISCONNECTED
            return

        self._ws = ws
        self._state = ConnectionState.CONNECTED
        self._reconnect_attempts = 0
        self._reader_task = asyncio.create_task(
            self._read_loop(ws), name=f"websocket_reader_{id(self)}"
        )
        logger.info("websocket_connected", url=self.url)

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for message in ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    await self._handle_raw(message.data)
                elif message.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
        except (aiohttp.ClientError, OSError) as e:
            logger.warning("websocket_error", url=self.url, error=str(e))
        finally:
            if ws is self._ws:
                if not getattr(ws, "closed", False):
                    await ws.close()
                self._on_connection_lost()

    def _on_connection_lost(self) -> None:
        self._ws = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("websocket_disconnected", url=self.url)

        if not self._closing:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_attempts >= self.max_reconnect_attempts:
            logger.error(
                "websocket_max_reconnect_attempts_reached",
                attempts=self._reconnect_attempts,
            )
            self._reconnect_task = None
            return

        self._reconnect_attempts += 1
        logger.info(
            "websocket_reconnect_scheduled",
            attempt=self._reconnect_attempts,
            max_attempts=self.max_reconnect_attempts,
            delay=self.reconnect_delay,
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after_delay(), name=f"websocket_reconnect_{id(self)}"
        )

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        if self._closing:
            return

        logger.info(
            "websocket_reconnecting",
            attempt=self._reconnect_attempts,
            max_attempts=self.max_reconnect_attempts,
        )
        try:
            await self._open()
        except TransportError:
            self._schedule_reconnect()

    async def disconnect(self) -> None:
        """연결 종료, 구독 해제, 대기 중인 재연결 취소"""
        self._closing = True

        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

        # a subscriber may call disconnect() from inside the reader task
        reader = self._reader_task
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
        self._reader_task = None

        if self._session is not None:
            await self._session.close()
            self._session = None

        self._state = ConnectionState.DISCONNECTED
        self._listeners.clear()
        logger.info("websocket_closed", url=self.url)

    # === 메시지 처리 ===

    async def _handle_raw(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            error = MalformedMessageError(
                f"Error parsing WebSocket message: {e}", raw_preview=str(raw)[:200]
            )
            logger.warning("websocket_message_malformed", **error.details, error=str(e))
            return

        await self.dispatch(data)

    async def dispatch(self, data: Any) -> None:
        """토픽 구독자와 와일드카드 구독자에게 메시지 전달"""
        topic = data.get("type") if isinstance(data, dict) else None

        callbacks: list[MessageCallback] = []
        # non-string types only reach wildcard subscribers
        if isinstance(topic, str) and topic != WILDCARD_TOPIC:
            callbacks.extend(self._listeners.get(topic, []))
        callbacks.extend(self._listeners.get(WILDCARD_TOPIC, []))

        for callback in callbacks:
            try:
                result = callback(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("websocket_callback_failed", topic=topic)

    def subscribe(self, topic: str, callback: MessageCallback) -> Subscription:
        """토픽 구독 등록. 해제용 핸들 반환."""
        self._listeners.setdefault(topic, []).append(callback)
        return Subscription(self, topic, callback)

    def unsubscribe(self, topic: str, callback: MessageCallback) -> None:
        """특정 콜백 구독 해제 (없으면 무시)"""
        callbacks = self._listeners.get(topic)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    async def send(self, data: Any) -> bool:
        """연결된 경우에만 JSON으로 전송. 미연결 시 경고 후 버림."""
        if not self.is_connected():
            logger.warning("websocket_not_connected", action="send_dropped")
            return False

        await self._ws.send_str(json.dumps(data))
        return True
