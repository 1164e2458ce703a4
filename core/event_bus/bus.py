"""
Event Bus System - Real-Time Communication

Carries shell actions (slide navigation, recording, generation requests)
and pipeline notifications to:
- Slide viewer shells connected over WebSocket, per presentation
- In-process handlers (CLI output, tests)
"""

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union

from fastapi import WebSocket
from utils.logger import get_logger

logger = get_logger('event_bus')


class EventType(Enum):
    """Types of events"""
    # Shell actions
    NEXT_SLIDE = "next-slide"
    PREV_SLIDE = "prev-slide"
    GOTO_SLIDE = "goto-slide"
    START_PRESENTATION = "start-presentation"
    STOP_PRESENTATION = "stop-presentation"
    PAUSE_PRESENTATION = "pause-presentation"
    RESUME_PRESENTATION = "resume-presentation"
    START_RECORDING = "start-recording"
    STOP_RECORDING = "stop-recording"
    GENERATE_QUIZ = "generate-quiz"
    GENERATE_SUMMARY = "generate-summary"
    SHOW_NOTES = "show-notes"
    SHOW_KEYWORDS = "show-keywords"

    # Pipeline notifications
    SLIDE_CHANGED = "slide-changed"
    AUTO_ADVANCE = "auto-advance"
    INTERIM_TRANSCRIPT = "interim-transcript"
    TRANSCRIPT_SEGMENT = "transcript-segment"
    METRICS_UPDATED = "metrics-updated"
    QUIZ_GENERATED = "quiz-generated"
    SUMMARY_GENERATED = "summary-generated"
    INSUFFICIENT_CONTENT = "insufficient-content"
    RECOGNITION_UNAVAILABLE = "recognition-unavailable"
    STORAGE_ERROR = "storage-error"

    # System events
    CLIENT_CONNECTED = "client-connected"
    CLIENT_DISCONNECTED = "client-disconnected"
    STATUS_UPDATE = "status-update"
    ERROR = "error"


SHELL_ACTIONS = frozenset([
    EventType.NEXT_SLIDE,
    EventType.PREV_SLIDE,
    EventType.GOTO_SLIDE,
    EventType.START_PRESENTATION,
    EventType.STOP_PRESENTATION,
    EventType.PAUSE_PRESENTATION,
    EventType.RESUME_PRESENTATION,
    EventType.START_RECORDING,
    EventType.STOP_RECORDING,
    EventType.GENERATE_QUIZ,
    EventType.GENERATE_SUMMARY,
    EventType.SHOW_NOTES,
    EventType.SHOW_KEYWORDS,
])


@dataclass
class Event:
    """Event data structure"""
    type: EventType
    data: Dict[str, Any]
    presentation_id: Optional[str] = None
    session_id: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @property
    def is_shell_action(self) -> bool:
        return self.type in SHELL_ACTIONS

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON"""
        return {
            'type': self.type.value,
            'data': self.data,
            'presentation_id': self.presentation_id,
            'session_id': self.session_id,
            'timestamp': self.timestamp
        }

    def to_json(self) -> str:
        """Convert to JSON string"""
        return json.dumps(self.to_dict(), default=str)


Handler = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """
    Central event bus for real-time communication.

    Features:
    - Pub/Sub pattern
    - Presentation-aware routing
    - Broadcast to all or to one presentation's shells
    - Event filtering per presentation
    - In-process handlers
    """

    def __init__(self, history_size: int = 200):
        # Active connections: {presentation_id: Set[WebSocket]}
        self.connections: Dict[str, Set[WebSocket]] = {}

        # Connection metadata: {websocket: {presentation_id, client_type}}
        self.connection_metadata: Dict[WebSocket, Dict[str, str]] = {}

        # Event subscriptions: {presentation_id: Set[EventType]}
        self.subscriptions: Dict[str, Set[EventType]] = {}

        # In-process handlers: [(handler, event types or None for all)]
        self.handlers: List[tuple] = []

        self.history: Deque[Event] = deque(maxlen=history_size)

        logger.info("EventBus initialized")

    # ============================================
    # CONNECTION MANAGEMENT
    # ============================================

    async def connect(
        self,
        websocket: WebSocket,
        presentation_id: str,
        client_type: str = "viewer"
    ):
        """Register new WebSocket connection"""
        await websocket.accept()

        if presentation_id not in self.connections:
            self.connections[presentation_id] = set()

        self.connections[presentation_id].add(websocket)

        self.connection_metadata[websocket] = {
            'presentation_id': presentation_id,
            'client_type': client_type,
            'connected_at': datetime.now().isoformat()
        }

        # Subscribe to all by default
        if presentation_id not in self.subscriptions:
            self.subscriptions[presentation_id] = set(EventType)

        logger.info(f"Client connected: presentation={presentation_id}, client={client_type}")

        await self.send_to_connection(
            websocket,
            Event(
                type=EventType.CLIENT_CONNECTED,
                data={
                    'message': 'Connected to event bus',
                    'presentation_id': presentation_id,
                    'subscriptions': sorted(e.value for e in self.subscriptions[presentation_id])
                },
                presentation_id=presentation_id
            )
        )

        await self.broadcast_to_presentation(
            presentation_id,
            Event(
                type=EventType.STATUS_UPDATE,
                data={'clients_connected': len(self.connections[presentation_id])},
                presentation_id=presentation_id
            ),
            exclude={websocket}
        )

    def disconnect(self, websocket: WebSocket):
        """Remove WebSocket connection"""
        metadata = self.connection_metadata.get(websocket)

        if not metadata:
            return

        presentation_id = metadata['presentation_id']

        if presentation_id in self.connections:
            self.connections[presentation_id].discard(websocket)

            if not self.connections[presentation_id]:
                del self.connections[presentation_id]
                if presentation_id in self.subscriptions:
                    del self.subscriptions[presentation_id]

        del self.connection_metadata[websocket]

        logger.info(f"Client disconnected: presentation={presentation_id}")

    # ============================================
    # IN-PROCESS HANDLERS
    # ============================================

    def add_handler(self, handler: Handler, event_types: Optional[Set[EventType]] = None):
        """Call handler (sync or async) for every matching event"""
        self.handlers.append((handler, set(event_types) if event_types else None))

    def remove_handler(self, handler: Handler):
        self.handlers = [(h, types) for h, types in self.handlers if h is not handler]

    async def _dispatch_handlers(self, event: Event):
        for handler, event_types in list(self.handlers):
            if event_types is not None and event.type not in event_types:
                continue
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for {event.type.value}: {e}", exc_info=True)

    # ============================================
    # EVENT PUBLISHING
    # ============================================

    async def publish(self, event: Event):
        """
        Publish event to handlers and connected shells.

        Args:
            event: Event to publish
        """
        self.history.append(event)

        try:
            await self._dispatch_handlers(event)

            if event.presentation_id:
                await self.broadcast_to_presentation(event.presentation_id, event)
            else:
                await self.broadcast_to_all(event)

        except Exception as e:
            logger.error(f"Publish error: {e}")

    async def broadcast_to_all(self, event: Event):
        """Broadcast event to ALL connected clients"""
        dead_connections = set()

        for presentation_id, websockets in self.connections.items():
            for ws in websockets:
                try:
                    if event.type in self.subscriptions.get(presentation_id, set()):
                        await ws.send_text(event.to_json())

                except Exception as e:
                    logger.error(f"Send error: {e}")
                    dead_connections.add(ws)

        for ws in dead_connections:
            self.disconnect(ws)

    async def broadcast_to_presentation(
        self,
        presentation_id: str,
        event: Event,
        exclude: Optional[Set[WebSocket]] = None
    ):
        """
        Broadcast event to the shells of one presentation.

        Args:
            presentation_id: Target presentation
            event: Event to send
            exclude: WebSockets to exclude
        """
        if presentation_id not in self.connections:
            return

        exclude = exclude or set()
        dead_connections = set()

        for ws in list(self.connections[presentation_id]):
            if ws in exclude:
                continue

            try:
                if event.type in self.subscriptions.get(presentation_id, set()):
                    await ws.send_text(event.to_json())

            except Exception as e:
                logger.error(f"Send error: {e}")
                dead_connections.add(ws)

        for ws in dead_connections:
            self.disconnect(ws)

    async def send_to_connection(self, websocket: WebSocket, event: Event):
        """Send event to specific connection"""
        try:
            await websocket.send_text(event.to_json())
        except Exception as e:
            logger.error(f"Send error: {e}")
            self.disconnect(websocket)

    # ============================================
    # SUBSCRIPTION MANAGEMENT
    # ============================================

    def subscribe(self, presentation_id: str, event_types: Set[EventType]):
        """Subscribe to specific event types"""
        if presentation_id not in self.subscriptions:
            self.subscriptions[presentation_id] = set()

        self.subscriptions[presentation_id].update(event_types)

        logger.info(f"Presentation {presentation_id} subscribed to {len(event_types)} event types")

    def unsubscribe(self, presentation_id: str, event_types: Set[EventType]):
        """Unsubscribe from event types"""
        if presentation_id in self.subscriptions:
            self.subscriptions[presentation_id] -= event_types

    # ============================================
    # STATUS & MONITORING
    # ============================================

    def recent(self, event_type: Optional[EventType] = None) -> List[Event]:
        """Recently published events, oldest first"""
        if event_type is None:
            return list(self.history)
        return [event for event in self.history if event.type == event_type]

    def get_stats(self) -> Dict[str, Any]:
        """Get event bus statistics"""
        total_connections = sum(len(ws_set) for ws_set in self.connections.values())

        return {
            'total_presentations': len(self.connections),
            'total_connections': total_connections,
            'handlers': len(self.handlers),
            'presentations': {
                presentation_id: {
                    'connections': len(websockets),
                    'subscriptions': len(self.subscriptions.get(presentation_id, set()))
                }
                for presentation_id, websockets in self.connections.items()
            }
        }

    def is_presentation_connected(self, presentation_id: str) -> bool:
        """Check if a presentation has any connected shells"""
        return bool(self.connections.get(presentation_id))


# ============================================
# GLOBAL INSTANCE
# ============================================

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get global event bus instance"""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


# ============================================
# CONVENIENCE FUNCTIONS
# ============================================

async def emit_event(
    event_type: EventType,
    data: Dict[str, Any],
    presentation_id: Optional[str] = None,
    session_id: Optional[str] = None,
    bus: Optional[EventBus] = None
):
    """Convenience function to emit an event"""
    event = Event(
        type=event_type,
        data=data,
        presentation_id=presentation_id,
        session_id=session_id
    )

    await (bus or get_event_bus()).publish(event)
