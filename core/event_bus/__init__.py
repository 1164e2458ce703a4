"""
Event Bus System

Provides real-time communication between the pipeline and slide viewer
shells via WebSocket.
"""

from core.event_bus.bus import (
    SHELL_ACTIONS,
    EventBus,
    Event,
    EventType,
    get_event_bus,
    emit_event
)

__all__ = [
    'SHELL_ACTIONS',
    'EventBus',
    'Event',
    'EventType',
    'get_event_bus',
    'emit_event'
]
