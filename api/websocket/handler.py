"""
WebSocket Handler - Slide Viewer Command Bus

The viewer shell connects per presentation, receives shell actions and
notifications, and reports back manual navigation, deck size and (when the
browser does the recognition) utterances.
"""

import json
import time
from datetime import datetime

from fastapi import WebSocket, WebSocketDisconnect

from api.dependencies import get_presentation_service
from core.errors import PresenterError
from core.event_bus import get_event_bus, Event, EventType
from modules.recognition.base import UtteranceEvent
from utils.logger import get_logger

logger = get_logger('api.websocket')


# ============================================
# WEBSOCKET ENDPOINT
# ============================================

async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket for shell actions and live notifications.

    Query parameters:
    - presentation_id: Presentation to follow (required)
    - client_type: Client type (default: "viewer")
    """
    query_params = dict(websocket.query_params)
    presentation_id = query_params.get('presentation_id')
    client_type = query_params.get('client_type', 'viewer')

    if not presentation_id:
        await websocket.accept()
        await websocket.send_text(json.dumps({
            'type': 'error',
            'message': 'presentation_id query parameter is required'
        }))
        await websocket.close(code=1008)
        return

    event_bus = get_event_bus()
    await event_bus.connect(websocket, presentation_id, client_type)

    try:
        await handle_websocket_messages(websocket, presentation_id, event_bus)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: presentation={presentation_id}")
        event_bus.disconnect(websocket)
        await event_bus.publish(Event(
            type=EventType.CLIENT_DISCONNECTED,
            data={'client_type': client_type},
            presentation_id=presentation_id
        ))


async def _reply(websocket: WebSocket, payload: dict):
    payload.setdefault('timestamp', datetime.now().isoformat())
    await websocket.send_text(json.dumps(payload, default=str))


async def handle_websocket_messages(websocket: WebSocket, presentation_id: str, event_bus):
    """Handle incoming WebSocket messages"""

    while True:
        data = await websocket.receive_text()

        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            await _reply(websocket, {'type': 'error', 'message': 'Invalid JSON'})
            continue

        if not isinstance(message, dict):
            await _reply(websocket, {'type': 'error', 'message': 'Invalid message'})
            continue

        msg_type = message.get('type')

        try:
            if msg_type == 'ping':
                await _reply(websocket, {'type': 'pong'})

            elif msg_type in ('subscribe', 'unsubscribe'):
                names = message.get('events', [])
                values = {e.value for e in EventType}
                event_types = {EventType(name) for name in names if name in values}
                if msg_type == 'subscribe':
                    event_bus.subscribe(presentation_id, event_types)
                else:
                    event_bus.unsubscribe(presentation_id, event_types)
                await _reply(websocket, {'type': f'{msg_type}d', 'events': names})

            elif msg_type == 'slide-changed':
                service = get_presentation_service()
                changed = await service.sync_slide(presentation_id, int(message.get('slide', 1)))
                await _reply(websocket, {'type': 'slide-synced', 'changed': changed})

            elif msg_type == 'total-slides':
                service = get_presentation_service()
                machine = service.open_presentation(presentation_id, int(message['total_slides']))
                await _reply(websocket, {'type': 'total-slides', 'total_slides': machine.total_slides})

            elif msg_type == 'utterance':
                service = get_presentation_service()
                context = await service.handle_event(presentation_id, UtteranceEvent(
                    text=str(message.get('text', '')),
                    is_final=bool(message.get('is_final', True)),
                    confidence=float(message.get('confidence', 1.0)),
                    timestamp=float(message.get('timestamp') or time.time())
                ))
                await _reply(websocket, {
                    'type': 'utterance-handled',
                    'result': context.to_dict() if context else None
                })

            else:
                await _reply(websocket, {'type': 'error', 'message': f'Unknown message type: {msg_type}'})

        except PresenterError as e:
            await _reply(websocket, {'type': 'error', **e.to_dict()})
        except (KeyError, ValueError) as e:
            await _reply(websocket, {'type': 'error', 'message': f'Invalid {msg_type} message: {e}'})
