"""
Replay Recognition Adapter

Replays a fixed sequence of recognition events. Used by tests and by the
`replay` interface to drive a whole session from a YAML script.

Script format:

    events:
      - text: "start presentation"
        confidence: 0.95
      - text: "today we talk about"
        interim: true
      - error: no-speech
"""

import asyncio
from pathlib import Path
from typing import AsyncIterator, List, Optional, Union

import yaml

from core.errors import PermissionDenied, RecognitionUnavailable, TransientRecognitionError
from modules.recognition.base import RecognitionAdapter, RecognitionConfig, UtteranceEvent
from utils.logger import get_logger

logger = get_logger('recognition.replay')

ReplayItem = Union[UtteranceEvent, Exception]

_ERRORS = {
    'no-speech': lambda: TransientRecognitionError("No speech detected", reason="no-speech"),
    'network': lambda: TransientRecognitionError("Network error", reason="network"),
    'not-allowed': lambda: PermissionDenied("Microphone access denied"),
    'unsupported': lambda: RecognitionUnavailable("Speech recognition not supported"),
}


class ReplayRecognition(RecognitionAdapter):
    """Replays scripted events; errors in the script are raised in place"""

    def __init__(self, config: Optional[dict] = None, events: Optional[List[ReplayItem]] = None):
        config = config or {}
        super().__init__(RecognitionConfig(language=config.get('language', 'en-US')))

        self.delay = float(config.get('delay', 0.0))
        self.spacing = float(config.get('spacing', 3.0))
        self.base_time = float(config.get('base_time', 0.0))

        if events is None:
            events = self.parse_script(config.get('events', []), self.base_time, self.spacing)

        self._items: List[ReplayItem] = list(events)
        self._position = 0
        self.start_count = 0

        logger.info(f"Replay recognition loaded {len(self._items)} items")

    @classmethod
    def from_yaml(cls, path: str, config: Optional[dict] = None) -> "ReplayRecognition":
        """Build an adapter from a YAML script file"""
        with open(Path(path), 'r', encoding='utf-8') as f:
            script = yaml.safe_load(f) or {}

        merged = dict(config or {})
        merged.update({k: v for k, v in script.items() if k != 'events'})
        merged['events'] = script.get('events', [])
        return cls(merged)

    @staticmethod
    def parse_script(entries: list, base_time: float = 0.0, spacing: float = 3.0) -> List[ReplayItem]:
        """Turn script dictionaries into events and error instances"""
        items: List[ReplayItem] = []
        # Interims share the slot of the final they lead up to
        slot = 0

        for entry in entries:
            if 'error' in entry:
                factory = _ERRORS.get(entry['error'])
                if factory is None:
                    raise ValueError(f"Unknown scripted error: {entry['error']}")
                items.append(factory())
                slot += 1
                continue

            is_final = not entry.get('interim', False)
            items.append(UtteranceEvent(
                text=str(entry.get('text', '')),
                is_final=is_final,
                confidence=entry.get('confidence', 0.9),
                timestamp=entry.get('timestamp', base_time + slot * spacing)
            ))
            if is_final:
                slot += 1

        return items

    @property
    def remaining(self) -> int:
        return len(self._items) - self._position

    def start(self):
        self.is_listening = True
        self.start_count += 1

    def stop(self):
        self.is_listening = False

    async def stream(self) -> AsyncIterator[UtteranceEvent]:
        while self.is_listening and self._position < len(self._items):
            item = self._items[self._position]
            self._position += 1

            if isinstance(item, Exception):
                raise item

            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                # Let other tasks run between events
                await asyncio.sleep(0)

            yield item
