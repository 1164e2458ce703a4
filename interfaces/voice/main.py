"""
Voice Interface - Microphone Mode

Drives one presentation from the default microphone. The session starts
on "start presentation" and the loop ends when the presenter says
"stop presentation" (or presses Ctrl+C).
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.errors import PresenterError
from core.event_bus import get_event_bus, Event, EventType
from core.module_loader import get_module_loader
from core.services import build_presentation_service
from utils.logger import get_logger

logger = get_logger('interfaces.voice')

# Events worth echoing to the console
CONSOLE_EVENTS = [
    EventType.START_PRESENTATION,
    EventType.STOP_PRESENTATION,
    EventType.PAUSE_PRESENTATION,
    EventType.RESUME_PRESENTATION,
    EventType.NEXT_SLIDE,
    EventType.PREV_SLIDE,
    EventType.GOTO_SLIDE,
    EventType.AUTO_ADVANCE,
    EventType.TRANSCRIPT_SEGMENT,
    EventType.QUIZ_GENERATED,
    EventType.SUMMARY_GENERATED,
    EventType.INSUFFICIENT_CONTENT,
    EventType.STORAGE_ERROR,
    EventType.RECOGNITION_UNAVAILABLE,
]


def print_banner():
    """Print voice interface banner"""
    banner = """
    ╔════════════════════════════════════════╗
    ║   Voice Presenter - Voice Interface    ║
    ║   Microphone Mode                      ║
    ╚════════════════════════════════════════╝
    """
    print(banner)


def print_help(classifier):
    """List example phrases per command group"""
    print("Voice commands:")
    for group, phrases in classifier.get_intent_examples().items():
        print(f"  {group.value:<12} " + ", ".join(f'"{phrase}"' for phrase in phrases))
    print()


def print_event(event: Event):
    """Console echo of pipeline notifications"""
    data = event.data

    if event.type == EventType.TRANSCRIPT_SEGMENT:
        keywords = ', '.join(data.get('keywords', []))
        print(f"  [slide {data['slide_number']}] {data['text']}  ({keywords})")
    elif event.type == EventType.QUIZ_GENERATED:
        print(f"[QUIZ] {data['title']}: {data['total_questions']} questions")
    elif event.type == EventType.SUMMARY_GENERATED:
        print(f"\n{data.get('markdown', '')}")
    elif event.type == EventType.AUTO_ADVANCE:
        print(f"[AUTO] Advanced to slide {data['slide']} ({data['reason']})")
    elif event.is_shell_action:
        print(f"[{event.type.value}] {data}")
    else:
        print(f"[{event.type.value}] {data.get('message', data)}")


async def run_presentation(presentation_id: str, total_slides: int, adapter) -> int:
    """Run one presentation against a recognition adapter"""
    service = build_presentation_service()
    print_help(service.classifier)
    bus = get_event_bus()
    bus.add_handler(print_event, CONSOLE_EVENTS)

    service.open_presentation(presentation_id, total_slides)

    try:
        await service.run(presentation_id, adapter)
        return 0

    except PresenterError as e:
        print(f"\n[ERROR] {e.message}")
        return 1

    finally:
        bus.remove_handler(print_event)
        await service.shutdown()


async def main(presentation_id: str = "default", total_slides: int = 10) -> int:
    """Voice interface entry point"""
    try:
        print_banner()

        logger.info("Initializing voice interface...")
        adapter = get_module_loader().load_module('recognition', 'google')

        print(f"[OK] Ready! Presentation '{presentation_id}' ({total_slides} slides)")
        print("Say 'start presentation' to begin.\n")

        return await run_presentation(presentation_id, total_slides, adapter)

    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        return 0

    except Exception as e:
        logger.critical(f"Voice interface error: {e}", exc_info=True)
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nGoodbye!")
        sys.exit(0)
