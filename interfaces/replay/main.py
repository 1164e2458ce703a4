"""
Replay Interface - Scripted Mode

Drives a presentation from a YAML script of recognition events instead of
a microphone. Useful for demos and for checking grammar changes.
"""

import asyncio
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from interfaces.voice.main import run_presentation
from modules.recognition.replay import ReplayRecognition
from utils.logger import get_logger

logger = get_logger('interfaces.replay')


async def main(script: str, presentation_id: str = "default", total_slides: int = 10) -> int:
    """Replay interface entry point"""
    if not Path(script).exists():
        print(f"Script not found: {script}")
        return 1

    adapter = ReplayRecognition.from_yaml(script, {'base_time': time.time()})
    logger.info(f"Replaying {adapter.remaining} events from {script}")
    print(f"[OK] Replaying {script} ({adapter.remaining} events)\n")

    return await run_presentation(presentation_id, total_slides, adapter)


if __name__ == "__main__":
    exit_code = asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "config/scripts/demo.yaml"))
    sys.exit(exit_code)
