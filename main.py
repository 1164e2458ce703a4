#!/usr/bin/env python3
"""
Voice Presenter - Entry Point

Routes to the appropriate interface based on arguments.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Force unbuffered output
sys.stdout.reconfigure(line_buffering=True)

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv, find_dotenv

# PRESENTER_LOG_DIR / PRESENTER_LOG_LEVEL may come from .env
load_dotenv(find_dotenv(), override=False)


def print_banner():
    """Print startup banner"""
    banner = """
    ╔════════════════════════════════════════════════════╗
    ║                                                    ║
    ║          Voice Presenter v1.0                      ║
    ║          Voice-driven slides and analytics         ║
    ║                                                    ║
    ╚════════════════════════════════════════════════════╝
    """
    print(banner)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Voice-driven presentation control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Interface Selection:
  --interface voice     Microphone input [DEFAULT]
  --interface replay    Scripted recognition events from a YAML file
  --interface api       REST + WebSocket server for slide viewers

Examples:
  python main.py --presentation intro-deck --slides 12
  python main.py --interface replay --script config/scripts/demo.yaml
  python main.py --interface api --port 8000
        """
    )

    parser.add_argument(
        "--interface",
        choices=["voice", "replay", "api"],
        default="voice",
        help="Interface to use (voice, replay, api)"
    )

    parser.add_argument(
        "--presentation",
        default="default",
        help="Presentation id"
    )

    parser.add_argument(
        "--slides",
        type=int,
        default=10,
        help="Number of slides in the deck"
    )

    parser.add_argument(
        "--script",
        default="config/scripts/demo.yaml",
        help="Replay script (replay interface only)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="API server port (api interface only)"
    )

    args = parser.parse_args(argv)
    if args.slides < 1:
        parser.error("--slides must be at least 1")
    return args


async def run_voice_interface(args):
    """Run voice interface"""
    from interfaces.voice.main import main as voice_main
    return await voice_main(args.presentation, args.slides)


async def run_replay_interface(args):
    """Run replay interface"""
    from interfaces.replay.main import main as replay_main
    return await replay_main(args.script, args.presentation, args.slides)


def run_api_interface(args):
    """Run API server"""
    from interfaces.api.server import main as api_main
    api_main(port=args.port)  # Blocking call (uvicorn)
    return 0


async def main(args):
    """Main entry point"""
    try:
        if args.interface == 'replay':
            print("Starting Replay Interface...\n")
            return await run_replay_interface(args)

        print("Starting Voice Interface...\n")
        return await run_voice_interface(args)

    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        return 0

    except Exception as e:
        print(f"\nCritical error: {e}")
        return 1


def cli():
    """Console script entry point"""
    try:
        args = parse_args()
        print_banner()

        # API mode manages its own event loop
        if args.interface == "api":
            print("Starting API Server...\n")
            sys.exit(run_api_interface(args))

        exit_code = asyncio.run(main(args))
        sys.exit(exit_code)

    except KeyboardInterrupt:
        print("\nGoodbye!")
        sys.exit(0)


if __name__ == "__main__":
    cli()
