"""Diagnostic command line for claude-code-bridge.

Usage:
    python -m claude_code_bridge --version
    python -m claude_code_bridge "Explain this repository"
    echo "Summarize README.md" | python -m claude_code_bridge --stream
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .client import ClaudeClient
from .config import Config, get_config
from .errors import ClaudeBridgeError
from .parsers import ErrorResponse, response_content
from .types import Prompt, PromptOptions

__all__ = ["main", "run"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _configure_logging(config: Config) -> None:
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.WARNING

    # Third-party loggers stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("claude_code_bridge").setLevel(log_level)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-code-bridge",
        description="Run the claude CLI once through claude-code-bridge",
    )
    parser.add_argument("prompt", nargs="?", help="Prompt text (default: read stdin)")
    parser.add_argument("--version", action="store_true", help="Print the claude CLI version and exit")
    parser.add_argument("--stream", action="store_true", help="Print events as they arrive")
    parser.add_argument("--model", default=None, help="Model id")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds")
    parser.add_argument("--system-prompt", default=None, help="System prompt")
    parser.add_argument("--cwd", default=None, help="Working directory for claude")
    return parser


async def run(args: argparse.Namespace, config: Config) -> int:
    """Execute one CLI request; returns the process exit status."""
    async with ClaudeClient(config) as client:
        if args.version:
            print(await client.get_version())
            return EXIT_OK

        text = args.prompt if args.prompt is not None else sys.stdin.read()
        prompt = Prompt(text, system_prompt=args.system_prompt, working_directory=args.cwd)
        options = PromptOptions(timeout=args.timeout, model=args.model)

        if args.stream:
            async with client.stream(prompt, options) as events:
                async for event in events:
                    print(f"[{event.sequence}] {event.type.value}: {event.content}", flush=True)
            return EXIT_OK

        response = await client.execute(prompt, options)
        print(response_content(response))
        return EXIT_ERROR if isinstance(response, ErrorResponse) else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    config = get_config()
    _configure_logging(config)
    args = _build_parser().parse_args(argv)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except (ClaudeBridgeError, ValueError) as e:
        logger.debug("Request failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
