"""Run the bd-identity MCP server on stdio.

Usage:
    python -m bd_identity --session-key agent:main:main
    python -m bd_identity --session-key agent:coder:main --agent-id coder

The gateway may pass the session context as flags or through the
BD_SESSION_KEY, BD_AGENT_ID and BD_SANDBOXED environment variables.
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from .core.config import Settings
from .logging_config import setup_logging
from .server.server import create_server
from .tools import ToolServices

load_dotenv()

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Serve the agent_self, bd_project and specs tools over MCP stdio.",
    )
    parser.add_argument("--session-key", help="Gateway session key (overrides BD_SESSION_KEY)")
    parser.add_argument("--agent-id", help="Gateway agent id (overrides BD_AGENT_ID)")
    parser.add_argument(
        "--sandboxed",
        action="store_true",
        default=None,
        help="Mark the session as sandboxed",
    )
    parser.add_argument("--log-level", help="Logging level (overrides LOG_LEVEL)")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, with command line flags taking precedence."""
    overrides = {
        "session_key": args.session_key,
        "agent_id": args.agent_id,
        "sandboxed": args.sandboxed,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    settings = load_settings(parse_args(argv))
    setup_logging(settings)

    if not settings.session_key:
        logger.warning("No session key supplied; agent_self and task commands will be refused")

    services = ToolServices.from_settings(settings)
    server = create_server(settings, services=services)
    try:
        await server.run()
    finally:
        await services.indexer.drain()
    return 0


def cli() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    cli()
