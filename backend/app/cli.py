"""Command line entry point.

  design-critique analyze selection.json
  design-critique critique selection.json --context "landing page hero"

``critique`` runs the full core: the dispatcher analyzes the selection, the
correlator posts the request over a loopback channel, and ``HttpTransport``
forwards it to the critique proxy (``--proxy-url``).
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any

from app.config import settings
from app.engine.analyzer import TreeAnalyzer
from app.engine.config import CritiqueConfig
from app.engine.dispatcher import create_dispatcher
from app.engine.errors import CritiqueError
from app.engine.host import StaticSelectionHost
from app.models.messages import MessageType
from app.transport.channel import LoopbackChannel
from app.transport.http_transport import HttpTransport

logger = logging.getLogger(__name__)


def _cmd_analyze(args: argparse.Namespace, config: CritiqueConfig) -> int:
    host = StaticSelectionHost.from_file(args.selection)
    try:
        record = TreeAnalyzer(config).analyze(host.current_selection())
    except CritiqueError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    print(json.dumps(record.to_wire(), indent=2))
    return 0


async def _run_critique(
    host: StaticSelectionHost,
    config: CritiqueConfig,
    proxy_url: str,
    api_key: str,
    context: str,
) -> int:
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[tuple[int, str]] = loop.create_future()

    def on_event(message: dict[str, Any]) -> None:
        msg_type = message.get("type")
        if outcome.done():
            return
        if msg_type == MessageType.CRITIQUE_RECEIVED.value:
            outcome.set_result((0, str(message.get("data", ""))))
        elif msg_type == MessageType.ERROR.value:
            outcome.set_result((1, str(message.get("data", ""))))

    channel = LoopbackChannel()
    transport = HttpTransport(channel.ui, proxy_url, on_event=on_event)
    dispatcher = create_dispatcher(host, channel.core, config)
    channel.ui.on_message(transport.handle_message)
    channel.core.on_message(dispatcher.handle_message)

    try:
        dispatcher.initialize()
        record = dispatcher.last_record
        # Initialization failure already posted an error event
        if record is not None:
            channel.ui.post_message(
                {
                    "type": MessageType.GET_CRITIQUE.value,
                    "designInfo": record.to_wire(),
                    "prompt": {"apiKey": api_key, "context": context},
                }
            )
        code, text = await outcome
    finally:
        await dispatcher.aclose()
        await transport.aclose()
        channel.close()

    print(text, file=sys.stderr if code else sys.stdout)
    return code


def _cmd_critique(args: argparse.Namespace, config: CritiqueConfig) -> int:
    host = StaticSelectionHost.from_file(args.selection)
    api_key = args.api_key or settings.openai_api_key
    return asyncio.run(_run_critique(host, config, args.proxy_url, api_key, args.context))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="design-critique",
        description="Analyze a design selection and request an AI critique of it.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument(
        "--max-elements", type=int, default=None, help="Element ceiling for one analysis"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Print the analysis record of a selection export")
    analyze.add_argument("selection", help="JSON file: node list or {\"selection\": [...]}")
    analyze.set_defaults(func=_cmd_analyze)

    critique = sub.add_parser("critique", help="Request a critique through the proxy")
    critique.add_argument("selection", help="JSON file: node list or {\"selection\": [...]}")
    critique.add_argument("--context", default="", help="What the design is for")
    critique.add_argument("--api-key", default=None, help="Credential (default: OPENAI_API_KEY)")
    critique.add_argument(
        "--proxy-url", default=settings.proxy_url, help=f"Proxy base URL (default: {settings.proxy_url})"
    )
    critique.set_defaults(func=_cmd_critique)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else settings.critique_log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    config = CritiqueConfig.from_settings(settings)
    if args.max_elements is not None:
        config = dataclasses.replace(config, max_elements=args.max_elements)

    try:
        return args.func(args, config)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: could not read selection: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
