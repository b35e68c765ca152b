"""
Command-line interface for brain-teaser

Run the webhook server, play a quiz locally against the mock gateway, or
manage the inbound listener registered with the SMS gateway.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .app import build_dispatcher
from .config import Config, config
from .gateway.base import ActionKind, ActionRequest, GatewayError
from .gateway.executor import DeliveryExecutor
from .gateway.mock import MockGateway
from .gateway.pisi import PisiGateway


def print_sms(text: str, color: str = "\033[96m") -> None:
    """Print an outbound SMS the way a handset would show it."""
    print(f"{color}┌─ SMS ─────────────────────────────\033[0m")
    for line in text.splitlines():
        print(f"{color}│\033[0m {line}")
    print(f"{color}└───────────────────────────────────\033[0m")


async def play_quiz(subscriber: str, keyword: str, cfg: Optional[Config] = None) -> int:
    """
    Play one quiz in the terminal.

    Outbound SMS go to a MockGateway and are echoed instead of delivered.

    Returns:
        Final score, or -1 if the quiz was abandoned
    """
    cfg = cfg or Config.fast_mode()
    cfg.store.backend = "memory"
    gateway = MockGateway()
    dispatcher = build_dispatcher(cfg, transport=gateway)

    async def send(text: str) -> str:
        before = len(gateway.calls)
        reply = await dispatcher.handle(subscriber, text)
        for call in gateway.calls[before:]:
            if call.kind == ActionKind.NOTIFY:
                print_sms(call.message)
            else:
                print(f"\033[90m[{call.kind.value} {call.plan.value if call.plan else ''} trxid={call.trxid}]\033[0m")
        return reply

    await send(keyword)
    while True:
        try:
            answer = input("Your answer (A-D, blank to quit): ")
        except EOFError:
            return -1
        if not answer.strip():
            return -1
        await send(answer)
        session = await dispatcher.engine.get_session(subscriber)
        if session is None:
            return await dispatcher.engine.scores.get_total(subscriber)


async def manage_listener(action: str, url: str, trxid: Optional[str] = None) -> dict:
    """Register or delete the inbound MO listener at the gateway."""
    transport = PisiGateway(config.gateway)
    executor = DeliveryExecutor(transport, retry=config.retry)
    try:
        if action == "add":
            request = ActionRequest.register_listener(url)
        else:
            request = ActionRequest.delete_listener(url, trxid)
        outcome = await executor.execute(request)
    finally:
        await transport.aclose()
    return outcome.to_dict()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="brain-teaser",
        description="SMS quiz service with reliable gateway delivery",
        epilog="Example: brain-teaser play 2547000000",
    )
    parser.add_argument(
        "--log-level",
        default=config.server.log_level,
        help=f"Logging level (default: {config.server.log_level})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the webhook server")
    serve_parser.add_argument("--host", default=config.server.host, help=f"Bind address (default: {config.server.host})")
    serve_parser.add_argument("--port", type=int, default=config.server.port, help=f"Port (default: {config.server.port})")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a quiz locally against a mock gateway")
    play_parser.add_argument("subscriber", help="Subscriber MSISDN to play as")
    play_parser.add_argument(
        "--keyword",
        choices=["BTD", "BTW", "BTM"],
        default="BTD",
        help="Start keyword (default: BTD)",
    )

    # Listener command
    listener_parser = subparsers.add_parser("listener", help="Manage the inbound SMS webhook at the gateway")
    listener_parser.add_argument("action", choices=["add", "remove"], help="Register or delete the listener")
    listener_parser.add_argument("url", help="Callback URL the gateway posts inbound SMS to")
    listener_parser.add_argument("--trxid", help="Transaction id the listener was registered with (remove only)")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("brain_teaser.app:app", host=args.host, port=args.port, log_level=args.log_level.lower())

    elif args.command == "play":
        score = asyncio.run(play_quiz(args.subscriber, args.keyword))
        if score < 0:
            print("\nQuiz abandoned.")
        else:
            print(f"\nFinal total for {args.subscriber}: {score}")

    elif args.command == "listener":
        if args.action == "remove" and not args.trxid:
            print("--trxid is required to remove a listener", file=sys.stderr)
            sys.exit(1)
        try:
            outcome = asyncio.run(manage_listener(args.action, args.url, args.trxid))
        except GatewayError as e:
            print(f"Gateway error: {e}", file=sys.stderr)
            sys.exit(2)
        print(json.dumps(outcome, indent=2))


if __name__ == "__main__":
    main()
