"""
CLI entry point.

Commands:
- init: Initialize data directory
- chat: Interactive streaming chat in the terminal
- memory <user_id>: Print memory stats for a user

Flags:
- --debug: Enable debug logging
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from uuid import uuid4

from mentora.chat.orchestrator import ResponseOrchestrator, ResponseState
from mentora.core.config import Settings, get_settings
from mentora.core.errors import ConfigurationError, InvalidMessage
from mentora.core.logging import get_logger, setup_logging
from mentora.core.types import HistoryTurn, Role

DEFAULT_INSTRUCTION = """Você é a Mentora, uma tutora paciente e prática.
Explique com exemplos concretos e adapte a profundidade ao nível do utilizador."""


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.data_dir / "mentora.log"
    setup_logging(level=log_level, log_file=log_file)
    logger = get_logger("cli")

    if len(sys.argv) < 2:
        print("Usage: mentora [--debug] <command>")
        print("Commands: init, chat, memory <user_id>")
        return 1

    command = sys.argv[1]

    if command == "init":
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized data directory: {settings.data_dir}")
        print(f"Created: {settings.data_dir}")
        return 0

    if command == "chat":
        user_id = sys.argv[2] if len(sys.argv) > 2 else "local"
        return asyncio.run(_chat_loop(settings, user_id))

    if command == "memory":
        if len(sys.argv) < 3:
            print("Usage: mentora memory <user_id>")
            return 1
        return asyncio.run(_memory_stats(settings, sys.argv[2]))

    print(f"Unknown command: {command}")
    return 1


async def _chat_loop(settings: Settings, user_id: str) -> int:
    """Interactive chat with streamed, personalized replies."""
    from mentora.app import build_app

    try:
        app = build_app(settings)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    await app.start()
    await app.memory.profiles.get_or_init(user_id, user_id)

    session_id = uuid4().hex
    domain = settings.default_domain
    history: list[HistoryTurn] = []

    print("Mentora CLI Chat")
    print("Commands: /domain <name>, /clear, /forget, /exit")
    print("-" * 40)

    try:
        while True:
            try:
                user_input = input("> ").strip()
            except EOFError:
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "exit", "quit", "q"):
                break
            if user_input.startswith("/domain"):
                parts = user_input.split(maxsplit=1)
                if len(parts) == 2:
                    domain = parts[1].strip()
                print(f"Domain: {domain}\n")
                continue
            if user_input == "/clear":
                history.clear()
                print("Conversation cleared.\n")
                continue
            if user_input == "/forget":
                await app.memory.clear_for_user(user_id)
                history.clear()
                print("All memory about you was deleted.\n")
                continue

            printed = 0

            def show(cumulative: str) -> None:
                nonlocal printed
                print(cumulative[printed:], end="", flush=True)
                printed = len(cumulative)

            try:
                reply = await app.orchestrator.respond(
                    DEFAULT_INSTRUCTION,
                    history,
                    user_input,
                    show,
                    domain,
                    user_id=user_id,
                    session_id=session_id,
                )
            except InvalidMessage as e:
                print(f"{e}\n")
                continue
            print("\n")
            status = _status_line(app.orchestrator)
            if status:
                print(f"({status})\n")

            history.append(HistoryTurn(role=Role.USER, text=user_input))
            history.append(HistoryTurn(role=Role.MODEL, text=reply))
            history = history[-settings.max_context_messages:]

    except KeyboardInterrupt:
        print("\n\nShutting down...")
    finally:
        await app.close()

    print("Goodbye!")
    return 0


def _status_line(orchestrator: ResponseOrchestrator) -> str | None:
    """Note shown under a reply that came from the fallback catalog."""
    if orchestrator.last_state == ResponseState.FALLBACK_DONE:
        return orchestrator.fallback.reconnecting_line()
    return None


async def _memory_stats(settings: Settings, user_id: str) -> int:
    """Print memory stats for a user."""
    from mentora.memory.cache import TTLCache
    from mentora.memory.persistence import SQLitePersistence
    from mentora.memory.store import TieredMemoryStore

    persistence = SQLitePersistence(settings.db_path)
    await persistence.connect()
    try:
        store = TieredMemoryStore(persistence, TTLCache(default_ttl=settings.cache_ttl_seconds))
        stats = await store.stats(user_id)
        print(json.dumps(asdict(stats), indent=2))
    finally:
        await persistence.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
