"""
CLI entry point.

Commands:
- init: Create the .zap folder with config and a dev environment
- health: Check Ollama connectivity
- chat: Interactive API debugging session

Flags:
- --debug: Enable debug logging to file
"""

import logging
import queue
import sys

from zap.core.config import Settings, get_settings, write_default_config
from zap.core.errors import LLMError, TurnCancelled, ZapError
from zap.core.logging import get_logger, setup_logging
from zap.core.types import AgentEvent, EventType

# Observations longer than this are cut in the terminal (the model sees all of it)
MAX_OBSERVATION_DISPLAY = 1500
EVENT_POLL_INTERVAL = 0.1
CONFIRMATION_TIMEOUT_NOTICE = "Confirmation timed out, changes rejected."


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    # Parse --debug flag (enables verbose DEBUG traces)
    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    # The terminal belongs to the chat, so logs go to the file only
    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.log_path if settings.data_dir.exists() else None
    setup_logging(level=log_level, log_file=log_file, console=False)
    logger = get_logger("cli")

    if log_file:
        logger.info(f"Logging to {log_file}" + (" (debug mode)" if debug_mode else ""))

    if len(sys.argv) < 2:
        print("Usage: zap [--debug] <command>")
        print("Commands: init, health, chat")
        print("Flags: --debug (enable debug logging to .zap/zap.log)")
        return 1

    command = sys.argv[1]

    if command == "init":
        created = write_default_config(settings)
        logger.info(f"Initialized data directory: {settings.data_dir}")
        for path in created:
            print(f"Created: {path}")
        if not created:
            print(f"{settings.data_dir} already initialized")
        return 0

    if command == "health":
        return _health_check(settings)

    if command == "chat":
        logger.info("Starting chat")
        return _chat_loop(settings)

    print(f"Unknown command: {command}")
    return 1


def _health_check(settings: Settings) -> int:
    from zap.llm.ollama import OllamaClient

    print(f"Checking Ollama at {settings.ollama_url}...")
    with OllamaClient(
        settings.ollama_url, settings.default_model, settings.ollama_api_key, settings.llm_timeout
    ) as client:
        try:
            client.check_connection()
        except LLMError as e:
            print(f"  FAILED: {e}")
            return 1
    print(f"  OK (model: {settings.default_model})")
    return 0


def _render(event: AgentEvent) -> None:
    if event.type == EventType.THINKING:
        print(f"  ... {event.content}")
    elif event.type == EventType.TOOL_CALL:
        print(f"  > {event.content}({event.tool_args})")
    elif event.type == EventType.OBSERVATION:
        text = event.content
        if len(text) > MAX_OBSERVATION_DISPLAY:
            text = text[:MAX_OBSERVATION_DISPLAY] + "\n... (truncated)"
        print("\n".join(f"    {line}" for line in text.splitlines()))
    elif event.type == EventType.TOOL_USAGE and event.tool_usage is not None:
        usage = event.tool_usage
        print(
            f"  [{usage.tool_name} {usage.tool_current}/{usage.tool_limit} | "
            f"total {usage.total_calls}/{usage.total_limit}]"
        )
    elif event.type == EventType.ERROR:
        print(f"  ! {event.content}")
    elif event.type == EventType.ANSWER:
        print(f"\n{event.content}\n")


def _ask_confirmation(event: AgentEvent) -> bool:
    fc = event.file_confirmation
    if fc is None:
        return False
    action = "Create" if fc.is_new_file else "Modify"
    print(f"\n{action} {fc.path}?\n")
    print(fc.diff)
    answer = input("Apply changes? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def _run_turn(agent, confirm, user_input: str) -> None:
    """Run one turn on a worker thread and render its events here."""
    from zap.agents.worker import TurnWorker

    events: queue.Queue[AgentEvent] = queue.Queue()
    # Timeouts fire on the worker thread; the notice is rendered here
    confirm.on_timeout = lambda: events.put(AgentEvent(EventType.ERROR, CONFIRMATION_TIMEOUT_NOTICE))
    worker = TurnWorker(agent, events.put, confirm)
    worker.start(user_input)

    try:
        while True:
            try:
                try:
                    event = events.get(timeout=EVENT_POLL_INTERVAL)
                except queue.Empty:
                    if worker.done and events.empty():
                        break
                    continue

                if event.type == EventType.CONFIRMATION_REQUIRED:
                    confirm.send_response(_ask_confirmation(event))
                else:
                    _render(event)
            except KeyboardInterrupt:
                if worker.cancelled:
                    raise
                print("\n  Cancelling... (Ctrl+C again to quit)")
                worker.cancel()
    finally:
        confirm.on_timeout = None

    if isinstance(worker.error, TurnCancelled):
        print("  Cancelled.\n")
    elif worker.error is not None:
        print(f"Error: {worker.error}\n")


def _chat_loop(settings: Settings) -> int:
    """Interactive chat with the ReAct agent."""
    from zap.agents.react import ReActAgent, apply_settings
    from zap.llm.ollama import OllamaClient
    from zap.tools.builtin import register_builtin_tools
    from zap.tools.confirm import ConfirmationManager

    logger = get_logger("cli.chat")

    print("ZAP - API debugging assistant")
    print("Commands: /clear, /usage, /env <name>, /exit")
    print("-" * 40)

    llm = OllamaClient(
        settings.ollama_url, settings.default_model, settings.ollama_api_key, settings.llm_timeout
    )
    confirm = ConfirmationManager(timeout=settings.confirmation_timeout)
    agent = ReActAgent(llm)
    variables = register_builtin_tools(agent, settings, confirm)
    apply_settings(agent, settings)

    print(f"Model: {settings.default_model}\n")

    try:
        while True:
            try:
                user_input = input("> ").strip()
            except EOFError:
                break

            if not user_input:
                continue

            # Handle commands
            if user_input.lower() in ("/exit", "exit", "quit", "q"):
                break
            if user_input == "/clear":
                agent.history.clear()
                print("Conversation cleared.\n")
                continue
            if user_input == "/usage":
                stats, total, total_limit = agent.tool_usage_stats()
                for stat in stats:
                    print(f"  {stat.name}: {stat.current}/{stat.limit} ({stat.percent}%)")
                print(f"  total: {total}/{total_limit}\n")
                continue
            if user_input.startswith("/env"):
                name = user_input[len("/env") :].strip()
                if not name:
                    print(f"Active environment: {variables.environment_name or '(none)'}\n")
                    continue
                try:
                    variables.load_environment(name)
                    print(f"Environment {name} loaded.\n")
                except ZapError as e:
                    print(f"Error: {e}\n")
                continue

            _run_turn(agent, confirm, user_input)

    except KeyboardInterrupt:
        print("\n\nShutting down...")
        confirm.cancel()
    finally:
        llm.close()
        logger.info("Chat ended")

    print("Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
