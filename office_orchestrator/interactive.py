#!/usr/bin/env python3
"""
Office Orchestrator Interactive CLI

Chat with an office agent persona from the terminal, with or without
gateway tools.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import threading
from dataclasses import replace
from typing import Optional

from .config_loader import load_app_config
from .models import AppConfig, ConversationTurn, ExchangeRequest, OrchestrationResult, Persona
from .orchestrator import OfficeOrchestrator
from .prompts import PERSONALITY_PROMPTS, ROLE_PROMPTS

# Global shutdown flag for signal handling
_shutdown_requested = threading.Event()

logger = logging.getLogger(__name__)


def _signal_handler(signum: int, frame) -> None:
    """Handle SIGINT for graceful shutdown."""
    if _shutdown_requested.is_set():
        # Second interrupt - force exit
        logger.debug("Force shutdown requested")
        sys.exit(1)
    else:
        logger.debug("Shutdown requested")
        _shutdown_requested.set()
        print("\n\nShutting down... (press Ctrl+C again to force)")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner(persona: Persona) -> None:
    """Print the welcome banner."""
    banner = f"""
╔════════════════════════════════════════════════════════════════╗
║                 Office Orchestrator Interactive                 ║
║                                                                 ║
║  Chat with an office agent; tools come from the gateway         ║
╚════════════════════════════════════════════════════════════════╝

Agent: {persona.name} ({persona.role}/{persona.personality})

Available commands:
  /help     - Show this help message
  /steps    - Show the tool steps of the last reply
  /tools    - Toggle gateway tools on/off
  /session  - Show the current gateway session id
  /clear    - Clear conversation history and session
  /quit     - Exit the CLI
"""
    print(banner)


def print_steps(result: Optional[OrchestrationResult]) -> None:
    """Print the tool steps of the last exchange."""
    if result is None or not result.tool_steps:
        print("\nNo tool steps for the last reply.\n")
        return

    print("\n" + "═" * 70)
    print("TOOL STEPS")
    print("═" * 70)
    for number, step in enumerate(result.tool_steps, start=1):
        marker = "✓" if step.status == "success" else "✗"
        print(f"\n┌─ Step {number} {marker} {step.tool_name}")
        print(f"│  Action: {step.action}")
        if step.summary:
            print(f"│  Result: {step.summary}")
        print("└" + "─" * 68)
    print()


class InteractiveCLI:
    """Interactive chat session with one agent persona."""

    def __init__(
        self,
        persona: Persona,
        tools_enabled: bool = False,
        app_config: Optional[AppConfig] = None,
    ):
        self.persona = persona
        self.tools_enabled = tools_enabled
        self.orchestrator = OfficeOrchestrator(app_config=app_config)
        self.history: list[ConversationTurn] = []
        self.session: Optional[str] = None
        self.last_result: Optional[OrchestrationResult] = None

    def toggle_tools(self) -> None:
        self.tools_enabled = not self.tools_enabled
        print(f"\nGateway tools: {'ON' if self.tools_enabled else 'OFF'}\n")

    def clear_history(self) -> None:
        self.history = []
        self.session = None
        self.last_result = None
        print("\nConversation history cleared.\n")

    def send(self, text: str) -> OrchestrationResult:
        """Run one exchange and keep the conversation and session going."""
        turn = ConversationTurn(role="user", content=text)
        request = ExchangeRequest(
            persona=self.persona,
            history=self.history + [turn],
            tools_enabled=self.tools_enabled,
            session=self.session,
        )
        result = asyncio.run(self.orchestrator.run(request))
        self.last_result = result
        if not result.failed:
            self.history.append(turn)
            self.history.append(ConversationTurn(role="assistant", content=result.final_text))
            self.session = result.session or self.session
        return result

    def process_query(self, query: str) -> bool:
        """Process a user message.

        Returns:
            True if should continue, False if shutdown requested
        """
        try:
            result = self.send(query)
        except KeyboardInterrupt:
            _shutdown_requested.set()
            print("\n\nQuery interrupted, shutting down.\n")
            return False

        if _shutdown_requested.is_set():
            print("\n\nReply received, shutting down.\n")
            return False

        print(f"\n{self.persona.name}: {result.final_text}\n")
        if result.failed:
            print(f"(Error [{result.error_type}]: {result.error})\n")
        elif result.tool_steps:
            count = len(result.tool_steps)
            print(f"(Used {count} tool step{'s' if count != 1 else ''}; /steps for details)\n")
        return True

    def run(self) -> None:
        """Run the interactive CLI loop."""
        print_banner(self.persona)

        while not _shutdown_requested.is_set():
            try:
                user_input = input(">>> ").strip()

                if _shutdown_requested.is_set():
                    break

                if not user_input:
                    continue

                if user_input.startswith("/"):
                    command = user_input.lower()

                    if command in ("/quit", "/exit", "/q"):
                        print("\nGoodbye!\n")
                        break
                    elif command in ("/help", "/h", "/?"):
                        print_banner(self.persona)
                    elif command == "/steps":
                        print_steps(self.last_result)
                    elif command == "/tools":
                        self.toggle_tools()
                    elif command == "/session":
                        print(f"\nSession: {self.session or '(none)'}\n")
                    elif command == "/clear":
                        self.clear_history()
                    else:
                        print(f"\nUnknown command: {user_input}")
                        print("Type /help for available commands.\n")
                elif not self.process_query(user_input):
                    break

            except KeyboardInterrupt:
                if _shutdown_requested.is_set():
                    print("\n")
                    break
                print("\n\nType /quit to exit.\n")
            except EOFError:
                print("\nGoodbye!\n")
                break


def main() -> None:
    """Main entry point."""
    signal.signal(signal.SIGINT, _signal_handler)

    parser = argparse.ArgumentParser(
        description="Office Orchestrator Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                   # Chat with the default agent
  %(prog)s --role researcher --tools         # Researcher with gateway tools
  %(prog)s -q "Summarize my inbox" --tools   # Send a single message and exit
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--query", type=str, help="Send a single message and exit")
    parser.add_argument("--name", default="Agent", help="Agent name (default: Agent)")
    parser.add_argument(
        "--role", default="developer", choices=sorted(ROLE_PROMPTS), help="Agent role"
    )
    parser.add_argument(
        "--personality",
        default="focused",
        choices=sorted(PERSONALITY_PROMPTS),
        help="Agent personality",
    )
    parser.add_argument("--tools", action="store_true", help="Enable gateway tools")
    parser.add_argument(
        "--model-url",
        type=str,
        default=None,
        help="Model endpoint URL (default: model.base_url from config)",
    )
    parser.add_argument(
        "--json", action="store_true", help="Output results as JSON (for scripting)"
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    app_config = load_app_config()
    if args.model_url:
        app_config = replace(app_config, model=replace(app_config.model, base_url=args.model_url))

    persona = Persona(name=args.name, role=args.role, personality=args.personality)
    cli = InteractiveCLI(persona, tools_enabled=args.tools, app_config=app_config)

    if args.query:
        result = cli.send(args.query)
        if args.json:
            output = {"query": args.query, **result.to_payload()}
            if result.failed:
                output["error"] = result.error
                output["errorType"] = result.error_type
            print(json.dumps(output, indent=2))
        else:
            print(result.final_text)
        if result.failed:
            sys.exit(1)
    else:
        cli.run()


if __name__ == "__main__":
    main()
