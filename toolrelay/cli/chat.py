"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console
from rich.markdown import Markdown

from toolrelay.cli.output import OutputFormatter
from toolrelay.errors import LoopBudgetExceededError, LoopDeadlineExceededError, ModelCallError
from toolrelay.llm.router import ModelRouter
from toolrelay.orchestrator.core import ConversationLoop

logger = logging.getLogger(__name__)


class ChatHandler:
    """
    Manages the interactive chat loop.

    Every user line is an independent query: no history is carried over
    between questions.
    """

    def __init__(
        self,
        loop: ConversationLoop,
        console: Console | None = None,
    ) -> None:
        self.loop = loop
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd in ("/quit", "quit"):
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.loop.registry.list())
            return True

        if cmd == "/switch":
            router = self.loop.model_client
            if not isinstance(router, ModelRouter):
                self.console.print("  [yellow]Model switching is not available.[/yellow]")
            elif not arg:
                self.console.print(f"  Available clients: {', '.join(router.client_names)}")
                self.console.print(f"  Active: {router.active_name}")
            else:
                try:
                    router.set_active(arg)
                    self.console.print(f"  Switched to model client: [bold]{arg}[/bold]")
                except KeyError as e:
                    self.console.print(f"  [red]Error:[/red] {e}")
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit     - Exit the chat\n"
                "  /tools    - List available tools\n"
                "  /switch   - Switch model client\n"
                "  /help     - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> str | None:
        """Run one query through the loop and print the answer."""
        try:
            with self.console.status("[dim]thinking...[/dim]"):
                answer = await self.loop.run(user_input)
        except (ModelCallError, LoopBudgetExceededError, LoopDeadlineExceededError) as e:
            logger.debug("Query failed", exc_info=True)
            self.formatter.format_error(str(e))
            return None

        self.console.print(Markdown(answer) if answer else "[dim](no answer)[/dim]")
        return answer

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]toolrelay[/bold] - tool-calling assistant\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        while self._running:
            try:
                user_input = await asyncio.get_running_loop().run_in_executor(
                    None, lambda: input("query> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/") or user_input.lower() == "quit":
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            await self.handle_input(user_input)
