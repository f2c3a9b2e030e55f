"""
Rich trace handler — live terminal view of an invocation.

Subscribe it to a runner's EventBus; it renders one tree node per branch,
with each agent's messages, tool calls and failures underneath.
"""

from __future__ import annotations

import json
from datetime import datetime

from rich.console import Console
from rich.json import JSON
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..events import EventBus
from ..types import Event

_PREVIEW = 200


def _preview(text: str, limit: int = _PREVIEW) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class RichTraceHandler:
    """
    Live execution tree:
    1. one node per branch, nested by path
    2. agent messages and tool calls under their branch
    3. model call, tool call and error counters
    """

    def __init__(self, console: Console | None = None, live: bool = True) -> None:
        self.console = console or Console()
        self.use_live = live
        self.live: Live | None = None
        self.root_tree = Tree("[bold blue]weft invocation[/bold blue]")
        self.branch_nodes: dict[str, Tree] = {"": self.root_tree}
        self.agent_nodes: dict[tuple[str, str], Tree] = {}
        self.stats = {
            "start_time": datetime.now(),
            "llm_calls": 0,
            "tool_calls": 0,
            "errors": 0,
        }

    def attach(self, bus: EventBus) -> None:
        bus.on_all(self.emit)

    def start(self) -> None:
        self.live = Live(self._render_layout(), console=self.console, refresh_per_second=10)
        self.live.start()

    def stop(self) -> None:
        if self.live:
            self.live.stop()
            self.live = None
        self._print_summary()

    def _render_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=3),
        )
        duration = datetime.now() - self.stats["start_time"]
        layout["header"].update(Panel(
            f" [bold]weft[/bold] | Duration: {str(duration).split('.')[0]} | "
            f"Branches: {len(self.branch_nodes) - 1}",
            style="white on blue",
        ))
        layout["body"].update(Panel(self.root_tree, title="Execution Trace", border_style="blue"))
        layout["footer"].update(Panel(self._stats_line(), style="white on black"))
        return layout

    def _stats_line(self) -> str:
        return (
            f"LLM Calls: {self.stats['llm_calls']} | "
            f"Tool Calls: {self.stats['tool_calls']} | "
            f"Errors: {self.stats['errors']}"
        )

    async def emit(self, event: Event) -> None:
        if self.use_live and not self.live:
            self.start()

        handler = {
            "message": self._handle_message,
            "function_call": self._handle_function_call,
            "function_response": self._handle_function_response,
            "error": self._handle_error,
            "checkpoint": self._handle_checkpoint,
        }.get(event.type)
        if handler:
            handler(event)

        if self.live:
            self.live.update(self._render_layout())

    # -- Tree bookkeeping --

    def _branch_node(self, branch: str) -> Tree:
        node = self.branch_nodes.get(branch)
        if node is not None:
            return node
        parent_path, _, segment = branch.rpartition(".")
        node = self._branch_node(parent_path).add(f"[cyan]{segment}[/cyan]")
        self.branch_nodes[branch] = node
        return node

    def _agent_node(self, event: Event) -> Tree:
        key = (event.branch, event.author)
        node = self.agent_nodes.get(key)
        if node is None:
            icon = "[bold]user[/bold]" if event.author == "user" else f"[bold green]Agent: {event.author}[/bold green]"
            node = self._branch_node(event.branch).add(icon)
            self.agent_nodes[key] = node
        return node

    def _count_model_call(self, event: Event) -> None:
        if event.author != "user" and event.content is not None and event.content.role == "model":
            self.stats["llm_calls"] += 1

    # -- Event handlers --

    def _handle_message(self, event: Event) -> None:
        self._count_model_call(event)
        text = event.text
        if text:
            self._agent_node(event).add(Text(_preview(text)))

    def _handle_function_call(self, event: Event) -> None:
        self._count_model_call(event)
        node = self._agent_node(event)
        for call in event.get_function_calls():
            style = "magenta" if call.id in event.long_running_tool_ids else "yellow"
            tool_node = node.add(f"[bold {style}]Tool: {call.name}[/bold {style}]")
            tool_node.add(JSON(json.dumps(call.args, ensure_ascii=False, default=str)))

    def _handle_function_response(self, event: Event) -> None:
        node = self._agent_node(event)
        for response in event.get_function_responses():
            self.stats["tool_calls"] += 1
            if "error_code" in response.response:
                self.stats["errors"] += 1
                node.add(f"   [bold red]{response.name} failed: {response.response.get('error', '')}[/bold red]")
            else:
                result = json.dumps(response.response, ensure_ascii=False, default=str)
                node.add(f"   [dim]{response.name} -> {_preview(result, 500)}[/dim]")

    def _handle_error(self, event: Event) -> None:
        self.stats["errors"] += 1
        self._agent_node(event).add(f"[bold red]Error [{event.error_code}][/bold red]: {event.error_message}")

    def _handle_checkpoint(self, event: Event) -> None:
        label = "completed" if event.actions.end_of_agent else f"checkpoint {event.actions.agent_state}"
        self._agent_node(event).add(f"[dim]{label}[/dim]")

    def _print_summary(self) -> None:
        table = Table(title="Execution Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="magenta")

        table.add_row("Duration", str(datetime.now() - self.stats["start_time"]))
        table.add_row("Total LLM Calls", str(self.stats["llm_calls"]))
        table.add_row("Total Tool Calls", str(self.stats["tool_calls"]))
        table.add_row("Errors", str(self.stats["errors"]))

        self.console.print(table)
