from typing import List, Optional, Tuple

from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from .store import NodeRecord

MENU_ITEMS = [
    ("1", "List all nodes", ""),
    ("2", "Add nodes", "supports ranges, e.g. 1-5"),
    ("3", "Delete nodes", "supports ranges and lists, e.g. 1,3,5 or 96-98"),
    ("4", "Edit a node", ""),
    ("5", "Show configuration file", ""),
    ("0", "Exit", ""),
]


class NodeUI:
    """Terminal rendering and prompts for the node manager."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_message(self, content, style: str = None, end: str = "\n") -> None:
        """Display a message to the user."""
        self.console.print(content, style=style, end=end)

    def display_header(self, config_path: str) -> None:
        self.console.print(
            Panel.fit(
                f"[bold cyan]V2Node configuration manager[/bold cyan]\n[dim]Config file: {escape(config_path)}[/dim]",
                border_style="blue",
                padding=(0, 2),
            )
        )

    def display_menu(self, config_path: str) -> None:
        self.console.print()
        self.console.print("[bold cyan]V2Node configuration[/bold cyan]")
        self.console.print(f"[dim]Config file: {escape(config_path)}[/dim]\n")
        self.console.print("[bold]Choose an action (enter a number):[/bold]")
        for number, text, hint in MENU_ITEMS:
            hint_text = f" [dim]({hint})[/dim]" if hint else ""
            self.console.print(f"  [yellow]{number})[/yellow] {text}{hint_text}")

    def display_nodes(self, nodes: List[Tuple[int, NodeRecord]]) -> None:
        """Display nodes in a table keyed by display index."""
        if not nodes:
            self.console.print("No nodes configured", style="yellow")
            return

        table = Table(title=f"Nodes ({len(nodes)} total)", title_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("NodeID", style="green")
        table.add_column("ApiHost", style="blue")
        table.add_column("ApiKey", style="magenta")
        table.add_column("Timeout", style="yellow")

        for index, node in nodes:
            table.add_row(str(index), str(node.node_id), escape(node.api_host), escape(node.api_key), str(node.timeout))

        self.console.print(table)

    def display_node_choices(self, nodes: List[Tuple[int, NodeRecord]]) -> None:
        """Compact listing used when picking a node to clone settings from."""
        for index, node in nodes:
            self.console.print(f"  [yellow]{index})[/yellow] NodeID: {node.node_id}, ApiHost: {escape(node.api_host)}")

    def display_node(self, node: NodeRecord, title: str = "Current configuration") -> None:
        self.console.print(f"[dim]{escape(title)}:[/dim]")
        self.console.print(f"  NodeID: {node.node_id}")
        self.console.print(f"  ApiHost: {escape(node.api_host)}")
        self.console.print(f"  ApiKey: {escape(node.api_key)}")
        self.console.print(f"  Timeout: {node.timeout}")

    def display_raw(self, text: str) -> None:
        self.console.print("[bold cyan]Configuration file contents:[/bold cyan]")
        self.console.print(JSON(text))

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        """Prompt for one line. Empty input yields ``default`` (or an empty string)."""
        if default is None:
            answer = Prompt.ask(f"[bold]{prompt}[/bold]", console=self.console, default="", show_default=False)
        else:
            answer = Prompt.ask(f"[bold]{prompt}[/bold]", console=self.console, default=str(default))
        return answer.strip()

    def wait_for_key(self, msg: str = "Press Enter to continue...") -> None:
        """Wait for user to press Enter."""
        self.console.input(f"\n[green]Done.[/green] [dim]{msg}[/dim]")
