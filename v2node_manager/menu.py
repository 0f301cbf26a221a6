from typing import Callable, Dict, Optional

from rich.markup import escape

from .config import Config
from .nodes import NodeOperationError, NodeOperations
from .ranges import SelectionError, parse_int
from .service import RestartResult
from .store import ConfigStore
from .ui import NodeUI

EXIT_CHOICE = "0"


class NodeMenu:
    """Numbered top-level menu; dispatches each choice to an interactive flow."""

    def __init__(self, config: Config, store: ConfigStore, operations: NodeOperations, ui: NodeUI):
        self.config = config
        self.store = store
        self.operations = operations
        self.ui = ui
        self.handlers: Dict[str, Callable[[], None]] = {
            "1": self._handle_list,
            "2": self._handle_add,
            "3": self._handle_delete,
            "4": self._handle_edit,
            "5": self._handle_show_raw,
        }

    def run(self) -> int:
        """Loop until the exit choice is entered. Returns the process exit code."""
        self.ui.display_header(str(self.store.path))
        while True:
            self.ui.display_menu(str(self.store.path))
            choice = self.ui.ask("Your choice")
            if choice == EXIT_CHOICE:
                return 0
            if not self.execute(choice):
                self.ui.display_message("Invalid option, please choose again", style="red")
                continue
            self.ui.wait_for_key()

    def execute(self, choice: str) -> bool:
        """Run the handler for ``choice``. Returns False when the choice is unknown."""
        handler = self.handlers.get(choice)
        if not handler:
            return False
        try:
            handler()
        except (SelectionError, NodeOperationError) as exc:
            self.ui.display_message(escape(str(exc)), style="red")
        return True

    def _handle_list(self) -> None:
        self.ui.display_nodes(self.operations.list_nodes())

    def _handle_add(self) -> None:
        self.ui.display_message("Add nodes", style="bold cyan")
        nodes = self.operations.list_nodes()

        source = None
        if nodes:
            self.ui.display_message("Reuse ApiHost and ApiKey from an existing node?", style="bold")
            self.ui.display_message("  [yellow]1)[/yellow] Yes, pick an existing node")
            self.ui.display_message("  [yellow]2)[/yellow] No, enter them manually")
            if self.ui.ask("Your choice", default="2") == "1":
                self.ui.display_node_choices(nodes)
                selected = self._ask_int(f"Node number (1-{len(nodes)})")
                if selected is None:
                    raise NodeOperationError("Invalid node number, cancelled")
                source = self.operations.get_node(selected)
                self.ui.display_node(source, title="Selected node settings")

        if source is not None:
            api_host, api_key, timeout = source.api_host, source.api_key, source.timeout
        else:
            api_host = self.ui.ask("API Host")
            if not api_host:
                raise NodeOperationError("API Host cannot be empty")
            api_key = self.ui.ask("API Key")
            if not api_key:
                raise NodeOperationError("API Key cannot be empty")
            timeout = self._ask_int("Timeout", default=self.config.default_timeout)
            if timeout is None:
                raise NodeOperationError("Timeout must be a non-negative integer")

        node_id_spec = self.ui.ask("NodeID (a single number such as 95, or a range such as 1-5)")
        if not node_id_spec:
            self.ui.display_message("Cancelled", style="red")
            return

        result = self.operations.add_nodes(api_host, api_key, timeout, node_id_spec)
        for node_id in result.skipped:
            self.ui.display_message(f"Warning: NodeID {node_id} already exists, skipped", style="yellow")
        self.ui.display_message(f"Added {len(result.added)} node(s)", style="green")
        self.ui.display_message(f"NodeID: {' '.join(str(node.node_id) for node in result.added)}", style="dim")
        self.ui.display_message(f"ApiHost: {escape(api_host)}", style="dim")
        self._report_restart(result.restart)

    def _handle_delete(self) -> None:
        nodes = self.operations.list_nodes()
        self.ui.display_nodes(nodes)
        if not nodes:
            self.ui.display_message("No nodes to delete", style="yellow")
            return

        selection = self.ui.ask(
            f"Node numbers (1-{len(nodes)}) or NodeIDs to delete; single, range or comma list, "
            "e.g. 1,3,5 or 1-5 or 96-98"
        )
        if not selection:
            self.ui.display_message("Cancelled", style="red")
            return

        result = self.operations.delete_nodes(selection)
        for number in result.unresolved:
            self.ui.display_message(f"Warning: NodeID {number} not found, skipped", style="yellow")
        self.ui.display_message(f"Deleted {len(result.removed)} node(s)", style="green")
        self._report_restart(result.restart)

    def _handle_edit(self) -> None:
        nodes = self.operations.list_nodes()
        self.ui.display_nodes(nodes)
        if not nodes:
            self.ui.display_message("No nodes to edit", style="yellow")
            return

        display_index = self._ask_int(f"Node number to edit (1-{len(nodes)})")
        if display_index is None:
            raise NodeOperationError("Invalid node number")
        current = self.operations.get_node(display_index)
        self.ui.display_node(current)

        node_id = self._ask_int("NodeID", default=current.node_id)
        if node_id is None:
            raise NodeOperationError("NodeID must be a non-negative integer")
        api_host = self.ui.ask("API Host", default=current.api_host)
        api_key = self.ui.ask("API Key", default=current.api_key)
        timeout = self._ask_int("Timeout", default=current.timeout)
        if timeout is None:
            raise NodeOperationError("Timeout must be a non-negative integer")

        result = self.operations.edit_node(
            display_index,
            node_id=node_id,
            api_host=api_host,
            api_key=api_key,
            timeout=timeout,
        )
        self.ui.display_message(f"Node {display_index} updated (NodeID {result.after.node_id})", style="green")
        self._report_restart(result.restart)

    def _handle_show_raw(self) -> None:
        self.ui.display_raw(self.store.raw_text())

    def _ask_int(self, prompt: str, default: Optional[int] = None) -> Optional[int]:
        """Ask for a non-negative integer; returns None when the answer is empty or not a number."""
        answer = self.ui.ask(prompt, default=None if default is None else str(default))
        return parse_int(answer)

    def _report_restart(self, result: Optional[RestartResult]) -> None:
        service = escape(self.config.service_name)
        if result is None:
            self.ui.display_message(f"Automatic restart is disabled; restart {service} to apply changes", style="dim")
            return
        if result.success:
            self.ui.display_message(f"{service} service restarted ({result.controller})", style="green")
            return
        self.ui.display_message(f"Could not restart {service} automatically, please restart it manually", style="yellow")
        self.ui.display_message(f"You can try: {escape(result.manual_hint(self.config.service_name))}", style="dim")
