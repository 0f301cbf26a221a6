from rich.console import Console

from .bootstrap import build_arg_parser, build_operations, maybe_save_config, merge_runtime_config, setup_logging
from .config import ConfigManager
from .menu import NodeMenu
from .store import ConfigStoreError
from .ui import NodeUI


def main(argv=None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)
    console = Console()

    config_manager = ConfigManager()
    try:
        config, config_dict = merge_runtime_config(args, config_manager)
        maybe_save_config(args, config_dict, config_manager)
    except Exception as exc:
        console.print(str(exc), style="red")
        return 1

    setup_logging(config)
    ui = NodeUI(console)

    try:
        store, operations = build_operations(config)
        store.load()
        return NodeMenu(config, store, operations, ui).run()
    except ConfigStoreError as exc:
        console.print(f"Error: {exc}", style="bold red")
        console.print("Check the file permissions or run this tool with sudo.", style="dim")
        return 1
    except (KeyboardInterrupt, EOFError):
        console.print("\nCancelled.", style="yellow")
        return 130
