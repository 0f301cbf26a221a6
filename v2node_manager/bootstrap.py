import argparse
import logging

from rich.console import Console
from rich.logging import RichHandler

from .config import Config, ConfigManager
from .nodes import NodeOperations
from .service import ServiceRestarter, detect_controllers
from .store import ConfigStore


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Interactive manager for the v2node node configuration")
    parser.add_argument("--config-file", help="Path of the node configuration (default: /etc/v2node/config.json)")
    parser.add_argument("--service", dest="service_name", help="Service restarted after changes (default: v2node)")
    parser.add_argument(
        "--no-restart",
        dest="restart",
        action="store_false",
        default=None,
        help="Do not restart the service after changes",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Save the current settings as default configuration",
    )
    return parser


def merge_runtime_config(args: argparse.Namespace, config_manager: ConfigManager) -> tuple[Config, dict]:
    """Merge CLI args into persisted settings and return both config object and dict."""
    config = config_manager.load_config()
    config_dict = config.to_dict()

    for key, value in vars(args).items():
        if value is not None and key in config_dict:
            config_dict[key] = value

    return Config.from_dict(config_dict), config_dict


def maybe_save_config(args: argparse.Namespace, config_dict: dict, config_manager: ConfigManager) -> None:
    """Persist merged settings when --save-config is set."""
    if args.save_config:
        config_manager.save_config(**config_dict)
        print("Configuration saved successfully!")


def setup_logging(config: Config, console: Console = None) -> None:
    """Route log records through rich; WARNING by default, DEBUG in debug mode."""
    handler = RichHandler(console=console or Console(stderr=True), show_path=False)
    root = logging.getLogger("v2node_manager")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if config.debug else logging.WARNING)
    root.propagate = False


def build_operations(config: Config) -> tuple[ConfigStore, NodeOperations]:
    """Wire the store, the service restarter and the node operations from settings."""
    store = ConfigStore(config.config_path, file_mode=config.file_mode_bits, use_lock=config.lock)
    restarter = None
    if config.restart:
        controllers = detect_controllers(
            config.service_name,
            use_sudo=config.use_sudo,
            timeout=config.restart_timeout,
        )
        restarter = ServiceRestarter(config.service_name, controllers)
    return store, NodeOperations(store, restarter)
