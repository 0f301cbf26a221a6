from dataclasses import asdict, dataclass
from pathlib import Path

import toml

DEFAULT_CONFIG_FILE = "/etc/v2node/config.json"
DEFAULT_SERVICE_NAME = "v2node"


@dataclass
class Config:
    """Settings for the node manager itself."""

    config_file: str = DEFAULT_CONFIG_FILE
    service_name: str = DEFAULT_SERVICE_NAME
    default_timeout: int = 15
    file_mode: str = "0644"
    use_sudo: str = "auto"
    restart: bool = True
    restart_timeout: float = 60.0
    lock: bool = True
    debug: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config instance from dictionary."""
        return cls(**{key: value for key, value in data.items() if key in cls.__annotations__})

    def to_dict(self) -> dict:
        """Convert Config to dictionary."""
        return {key: value for key, value in asdict(self).items()}

    @property
    def config_path(self) -> Path:
        return Path(self.config_file).expanduser()

    @property
    def file_mode_bits(self) -> int:
        """Permission bits for the node document, parsed from the octal string."""
        return int(str(self.file_mode), 8)


class ConfigManager:
    """Manages settings storage and retrieval (TOML version)."""

    def __init__(self, config_file: Path = None):
        self.config_file = config_file or Path.home() / ".v2node_manager.toml"
        self.default_config = Config()

    def save_config(self, **kwargs) -> None:
        """Save settings to hidden TOML file in user's home directory."""
        try:
            config = self.load_config()
            config_dict = config.to_dict()

            for key, value in kwargs.items():
                if value is not None and key in config_dict:
                    config_dict[key] = value

            with open(self.config_file, "w", encoding="utf-8") as file_obj:
                toml.dump(config_dict, file_obj)

            self.config_file.chmod(0o600)
        except Exception as exc:
            raise Exception(f"Failed to save config: {str(exc)}") from exc

    def load_config(self) -> Config:
        """Load settings from hidden TOML file."""
        try:
            if self.config_file.exists():
                with open(self.config_file, "r", encoding="utf-8") as file_obj:
                    config_dict = toml.load(file_obj)
                combined_config = {**self.default_config.to_dict(), **config_dict}
                return Config.from_dict(combined_config)
            return Config()
        except Exception as exc:
            raise Exception(f"Failed to load config: {str(exc)}") from exc
