import contextlib
import copy
import datetime as _dt
import fcntl
import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG = {"Level": "warning", "Output": "", "Access": "none"}
NODE_FIELDS = ("NodeID", "ApiHost", "ApiKey", "Timeout")


class ConfigStoreError(Exception):
    """Raised when the node document cannot be read or written."""


class DocumentFormatError(ValueError):
    """Raised when JSON content does not describe a node document."""


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise DocumentFormatError(f"{field_name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise DocumentFormatError(f"{field_name} must be an integer, got {value!r}")


@dataclass
class NodeRecord:
    """One entry of the ``Nodes`` array.

    ``source`` is the object as read from the file. Serialising starts from it
    and only overwrites fields whose value changed, so unknown keys and the
    original spelling of untouched fields survive a save.
    """

    node_id: int
    api_host: str
    api_key: str
    timeout: int = 15
    source: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict) -> "NodeRecord":
        if not isinstance(data, dict):
            raise DocumentFormatError(f"Node entry must be an object, got {type(data).__name__}")
        return cls(**cls._parse_fields(data), source=data)

    @staticmethod
    def _parse_fields(data: dict) -> Dict[str, Any]:
        return {
            "node_id": _as_int(data.get("NodeID"), "NodeID"),
            "api_host": str(data.get("ApiHost", "")),
            "api_key": str(data.get("ApiKey", "")),
            "timeout": _as_int(data.get("Timeout", 15), "Timeout"),
        }

    def to_dict(self) -> dict:
        current = {
            "NodeID": self.node_id,
            "ApiHost": self.api_host,
            "ApiKey": self.api_key,
            "Timeout": self.timeout,
        }
        if not self.source:
            return current

        loaded = dict(zip(NODE_FIELDS, self._parse_fields(self.source).values()))
        data = copy.deepcopy(self.source)
        for key, value in current.items():
            if loaded[key] != value:
                data[key] = value
        return data


@dataclass
class NodeDocument:
    """The whole configuration file: ``{"Log": {...}, "Nodes": [...]}`` plus any other keys.

    ``log`` is None when the file has no ``Log`` section; it is then left out on save.
    """

    log: Optional[Dict[str, Any]] = field(default_factory=lambda: dict(DEFAULT_LOG))
    nodes: List[NodeRecord] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "NodeDocument":
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> "NodeDocument":
        if not isinstance(data, dict):
            raise DocumentFormatError("Top level of the config file must be an object")

        log = data.get("Log")
        if log is not None and not isinstance(log, dict):
            raise DocumentFormatError("Log must be an object")

        nodes = data.get("Nodes", [])
        if not isinstance(nodes, list):
            raise DocumentFormatError("Nodes must be an array")

        return cls(
            log=log,
            nodes=[NodeRecord.from_dict(item) for item in nodes],
            extra={key: value for key, value in data.items() if key not in ("Log", "Nodes")},
        )

    def to_dict(self) -> dict:
        data = {}
        if self.log is not None:
            data["Log"] = copy.deepcopy(self.log)
        data["Nodes"] = [node.to_dict() for node in self.nodes]
        data.update(copy.deepcopy(self.extra))
        return data

    def node_ids(self) -> List[int]:
        return [node.node_id for node in self.nodes]


class ConfigStore:
    """Reads and writes the node document at a fixed path.

    The file is the only source of truth: every call to :meth:`load` reads it
    again, and every :meth:`save` replaces it atomically through a temporary
    file in the same directory.
    """

    def __init__(self, path: Path, file_mode: int = 0o644, use_lock: bool = True):
        self.path = Path(path)
        self.file_mode = file_mode
        self.use_lock = use_lock

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def load(self) -> NodeDocument:
        """Load the document, creating or replacing it with the default when missing or invalid."""
        if not self.path.exists():
            logger.warning("Config file %s does not exist, creating default configuration", self.path)
            document = NodeDocument.default()
            self.save(document)
            return document

        try:
            with open(self.path, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
            return NodeDocument.from_dict(data)
        except (json.JSONDecodeError, DocumentFormatError) as exc:
            backup = self._backup_invalid()
            logger.warning("Config file %s is invalid (%s); saved a copy to %s", self.path, exc, backup)
            document = NodeDocument.default()
            self.save(document)
            return document
        except OSError as exc:
            raise ConfigStoreError(f"Failed to read {self.path}: {exc}") from exc

    def save(self, document: NodeDocument) -> None:
        """Atomically replace the file with ``document``."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".config.", suffix=".tmp", dir=str(self.path.parent))
        except OSError as exc:
            raise ConfigStoreError(f"Failed to write {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(document.to_dict(), file_obj, ensure_ascii=False, indent=2)
                file_obj.write("\n")
            os.chmod(tmp, self.file_mode)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise ConfigStoreError(f"Failed to write {self.path}: {exc}") from exc
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        logger.debug("Saved %d nodes to %s", len(document.nodes), self.path)

    def raw_text(self) -> str:
        """Return the current file contents, pretty-printed."""
        document = self.load()
        return json.dumps(document.to_dict(), ensure_ascii=False, indent=2)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[NodeDocument]:
        """Load, yield for mutation, then save; holds the lock file for the whole span.

        Nothing is written when the body raises.
        """
        with self._locked():
            document = self.load()
            yield document
            self.save(document)

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        if not self.use_lock:
            yield
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            lock_file = open(self.lock_path, "a", encoding="utf-8")
        except OSError as exc:
            raise ConfigStoreError(f"Failed to open lock file {self.lock_path}: {exc}") from exc

        with lock_file:
            logger.debug("Waiting for lock %s", self.lock_path)
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _backup_invalid(self) -> Optional[Path]:
        timestamp = _dt.datetime.now().strftime("%Y%m%d-%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.broken-{timestamp}")
        try:
            shutil.copy2(self.path, backup)
        except OSError as exc:
            raise ConfigStoreError(f"Failed to back up invalid config {self.path}: {exc}") from exc
        return backup
