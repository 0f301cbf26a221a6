import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from .ranges import parse_id_spec, parse_selection
from .service import RestartResult, ServiceRestarter
from .store import ConfigStore, NodeRecord

logger = logging.getLogger(__name__)


class NodeOperationError(Exception):
    """Raised when a node operation is rejected; the document is left unchanged."""


@dataclass
class AddResult:
    added: List[NodeRecord] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    restart: Optional[RestartResult] = None


@dataclass
class DeleteResult:
    removed: List[NodeRecord] = field(default_factory=list)
    unresolved: List[int] = field(default_factory=list)
    restart: Optional[RestartResult] = None


@dataclass
class EditResult:
    before: NodeRecord
    after: NodeRecord
    restart: Optional[RestartResult] = None


def resolve_delete_targets(numbers: List[int], node_ids: List[int]) -> Tuple[List[int], List[int]]:
    """Map parsed numbers to storage indices.

    A number within ``1..len(node_ids)`` is a display index; anything else is
    looked up as a NodeID. Returns ``(indices, unresolved)`` with indices
    deduplicated and sorted highest first.
    """
    count = len(node_ids)
    indices = set()
    unresolved = []
    for number in numbers:
        if 1 <= number <= count:
            indices.add(number - 1)
            continue
        if number in node_ids:
            indices.add(node_ids.index(number))
        elif number not in unresolved:
            unresolved.append(number)
    return sorted(indices, reverse=True), unresolved


class NodeOperations:
    """List, add, delete and edit nodes as read-modify-write cycles on the store."""

    def __init__(self, store: ConfigStore, restarter: Optional[ServiceRestarter] = None):
        self.store = store
        self.restarter = restarter

    def list_nodes(self) -> List[Tuple[int, NodeRecord]]:
        """Return ``(display_index, node)`` pairs."""
        document = self.store.load()
        return [(index, node) for index, node in enumerate(document.nodes, start=1)]

    def get_node(self, display_index: int) -> NodeRecord:
        document = self.store.load()
        return document.nodes[self._storage_index(display_index, len(document.nodes))]

    def add_nodes(self, api_host: str, api_key: str, timeout: int, node_id_spec: str) -> AddResult:
        if not api_host:
            raise NodeOperationError("API Host cannot be empty")
        if not api_key:
            raise NodeOperationError("API Key cannot be empty")
        if timeout < 0:
            raise NodeOperationError("Timeout must be a non-negative integer")

        requested = parse_id_spec(node_id_spec)
        result = AddResult()

        with self.store.transaction() as document:
            existing = set(document.node_ids())
            for node_id in requested:
                if node_id in existing:
                    result.skipped.append(node_id)
                    continue
                node = NodeRecord(node_id=node_id, api_host=api_host, api_key=api_key, timeout=timeout)
                document.nodes.append(node)
                existing.add(node_id)
                result.added.append(node)

            if not result.added:
                skipped = ", ".join(str(node_id) for node_id in result.skipped)
                raise NodeOperationError(f"Nothing to add: NodeID {skipped} already exists")

        logger.debug("Added NodeIDs %s, skipped %s", [node.node_id for node in result.added], result.skipped)
        result.restart = self._restart()
        return result

    def delete_nodes(self, selection: str) -> DeleteResult:
        numbers = parse_selection(selection)
        result = DeleteResult()

        with self.store.transaction() as document:
            indices, result.unresolved = resolve_delete_targets(numbers, document.node_ids())
            if not indices:
                raise NodeOperationError("No matching nodes found to delete")
            for index in indices:
                result.removed.append(document.nodes.pop(index))

        result.removed.reverse()
        logger.debug("Deleted NodeIDs %s", [node.node_id for node in result.removed])
        result.restart = self._restart()
        return result

    def edit_node(
        self,
        display_index: int,
        node_id: Optional[int] = None,
        api_host: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> EditResult:
        """Replace fields of one node; ``None`` or empty values keep the current value."""
        with self.store.transaction() as document:
            index = self._storage_index(display_index, len(document.nodes))
            current = document.nodes[index]

            new_id = current.node_id if node_id is None else node_id
            if new_id != current.node_id:
                others = [node.node_id for position, node in enumerate(document.nodes) if position != index]
                if new_id in others:
                    raise NodeOperationError(f"NodeID {new_id} is already used by another node")
            if timeout is not None and timeout < 0:
                raise NodeOperationError("Timeout must be a non-negative integer")

            updated = replace(
                current,
                node_id=new_id,
                api_host=api_host or current.api_host,
                api_key=api_key or current.api_key,
                timeout=current.timeout if timeout is None else timeout,
            )
            document.nodes[index] = updated

        result = EditResult(before=current, after=updated)
        result.restart = self._restart()
        return result

    def _storage_index(self, display_index: int, count: int) -> int:
        if count == 0:
            raise NodeOperationError("There are no nodes")
        if not 1 <= display_index <= count:
            raise NodeOperationError(f"Invalid node number {display_index} (expected 1-{count})")
        return display_index - 1

    def _restart(self) -> Optional[RestartResult]:
        if self.restarter is None:
            return None
        return self.restarter.restart()
