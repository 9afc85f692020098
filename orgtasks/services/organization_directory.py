"""
Hierarchy queries over the organization tree.

Inactive organizations are treated as absent: they are never returned, never
traversed through, and an inactive or unknown starting organization yields an
empty result. Every walk keeps a visited set, so malformed data (a parent
cycle, or a child linked under two active parents) cannot loop forever or
report an organization twice.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

logger = logging.getLogger(__name__)


class OrganizationRecord(Protocol):
    """The fields traversal reads from a stored organization."""

    id: str
    parent_id: Optional[str]
    is_active: bool
    level: int


class OrganizationStore(Protocol):
    """Storage collaborator; OrganizationRepository and OrganizationSnapshot both satisfy it."""

    def find_by_id(self, org_id: str) -> Optional[OrganizationRecord]: ...

    def find_children(self, parent_id: str) -> list[OrganizationRecord]: ...


@dataclass(frozen=True)
class OrganizationNode:
    id: str
    parent_id: Optional[str]
    is_active: bool
    level: int = 0


class OrganizationSnapshot:
    """
    In-memory organization store built from a single load of the table.

    Lets one request run any number of hierarchy queries without a database
    round-trip per tree level. The snapshot is immutable, so concurrent
    reparenting can only make an answer stale, never inconsistent.
    """

    def __init__(self, records: Iterable[OrganizationRecord]):
        self._by_id: dict[str, OrganizationNode] = {}
        self._children: dict[str, list[OrganizationNode]] = defaultdict(list)

        for record in records:
            node = OrganizationNode(
                id=record.id,
                parent_id=record.parent_id,
                is_active=bool(record.is_active),
                level=record.level or 0,
            )
            self._by_id[node.id] = node

        for node in self._by_id.values():
            if node.parent_id is not None:
                self._children[node.parent_id].append(node)

    def find_by_id(self, org_id: str) -> Optional[OrganizationNode]:
        return self._by_id.get(org_id)

    def find_children(self, parent_id: str) -> list[OrganizationNode]:
        return list(self._children.get(parent_id, ()))


class OrganizationDirectory:
    """Answers ancestor/descendant/root/level questions for the organization tree."""

    def __init__(self, store: OrganizationStore):
        self.store = store

    def _find_active(self, org_id: Optional[str]) -> Optional[OrganizationRecord]:
        if org_id is None:
            return None
        org = self.store.find_by_id(org_id)
        if org is None or not org.is_active:
            return None
        return org

    def descendants(self, org_id: str) -> set[str]:
        """
        Breadth-first walk below org_id following active children only.

        Args:
            org_id: Starting organization

        Returns:
            Set containing org_id and every active organization beneath it;
            empty if org_id is unknown or inactive
        """
        if self._find_active(org_id) is None:
            return set()

        visited = {org_id}
        queue = deque([org_id])

        while queue:
            current = queue.popleft()
            for child in self.store.find_children(current):
                if not child.is_active:
                    continue
                if child.id in visited:
                    logger.warning(
                        "Organization %s reached twice while walking below %s; "
                        "hierarchy contains a cycle or a shared child",
                        child.id,
                        org_id,
                    )
                    continue
                visited.add(child.id)
                queue.append(child.id)

        return visited

    def ancestor_chain(self, org_id: str) -> list[str]:
        """
        Walk parent links upward from org_id (inclusive), nearest first.

        The walk stops at a root (null parent), at an unknown or inactive
        parent, or on revisiting an organization already seen.

        Returns:
            Ordered list of organization IDs; empty if org_id is unknown or inactive
        """
        chain: list[str] = []
        seen: set[str] = set()
        current = self._find_active(org_id)

        while current is not None:
            if current.id in seen:
                logger.warning(
                    "Parent cycle detected at organization %s while walking up from %s",
                    current.id,
                    org_id,
                )
                break
            seen.add(current.id)
            chain.append(current.id)
            current = self._find_active(current.parent_id)

        return chain

    def ancestors(self, org_id: str) -> set[str]:
        """Set of org_id and all its active ancestors; empty if org_id is unknown or inactive."""
        return set(self.ancestor_chain(org_id))

    def is_descendant_of(self, candidate_id: str, ancestor_id: str) -> bool:
        """
        True iff walking up from candidate_id reaches ancestor_id.

        An active organization is a descendant of itself.
        """
        return ancestor_id in self.ancestor_chain(candidate_id)

    def is_ancestor_of(self, ancestor_id: str, candidate_id: str) -> bool:
        """True iff candidate_id is in descendants(ancestor_id)."""
        return candidate_id in self.descendants(ancestor_id)

    def root(self, org_id: str) -> Optional[str]:
        """Topmost organization reached walking up from org_id, or None if org_id is unknown or inactive."""
        chain = self.ancestor_chain(org_id)
        return chain[-1] if chain else None

    def level(self, org_id: str) -> int:
        """Stored depth of org_id; 0 if unknown or inactive."""
        org = self._find_active(org_id)
        return org.level if org is not None else 0
