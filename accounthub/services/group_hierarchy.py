"""
Group hierarchy engine.

Account groups form a forest per tenant, stored only as ``parent_group_id``
back-references. This module materializes trees and walks the chains on
demand. Every walk carries a visited set: reparenting is serialized per
tenant from now on, but rows written before that (or edited by hand) may
already contain cycles, and reads must still terminate on them.

Read operations never raise on missing or corrupted data; they return what
they could resolve. Only ``would_create_cycle`` is used to hard-fail a write.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from accounthub.models.account_group import AccountGroup
from accounthub.repositories.account_group_repository import AccountGroupRepository

logger = logging.getLogger(__name__)


@dataclass
class GroupNode:
    """A live group and its live children, as placed in a materialized tree."""

    group: AccountGroup
    children: list["GroupNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.group.id

    @property
    def tenant_id(self) -> int:
        return self.group.tenant_id

    @property
    def parent_group_id(self) -> int | None:
        return self.group.parent_group_id

    @property
    def name(self) -> str:
        return self.group.name

    @property
    def description(self) -> str | None:
        return self.group.description

    @property
    def created_at(self) -> datetime:
        return self.group.created_at

    @property
    def updated_at(self) -> datetime:
        return self.group.updated_at


class GroupHierarchy:
    """Tree, ancestor, descendant and cycle queries over one database session"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountGroupRepository(db)

    def build_tree(self, tenant_id: int) -> list[GroupNode]:
        """
        Materialize the tenant's live groups as a forest.

        A group whose parent is missing, deleted or in another tenant becomes
        a root. Groups caught in a parent cycle would be unreachable from any
        root; one node per cycle is promoted to a root so every live group
        appears exactly once.

        Args:
            tenant_id: Tenant whose groups to load

        Returns:
            Root nodes, in group id order
        """
        groups = self.repo.list_by_tenant(tenant_id)
        nodes: dict[int, GroupNode] = {g.id: GroupNode(g) for g in groups}
        roots: list[GroupNode] = []
        parent_of: dict[int, int] = {}

        for group in groups:
            node = nodes[group.id]
            parent_id = group.parent_group_id
            if parent_id is not None and parent_id in nodes and parent_id != group.id:
                nodes[parent_id].children.append(node)
                parent_of[group.id] = parent_id
            else:
                roots.append(node)

        reachable: set[int] = set()
        for root in roots:
            self._mark_reachable(root, reachable)

        for group in groups:
            if group.id in reachable:
                continue
            cycle_node_id = self._find_cycle_member(group.id, parent_of)
            parent = nodes[parent_of[cycle_node_id]]
            parent.children = [c for c in parent.children if c.id != cycle_node_id]
            del parent_of[cycle_node_id]
            node = nodes[cycle_node_id]
            roots.append(node)
            self._mark_reachable(node, reachable)
            logger.warning(
                "Cyclic group hierarchy, promoted group to root",
                extra={"tenant_id": tenant_id, "group_id": cycle_node_id},
            )

        roots.sort(key=lambda n: n.id)
        return roots

    @staticmethod
    def _mark_reachable(start: GroupNode, reachable: set[int]) -> None:
        stack = [start]
        while stack:
            node = stack.pop()
            if node.id in reachable:
                continue
            reachable.add(node.id)
            stack.extend(node.children)

    @staticmethod
    def _find_cycle_member(group_id: int, parent_of: dict[int, int]) -> int:
        # An unreachable node always leads upward into a cycle; the first
        # revisited id is on it.
        seen: set[int] = set()
        current = group_id
        while current not in seen:
            seen.add(current)
            current = parent_of[current]
        return current

    def get_ancestors(self, group_id: int) -> list[AccountGroup]:
        """
        Walk up from a group, one parent lookup at a time.

        The walk stops at a null parent, or at a missing or deleted ancestor
        (which is not included).

        Args:
            group_id: Starting group

        Returns:
            Ancestors from immediate parent to root; empty when the group is
            missing or deleted
        """
        group = self.repo.get_by_id(group_id, include_deleted=True)
        if group is None or group.is_deleted:
            return []

        ancestors: list[AccountGroup] = []
        visited = {group.id}
        parent_id = group.parent_group_id
        while parent_id is not None:
            if parent_id in visited:
                logger.warning(
                    "Cycle detected while walking group ancestors",
                    extra={"group_id": group_id},
                )
                break
            visited.add(parent_id)
            parent = self.repo.get_by_id(parent_id, include_deleted=True)
            if parent is None or parent.is_deleted:
                break
            ancestors.append(parent)
            parent_id = parent.parent_group_id
        return ancestors

    def get_descendants(self, group_id: int) -> list[AccountGroup]:
        """
        Collect every live group below a group.

        Only live children are followed, so a deleted intermediate group cuts
        off its subtree. The start group is never part of the result.

        Args:
            group_id: Starting group

        Returns:
            Descendant groups in breadth-first order
        """
        if self.repo.get_by_id(group_id, include_deleted=True) is None:
            return []

        descendants: list[AccountGroup] = []
        found = {group_id}
        processed: set[int] = set()
        queue = deque([group_id])
        while queue:
            current = queue.popleft()
            if current in processed:
                continue
            processed.add(current)
            for child in self.repo.list_children(current):
                if child.id in found:
                    continue
                found.add(child.id)
                descendants.append(child)
                queue.append(child.id)
        return descendants

    def would_create_cycle(self, group_id: int, new_parent_id: int | None) -> bool:
        """
        Check whether making ``new_parent_id`` the parent of ``group_id`` closes a loop.

        Walks up from the proposed parent through every row, deleted or not,
        since a deleted group keeps its place in the chain once restored.

        Args:
            group_id: Group being moved
            new_parent_id: Proposed parent, None for root placement

        Returns:
            True if the move would create a cycle, or the existing chain
            already contains one
        """
        if new_parent_id is None:
            return False
        if new_parent_id == group_id:
            return True

        visited: set[int] = set()
        current: int | None = new_parent_id
        while current is not None:
            if current == group_id:
                return True
            if current in visited:
                logger.warning(
                    "Existing cycle found in group hierarchy",
                    extra={"group_id": group_id},
                )
                return True
            visited.add(current)
            group = self.repo.get_by_id(current, include_deleted=True)
            if group is None:
                return False
            current = group.parent_group_id
        return False
