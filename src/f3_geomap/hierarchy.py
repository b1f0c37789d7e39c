"""
Hierarchy index over organizations.

Builds the parent -> children adjacency once and answers descendant
queries from a per-id memo.  The memo lives as long as the index; when the
organization collection changes, build a new index (or call ``reset()``
after swapping collections in the session).

Missing data is never an error here: unknown ids yield empty results and
a parent id that points nowhere simply ends an upward walk.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .models import Organization, OrgType

logger = logging.getLogger(__name__)


class HierarchyIndex:
    """Parent/child adjacency with memoized descendant sets."""

    def __init__(self, orgs: Iterable[Organization]):
        self._orgs: list[Organization] = list(orgs)
        self._by_id: dict[int, Organization] = {}
        self._children: dict[int, list[Organization]] = {}
        self._descendants: dict[int, tuple[int, ...]] = {}
        self._build()

    def _build(self) -> None:
        for org in self._orgs:
            self._by_id[org.id] = org
        # Insertion order is load order; children are never sorted
        for org in self._orgs:
            if org.parent_id is None:
                continue
            self._children.setdefault(org.parent_id, []).append(org)

    def reset(self) -> None:
        """Drop the descendant memo."""
        self._descendants.clear()

    # --- Lookup ---

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, org_id: object) -> bool:
        return org_id in self._by_id

    def get(self, org_id: Optional[int]) -> Optional[Organization]:
        if org_id is None:
            return None
        return self._by_id.get(org_id)

    def all(self) -> list[Organization]:
        return list(self._orgs)

    def children(self, org_id: int) -> list[Organization]:
        return list(self._children.get(org_id, []))

    def orgs_of_type(self, org_type: OrgType) -> list[Organization]:
        return [org for org in self._orgs if org.org_type == org_type]

    # --- Traversal ---

    def descendants(self, org_id: int) -> tuple[int, ...]:
        """``org_id`` followed by every organization below it.

        Each id appears once.  Unknown ids give an empty tuple.
        """
        cached = self._descendants.get(org_id)
        if cached is not None:
            return cached
        if org_id not in self._by_id:
            return ()

        result, complete = self._collect(org_id, set())
        if complete:
            self._descendants[org_id] = result
        return result

    def _collect(self, org_id: int, visiting: set[int]) -> tuple[tuple[int, ...], bool]:
        cached = self._descendants.get(org_id)
        if cached is not None:
            return cached, True
        if org_id in visiting:
            logger.warning(f"Cycle in parent links at organization {org_id}; truncating")
            return (), False

        visiting.add(org_id)
        ids = [org_id]
        seen = {org_id}
        complete = True
        for child in self._children.get(org_id, []):
            child_ids, child_complete = self._collect(child.id, visiting)
            complete = complete and child_complete
            for cid in child_ids:
                if cid not in seen:
                    seen.add(cid)
                    ids.append(cid)
        visiting.discard(org_id)

        result = tuple(ids)
        # Results cut short by a cycle depend on the entry point; don't memoize them
        if complete:
            self._descendants[org_id] = result
        return result, complete

    def ancestors(self, org_id: int) -> list[Organization]:
        """Root-to-``org_id`` chain of organizations, ``org_id`` included.

        The walk stops at a missing parent or at a repeated id.
        """
        chain: list[Organization] = []
        seen: set[int] = set()
        current = self.get(org_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            chain.append(current)
            current = self.get(current.parent_id)
        chain.reverse()
        return chain
