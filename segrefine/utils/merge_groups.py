"""
Merge-group bookkeeping for redundancy reduction.

Groups are kept in an arena addressed by candidate index. Every index
points at the representative that absorbed it (or at itself), and each
representative owns the list of indices absorbed into it. Absorbing a
representative moves its whole group, so groups stay closed under
repeated merges. Groups are small, so ``find`` walks parents without
path compression.
"""

from typing import Dict, List


class MergeGroups:
    """Union-find over candidate indices with explicit member lists."""

    def __init__(self, size: int):
        self._parent = list(range(size))
        self._members: List[List[int]] = [[] for _ in range(size)]

    def __len__(self):
        return len(self._parent)

    def find(self, index: int) -> int:
        """Representative currently owning ``index``."""
        while self._parent[index] != index:
            index = self._parent[index]
        return index

    def is_representative(self, index: int) -> bool:
        return self._parent[index] == index

    def absorb(self, representative: int, member: int) -> None:
        """
        Merges ``member`` and everything already absorbed into it into
        ``representative``.

        Raises:
        - ValueError: If either index is not a representative or both are the same
        """
        if representative == member:
            raise ValueError(f"Cannot absorb index {member} into itself")
        if not self.is_representative(representative):
            raise ValueError(f"Index {representative} was already absorbed into {self.find(representative)}")
        if not self.is_representative(member):
            raise ValueError(f"Index {member} was already absorbed into {self.find(member)}")

        moved = [member] + self._members[member]
        self._members[member] = []
        self._members[representative].extend(moved)
        for index in moved:
            self._parent[index] = representative

    def members(self, representative: int) -> List[int]:
        """Indices absorbed into ``representative`` (empty for members)."""
        return list(self._members[representative])

    def groups(self) -> Dict[int, List[int]]:
        """Every representative with a non-empty group, in index order."""
        return {
            index: list(members)
            for index, members in enumerate(self._members)
            if members
        }
