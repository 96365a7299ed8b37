"""
Hierarchical cell ids.

The root is 1 and the children of ``p`` are ``2p`` (left) and ``2p + 1``
(right), so the level of an id is the position of its highest set bit and
ancestors are found by shifting.
"""

from functools import total_ordering


@total_ordering
class PartitionID:
    __slots__ = ("value",)

    def __init__(self, value: int):
        if value < 1:
            raise ValueError(f"partition ids start at 1, got {value}")
        self.value = int(value)

    @classmethod
    def root(cls) -> "PartitionID":
        return cls(1)

    def parent(self) -> "PartitionID":
        """Parent id; the root is its own parent."""
        return PartitionID(max(1, self.value >> 1))

    def parent_at_level(self, level: int) -> "PartitionID":
        """Clear the lowest ``level`` bits."""
        return PartitionID(self.value & ~((1 << level) - 1))

    def left_child(self) -> "PartitionID":
        return PartitionID(self.value << 1)

    def right_child(self) -> "PartitionID":
        return PartitionID((self.value << 1) + 1)

    def children(self):
        return self.left_child(), self.right_child()

    def level(self) -> int:
        return self.value.bit_length() - 1

    def is_left_child(self) -> bool:
        return self.value % 2 == 0

    def is_right_child(self) -> bool:
        return self.value % 2 == 1

    def lowest_common_ancestor(self, other: "PartitionID") -> "PartitionID":
        left, right = self.value, other.value
        difference = left.bit_length() - right.bit_length()
        if difference > 0:
            left >>= difference
        else:
            right >>= -difference
        while left != right:
            left >>= 1
            right >>= 1
        return PartitionID(left)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other) -> bool:
        if not isinstance(other, PartitionID):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: "PartitionID") -> bool:
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"PartitionID({self.value})"

    def __str__(self) -> str:
        return str(self.value)
