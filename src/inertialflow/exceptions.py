"""
Error taxonomy of the partitioning core.

Only UngraphableCell and DegenerateCut are recoverable: the recursive
partitioner demotes the offending cell to a leaf. Everything else aborts.
"""

from typing import Any


class PartitionError(Exception):
    """Base class; keeps diagnostic context (cell size, depth, direction)."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in sorted(self.context.items()))
        return f"{self.message} ({details})"

    def with_context(self, **context: Any) -> "PartitionError":
        self.context.update(context)
        self.args = (self._render(),)
        return self


class FormatError(PartitionError):
    """Malformed or inconsistent input graph."""


class InvalidConfiguration(PartitionError):
    """Configuration value out of range."""


class InvalidTerminals(PartitionError):
    """Empty, overlapping or out-of-range head/tail terminal sets."""


class UngraphableCell(PartitionError):
    """Cell too small to bisect."""


class DegenerateCut(PartitionError):
    """Every candidate direction left one side of the cut empty."""


class SolverNonConvergence(PartitionError):
    """Max-flow did not terminate consistently. Indicates a defect."""
