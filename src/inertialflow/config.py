"""Configuration management."""

from typing import Any

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidConfiguration

# partition ids are stored as int64, the root id takes one bit
MAX_SUPPORTED_DEPTH = 62


class PartitionConfig(BaseSettings):
    """Partitioning parameters, overridable through INERTIAL_FLOW_* variables."""

    model_config = SettingsConfigDict(env_prefix="INERTIAL_FLOW_")

    balance_factor: float = Field(
        default=0.25, description="Fraction of a cell used for each terminal set"
    )
    max_recursion_depth: int = Field(default=30, description="Maximum bisection depth")
    min_cell_size: int = Field(
        default=100, description="Cells of at most this many nodes are not split"
    )
    candidate_direction_count: int = Field(
        default=4, description="Number of evenly spaced projection directions"
    )
    workers: int = Field(default=1, description="Processes for independent subtrees")
    direction_workers: int = Field(
        default=1, description="Threads for candidate directions of one bisection"
    )
    show_progress: bool = Field(default=False, description="Display tqdm progress bars")
    log_level: str = Field(default="INFO", description="Log level")

    def __init__(self, **values: Any):
        try:
            super().__init__(**values)
        except ValidationError as exc:
            errors = exc.errors()
            raise InvalidConfiguration(
                "configuration value has the wrong type",
                fields=",".join(str(error["loc"][0]) for error in errors if error["loc"]),
                reason=errors[0]["msg"] if errors else str(exc),
            ) from None

    @model_validator(mode="after")
    def _check_ranges(self) -> "PartitionConfig":
        if not 0.0 < self.balance_factor < 0.5:
            raise InvalidConfiguration(
                "balance factor must lie in the open interval (0, 0.5)",
                balance_factor=self.balance_factor,
            )
        if not 0 <= self.max_recursion_depth <= MAX_SUPPORTED_DEPTH:
            raise InvalidConfiguration(
                f"max recursion depth must be within 0..{MAX_SUPPORTED_DEPTH}",
                max_recursion_depth=self.max_recursion_depth,
            )
        if self.min_cell_size < 0:
            raise InvalidConfiguration(
                "min cell size must not be negative", min_cell_size=self.min_cell_size
            )
        if self.candidate_direction_count < 2:
            raise InvalidConfiguration(
                "at least two candidate directions are required",
                candidate_direction_count=self.candidate_direction_count,
            )
        if self.workers < 1 or self.direction_workers < 1:
            raise InvalidConfiguration(
                "worker counts must be positive",
                workers=self.workers,
                direction_workers=self.direction_workers,
            )
        return self
