"""Axis strategy registry.

Fail-closed registry for axis strategies. Unknown axis lookups raise.
"""

from __future__ import annotations

from torp.scoring.axes import DEFAULT_AXES, AxisStrategy
from torp.scoring.models import ALL_AXES, AxisId


class AxisNotRegisteredError(Exception):
    """Raised when looking up an axis that has no registered strategy."""

    def __init__(self, axis_id: str) -> None:
        """Initialize with the unknown axis ID.

        Args:
            axis_id: The axis ID that was not found.
        """
        self.axis_id = axis_id
        super().__init__(f"Axis '{axis_id}' is not registered (fail-closed)")


class AxisStrategyRegistry:
    """Fail-closed registry of axis strategies.

    Strategies are returned in scheme order (compliance first, coherence
    last) regardless of registration order.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._strategies: dict[AxisId, AxisStrategy] = {}

    def register(self, strategy: AxisStrategy) -> None:
        """Register a strategy.

        Args:
            strategy: Object implementing the AxisStrategy protocol.

        Raises:
            ValueError: If the axis already has a strategy.
        """
        if strategy.axis_id in self._strategies:
            raise ValueError(f"Axis '{strategy.axis_id}' is already registered")
        self._strategies[strategy.axis_id] = strategy

    def get(self, axis_id: AxisId | str) -> AxisStrategy:
        """Look up a strategy by axis ID. Fail-closed on unknown axis.

        Raises:
            AxisNotRegisteredError: If no strategy is registered for axis_id.
        """
        try:
            return self._strategies[AxisId(axis_id)]
        except (ValueError, KeyError):
            raise AxisNotRegisteredError(str(axis_id)) from None

    def list_strategies(self) -> list[AxisStrategy]:
        """Return all registered strategies in scheme order."""
        return [self._strategies[a] for a in ALL_AXES if a in self._strategies]

    def require_complete(self) -> None:
        """Fail closed unless every axis of the scheme has a strategy.

        Raises:
            AxisNotRegisteredError: For the first axis without a strategy.
        """
        for axis in ALL_AXES:
            if axis not in self._strategies:
                raise AxisNotRegisteredError(axis.value)

    def __len__(self) -> int:
        """Return the number of registered strategies."""
        return len(self._strategies)


def build_default_registry() -> AxisStrategyRegistry:
    """Registry holding the nine built-in axis strategies."""
    registry = AxisStrategyRegistry()
    for strategy in DEFAULT_AXES:
        registry.register(strategy)
    return registry
