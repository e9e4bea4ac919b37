"""Settlement package."""

from timetracker.settlement.engine import SettlementEngine

__all__ = ["SettlementEngine"]
