"""Query package."""

from timetracker.queries.summary import SummaryBuilder

__all__ = ["SummaryBuilder"]
