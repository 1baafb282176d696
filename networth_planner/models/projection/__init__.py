"""
Net worth projection.

Key Components:
- simulator: the month-by-month projection loop
- result: monthly snapshots, yearly rollups and the projection summary
"""

from .result import ProjectionMonth, ProjectionResult, ProjectionSummary, ProjectionYear
from .simulator import NetWorthProjector, aggregate_yearly, project_net_worth

__all__ = [
    "NetWorthProjector",
    "ProjectionMonth",
    "ProjectionResult",
    "ProjectionSummary",
    "ProjectionYear",
    "aggregate_yearly",
    "project_net_worth",
]
