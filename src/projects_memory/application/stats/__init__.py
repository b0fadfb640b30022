# Application Stats Package
from .migrations import MigrationReport, migrate
from .report import ChartData, StatsReport, build_chart_data, summarize
from .store import StatsStore

__all__ = [
    "StatsStore",
    "MigrationReport",
    "migrate",
    "ChartData",
    "StatsReport",
    "build_chart_data",
    "summarize",
]
