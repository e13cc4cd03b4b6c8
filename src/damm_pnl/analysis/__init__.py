"""PnL computation, trade suggestions and aggregate reporting."""

from damm_pnl.analysis.pnl import PnlSnapshot, compute_pnl
from damm_pnl.analysis.suggestions import Action, Confidence, Suggestion, suggest
from damm_pnl.analysis.summary import (
    DailySummary,
    SummaryReport,
    SummaryStats,
    build_summary_report,
    calculate_summary_stats,
    group_closed_by_token,
    summarize_by_day,
)

__all__ = [
    "Action",
    "Confidence",
    "DailySummary",
    "PnlSnapshot",
    "Suggestion",
    "SummaryReport",
    "SummaryStats",
    "build_summary_report",
    "calculate_summary_stats",
    "compute_pnl",
    "group_closed_by_token",
    "suggest",
    "summarize_by_day",
]
