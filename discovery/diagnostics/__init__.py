"""Development-time diagnostics: search history, tracing and the reporter"""
from .history import SearchHistory
from .reporter import Report, ReportFailure, run_reporter
from .tracer import Tracer, TraceStat, traced

__all__ = ["Report", "ReportFailure", "SearchHistory", "TraceStat", "Tracer", "run_reporter", "traced"]
