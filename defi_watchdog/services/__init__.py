"""Service layer."""

from defi_watchdog.services.analysis_service import (
    AnalysisService,
    ReportSink,
    build_request,
    run_analysis,
)

__all__ = ["AnalysisService", "ReportSink", "build_request", "run_analysis"]
