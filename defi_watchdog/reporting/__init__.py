"""Report assembly."""

from defi_watchdog.reporting.assembler import ReportAssembler

__all__ = ["ReportAssembler"]
