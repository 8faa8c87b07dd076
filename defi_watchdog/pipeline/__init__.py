"""Concurrent multi-model execution."""

from defi_watchdog.pipeline.orchestrator import FanOutOrchestrator

__all__ = ["FanOutOrchestrator"]
