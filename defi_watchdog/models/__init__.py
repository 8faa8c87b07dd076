"""Model output handling for DeFi Watchdog.

This package provides:
- Pydantic envelope for the JSON models are asked to return
- Parse strategies for heterogeneous outputs (JSON, prose, keywords)
- The ResponseParser cascade dispatcher
"""

from defi_watchdog.models.schema import ModelResponseEnvelope
from defi_watchdog.models.response_parser import ResponseParser

__all__ = [
    "ModelResponseEnvelope",
    "ResponseParser",
]
