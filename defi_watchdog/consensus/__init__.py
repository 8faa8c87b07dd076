"""Cross-model consensus for findings."""

from defi_watchdog.consensus.engine import (
    ConsensusEngine,
    ConsensusResult,
    FindingGroup,
    fingerprint,
)

__all__ = ["ConsensusEngine", "ConsensusResult", "FindingGroup", "fingerprint"]
