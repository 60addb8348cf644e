"""
CONTENTMUX - Enforcement Module

Per-user quota and platform enforcement for job-creating requests.
"""

from .gate import (
    JobGate,
    GateDecision,
    GateResult,
    UsageLimitExceeded,
    PlatformNotAllowed,
)

__all__ = [
    "JobGate",
    "GateDecision",
    "GateResult",
    "UsageLimitExceeded",
    "PlatformNotAllowed",
]
