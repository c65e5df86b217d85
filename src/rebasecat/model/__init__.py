"""LLM agents used by the rebase workflow."""

from rebasecat.model.resolver import ResolutionAgent, ResolutionOutcome
from rebasecat.model.verifier import (
    VerificationAgent,
    VerificationOutcome,
    VerificationVerdict,
)

__all__ = [
    "ResolutionAgent",
    "ResolutionOutcome",
    "VerificationAgent",
    "VerificationOutcome",
    "VerificationVerdict",
]
