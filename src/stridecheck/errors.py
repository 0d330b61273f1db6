"""
Error taxonomy for strided copy conformance runs.

- ResourceExhausted: no viable execution geometry (entry is skipped)
- VerificationMismatch: copied data diverged (entry is a failure)
- CapabilityQueryFailure: device limits unavailable (fatal to the run)
- KernelBuildFailure / TransferExecutionFailure: collaborator errors
  scoped to a single entry
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import TransferSpec, VerificationResult


class StrideCheckError(Exception):
    """Base class for all stridecheck errors."""


class ResourceExhausted(StrideCheckError):
    """
    No positive-size geometry satisfies the device limits for a spec.

    Attributes:
        spec: The transfer spec that could not be planned
        reason: Which limit ran out (e.g. "local_memory")
        limit: The limiting quantity, in bytes or work items
    """

    def __init__(self, spec: 'TransferSpec', reason: str, limit: Optional[int] = None):
        self.spec = spec
        self.reason = reason
        self.limit = limit
        detail = f" (limit={limit})" if limit is not None else ""
        super().__init__(f"{spec.name}: {reason} exhausted{detail}")


class VerificationMismatch(StrideCheckError):
    """Observed data diverged from the reference at a strided offset."""

    def __init__(self, result: 'VerificationResult'):
        self.result = result
        super().__init__(result.format_diagnostic())


class CapabilityQueryFailure(StrideCheckError):
    """The device capability query failed; nothing can be planned."""


class KernelBuildFailure(StrideCheckError):
    """The copy kernel could not be compiled for the device."""


class TransferExecutionFailure(StrideCheckError):
    """Buffer allocation, kernel launch, or read-back failed."""
