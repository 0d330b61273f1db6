"""
Executor interface for strided copy transfers.

An executor owns the device side of a run: it answers the capability
query, compiles the copy kernel, and runs one transfer synchronously
(allocate buffers from host bytes, launch, read the destination back).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ..schema import CapabilitySnapshot, CopyDirection, ExecutionGeometry, TransferSpec


@dataclass
class CompiledKernel:
    """A built copy kernel and the work-group limit the device reports for it."""
    name: str
    spec: TransferSpec
    direction: CopyDirection
    max_work_group_size: int
    handle: Optional[Any] = None


class TransferExecutor(ABC):
    """
    Abstract base class for transfer executors.

    Implementations raise CapabilityQueryFailure, KernelBuildFailure and
    TransferExecutionFailure from stridecheck.errors so the runner can
    record each entry correctly.
    """

    @abstractmethod
    def query_capabilities(self) -> CapabilitySnapshot:
        """Query the device limits used for planning."""
        pass

    @abstractmethod
    def compile(self, source: str, spec: TransferSpec, direction: CopyDirection) -> CompiledKernel:
        """Build the kernel source rendered for one spec and direction."""
        pass

    @abstractmethod
    def execute(
        self,
        kernel: CompiledKernel,
        geometry: ExecutionGeometry,
        source: np.ndarray,
        destination: np.ndarray,
    ) -> np.ndarray:
        """
        Run one transfer.

        Args:
            kernel: Kernel returned by compile()
            geometry: Planned work and buffer sizes
            source: Host bytes for the source buffer
            destination: Host bytes for the initial destination buffer

        Returns:
            Destination bytes read back after the kernel completed
        """
        pass
