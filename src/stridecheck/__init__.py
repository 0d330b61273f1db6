"""
Strided Copy Conformance

Checks that async work-group strided copies between global and local
memory move data exactly, under an execution geometry planned from the
device's own limits.

Key components:
- schema.py: TransferSpec, CapabilitySnapshot, ExecutionGeometry, SweepConfig
- planner.py: Geometry planner (local/global memory and work-group limits)
- sweep.py: Element type x vector width x stride enumeration
- verifier.py: Byte-exact strided comparison
- runner.py: Orchestrator producing SweepReports
- device/: Executors (OpenCL via pyopencl, NumPy host emulation)

Usage:
    from stridecheck import StridedCopyRunner, SweepConfig
    from stridecheck.device.opencl import OpenCLExecutor

    runner = StridedCopyRunner(OpenCLExecutor(), config=SweepConfig(seed=1))
    reports = runner.run_all()
"""

from .errors import (
    StrideCheckError,
    ResourceExhausted,
    VerificationMismatch,
    CapabilityQueryFailure,
    KernelBuildFailure,
    TransferExecutionFailure,
)
from .schema import (
    ElementType,
    CopyDirection,
    TransferSpec,
    CapabilitySnapshot,
    ExecutionGeometry,
    VerificationResult,
    SweepConfig,
    load_capabilities,
    save_capabilities,
    load_config,
    save_config,
)
from .planner import plan_geometry
from .sweep import TransferSweep, sweep
from .verifier import verify, verify_strided
from .runner import StridedCopyRunner, SweepReport, SpecOutcome, OutcomeStatus

__all__ = [
    'StrideCheckError',
    'ResourceExhausted',
    'VerificationMismatch',
    'CapabilityQueryFailure',
    'KernelBuildFailure',
    'TransferExecutionFailure',
    'ElementType',
    'CopyDirection',
    'TransferSpec',
    'CapabilitySnapshot',
    'ExecutionGeometry',
    'VerificationResult',
    'SweepConfig',
    'load_capabilities',
    'save_capabilities',
    'load_config',
    'save_config',
    'plan_geometry',
    'TransferSweep',
    'sweep',
    'verify',
    'verify_strided',
    'StridedCopyRunner',
    'SweepReport',
    'SpecOutcome',
    'OutcomeStatus',
]
