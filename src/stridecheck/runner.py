"""
Strided Copy Runner

Drives the sweep for each copy direction: for every TransferSpec it
renders and compiles the kernel, plans the geometry, generates source
data, runs the transfer on the executor and verifies the result.

A failing entry never stops the sweep. Entries end up in one of four
states: passed, failed (data mismatch), skipped (no viable geometry) or
error (kernel build or execution failed). Only a capability query failure
aborts the run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .data import empty_destination, generate_source_data
from .device.base import TransferExecutor
from .errors import (
    KernelBuildFailure,
    ResourceExhausted,
    TransferExecutionFailure,
    VerificationMismatch,
)
from .kernels import render_kernel
from .logging import ConformanceLogger, get_logger
from .planner import plan_geometry
from .schema import (
    CapabilitySnapshot,
    CopyDirection,
    ExecutionGeometry,
    SweepConfig,
    TransferSpec,
    VerificationResult,
)
from .sweep import sweep
from .verifier import verify


class OutcomeStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class SpecOutcome:
    """Result of one sweep entry."""
    spec: TransferSpec
    direction: CopyDirection
    status: OutcomeStatus
    geometry: Optional[ExecutionGeometry] = None
    verification: Optional[VerificationResult] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'spec': self.spec.to_dict(),
            'type_name': self.spec.type_name,
            'direction': self.direction.value,
            'status': self.status.value,
            'geometry': self.geometry.to_dict() if self.geometry else None,
            'verification': self.verification.to_dict() if self.verification else None,
            'message': self.message,
        }


@dataclass
class SweepReport:
    """All outcomes of one direction's sweep, with tallies."""
    direction: CopyDirection
    device_name: str = "unknown"
    outcomes: List[SpecOutcome] = field(default_factory=list)
    timestamp: str = ""

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def passed(self) -> int:
        return self._count(OutcomeStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def errors(self) -> int:
        return self._count(OutcomeStatus.ERROR)

    @property
    def success(self) -> bool:
        """True if nothing failed or errored (skips are OK)."""
        return self.failed == 0 and self.errors == 0

    def add(self, outcome: SpecOutcome):
        self.outcomes.append(outcome)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'direction': self.direction.value,
            'device_name': self.device_name,
            'timestamp': self.timestamp,
            'success': self.success,
            'passed': self.passed,
            'failed': self.failed,
            'skipped': self.skipped,
            'errors': self.errors,
            'outcomes': [o.to_dict() for o in self.outcomes],
        }


def save_report(reports: List[SweepReport], path: Union[str, Path]) -> None:
    """Save sweep reports as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump({'reports': [r.to_dict() for r in reports]}, f, indent=2)


class StridedCopyRunner:
    """
    Orchestrates strided copy conformance runs on one executor.

    Args:
        executor: Device (or emulated device) that runs transfers
        capabilities: Device limits; queried from the executor on first use when None
        config: Sweep tunables
        logger: Output logger; the active module logger when None
    """

    def __init__(
        self,
        executor: TransferExecutor,
        capabilities: Optional[CapabilitySnapshot] = None,
        config: Optional[SweepConfig] = None,
        logger: Optional[ConformanceLogger] = None,
    ):
        self.executor = executor
        self._capabilities = capabilities
        self.config = config or SweepConfig()
        self.log = logger or get_logger()
        self.rng = np.random.default_rng(self.config.seed)

    @property
    def capabilities(self) -> CapabilitySnapshot:
        # CapabilityQueryFailure propagates: nothing can be planned without limits
        if self._capabilities is None:
            self._capabilities = self.executor.query_capabilities()
        return self._capabilities

    def _transfer(self, spec: TransferSpec, direction: CopyDirection, outcome: SpecOutcome):
        kernel = self.executor.compile(render_kernel(direction, spec), spec, direction)

        geometry = plan_geometry(self.capabilities, spec, kernel.max_work_group_size, self.config)
        outcome.geometry = geometry
        self.log.geometry(geometry)

        source = generate_source_data(spec, geometry, self.rng)
        observed = self.executor.execute(kernel, geometry, source, empty_destination(geometry))

        result = verify(source, observed, spec, geometry)
        outcome.verification = result
        result.raise_if_failed()

    def run_spec(self, spec: TransferSpec, direction: CopyDirection) -> SpecOutcome:
        """Run and verify one transfer; errors are recorded, never raised."""
        self.log.info(f"Testing {spec.type_name} (stride {spec.stride})")
        outcome = SpecOutcome(spec=spec, direction=direction, status=OutcomeStatus.PASSED)

        try:
            self._transfer(spec, direction, outcome)
        except ResourceExhausted as e:
            outcome.status = OutcomeStatus.SKIPPED
            outcome.message = str(e)
            self.log.warning(f"Skipping {spec.name}: {e.reason} too small")
        except VerificationMismatch as e:
            outcome.status = OutcomeStatus.FAILED
            outcome.message = str(e)
            self.log.error("Results of copy did not validate!")
            self.log.error(str(e))
        except (KernelBuildFailure, TransferExecutionFailure) as e:
            outcome.status = OutcomeStatus.ERROR
            outcome.message = str(e)
            self.log.error(str(e))

        return outcome

    def run_direction(self, direction: CopyDirection) -> SweepReport:
        """Sweep every supported spec for one copy direction."""
        caps = self.capabilities
        report = SweepReport(
            direction=direction,
            device_name=caps.device_name,
            timestamp=datetime.now().isoformat(),
        )
        self.log.section(f"async_strided_copy_{direction.value}")

        for spec in sweep(caps, self.config):
            report.add(self.run_spec(spec, direction))

        self.log.summary(
            f"{direction.value} summary",
            passed=report.passed,
            failed=report.failed,
            skipped=report.skipped,
            errors=report.errors,
        )
        if report.success:
            self.log.success(f"async_strided_copy_{direction.value} passed")
        else:
            self.log.error(f"async_strided_copy_{direction.value} failed")
        return report

    def run_all(self) -> List[SweepReport]:
        return [self.run_direction(d) for d in self.config.directions]
