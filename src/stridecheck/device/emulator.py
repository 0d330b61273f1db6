"""
Host emulation of the strided copy kernels.

Runs both copy directions with NumPy on the host so the harness (planner,
data generation, verifier, runner) can be exercised without a device.
The async copy moves whole elements; per-work-item assignments move only
the value lanes, so the padding lane of 3-wide vectors is left as it was
in the destination (or as zero in local memory).
"""

from typing import Optional

import numpy as np

from ..errors import TransferExecutionFailure
from ..kernels import KERNEL_NAME
from ..schema import CapabilitySnapshot, CopyDirection, ExecutionGeometry, TransferSpec
from .base import CompiledKernel, TransferExecutor


class HostEmulationExecutor(TransferExecutor):
    """
    NumPy model of the copy kernels for a given set of device limits.

    Args:
        capabilities: Limits to report and enforce at launch
        kernel_max_work_group_size: Work-group limit to report for every
                                    kernel; defaults to the device limit
    """

    def __init__(
        self,
        capabilities: CapabilitySnapshot,
        kernel_max_work_group_size: Optional[int] = None,
    ):
        self.capabilities = capabilities
        if kernel_max_work_group_size is None:
            kernel_max_work_group_size = capabilities.max_work_group_size
        self.kernel_max_work_group_size = kernel_max_work_group_size
        self.launches = 0

    def query_capabilities(self) -> CapabilitySnapshot:
        return self.capabilities

    def compile(self, source: str, spec: TransferSpec, direction: CopyDirection) -> CompiledKernel:
        return CompiledKernel(
            name=KERNEL_NAME,
            spec=spec,
            direction=direction,
            max_work_group_size=self.kernel_max_work_group_size,
            handle=source,
        )

    def _check_launch(self, kernel: CompiledKernel, geometry: ExecutionGeometry, source: np.ndarray):
        caps = self.capabilities
        if geometry.local_workgroup_size > min(kernel.max_work_group_size, caps.max_work_item_sizes[0]):
            raise TransferExecutionFailure(
                f"invalid work group size {geometry.local_workgroup_size}"
            )
        if geometry.global_work_size % geometry.local_workgroup_size != 0:
            raise TransferExecutionFailure(
                f"global size {geometry.global_work_size} is not a multiple of "
                f"local size {geometry.local_workgroup_size}"
            )
        if geometry.local_buffer_bytes > caps.local_memory_bytes:
            raise TransferExecutionFailure(
                f"local buffer {geometry.local_buffer_bytes}b exceeds local memory"
            )
        if source.size != geometry.global_buffer_bytes:
            raise TransferExecutionFailure(
                f"source buffer is {source.size}b, expected {geometry.global_buffer_bytes}b"
            )

    def execute(
        self,
        kernel: CompiledKernel,
        geometry: ExecutionGeometry,
        source: np.ndarray,
        destination: np.ndarray,
    ) -> np.ndarray:
        self._check_launch(kernel, geometry, source)
        self.launches += 1

        element_size = geometry.element_size_bytes
        lanes = kernel.spec.compare_width_bytes
        stride = geometry.stride
        copies_per_workgroup = geometry.copies_per_workgroup

        src = np.asarray(source, dtype=np.uint8).reshape(-1, element_size)
        dst = np.array(destination, dtype=np.uint8).reshape(-1, element_size)

        # Element index touched by copy k of group g: (g * copies_per_workgroup + k) * stride
        group_base = np.arange(geometry.number_of_workgroups)[:, None] * copies_per_workgroup
        touched = ((group_base + np.arange(copies_per_workgroup)[None, :]) * stride).reshape(-1)

        if kernel.direction == CopyDirection.GLOBAL_TO_LOCAL:
            # async copy fills local memory with whole elements,
            # then each work item stores its value lanes to dst
            local = src[touched].copy()
            dst[touched, :lanes] = local[:, :lanes]
        else:
            # work items load value lanes into zeroed local memory,
            # then the async copy writes whole elements to dst
            local = np.zeros((touched.size, element_size), dtype=np.uint8)
            local[:, :lanes] = src[touched, :lanes]
            dst[touched] = local

        return dst.reshape(-1)
