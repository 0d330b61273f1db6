"""
OpenCL executor built on pyopencl.

Maps device info queries onto a CapabilitySnapshot, builds the copy
kernels, and runs one transfer per call with blocking read-back.
"""

from typing import List, Optional

import numpy as np
import pyopencl as cl

from ..errors import CapabilityQueryFailure, KernelBuildFailure, TransferExecutionFailure
from ..kernels import KERNEL_NAME
from ..schema import CapabilitySnapshot, CopyDirection, ExecutionGeometry, TransferSpec
from .base import CompiledKernel, TransferExecutor


def has_extension(device, name: str) -> bool:
    return name in device.extensions.split()


def supports_64bit_int(device) -> bool:
    """Full-profile devices always have 64-bit integers; embedded ones need cles_khr_int64."""
    if "EMBEDDED_PROFILE" in device.profile:
        return has_extension(device, "cles_khr_int64")
    return True


def capabilities_from_device(device) -> CapabilitySnapshot:
    """
    Query the limits the planner and sweep need.

    Raises:
        CapabilityQueryFailure: if any query fails
    """
    try:
        return CapabilitySnapshot(
            device_name=device.name.strip(),
            max_compute_units=int(device.max_compute_units),
            local_memory_bytes=int(device.local_mem_size),
            global_memory_bytes=int(device.global_mem_size),
            max_work_group_size=int(device.max_work_group_size),
            max_work_item_sizes=tuple(int(s) for s in list(device.max_work_item_sizes)[:3]),
            host_unified_memory=bool(device.host_unified_memory),
            supports_fp16=has_extension(device, "cl_khr_fp16"),
            supports_fp64=has_extension(device, "cl_khr_fp64"),
            supports_64bit_int=supports_64bit_int(device),
        )
    except (cl.Error, ValueError) as e:
        raise CapabilityQueryFailure(f"device capability query failed: {e}") from e


def list_devices() -> List[tuple]:
    """(platform_index, device_index, platform, device) for every visible device."""
    devices = []
    try:
        platforms = cl.get_platforms()
    except cl.Error as e:
        raise CapabilityQueryFailure(f"no OpenCL platforms: {e}") from e
    for p_idx, platform in enumerate(platforms):
        for d_idx, device in enumerate(platform.get_devices()):
            devices.append((p_idx, d_idx, platform, device))
    return devices


def select_device(platform_index: int = 0, device_index: int = 0):
    """Pick a device by platform and device index."""
    for p_idx, d_idx, _, device in list_devices():
        if p_idx == platform_index and d_idx == device_index:
            return device
    raise CapabilityQueryFailure(
        f"no OpenCL device at platform {platform_index}, device {device_index}"
    )


class OpenCLExecutor(TransferExecutor):
    """
    Executor for a real OpenCL device.

    Args:
        device: pyopencl Device; selected by index when None
        platform_index: Platform to pick from when device is None
        device_index: Device to pick from when device is None
    """

    def __init__(self, device=None, platform_index: int = 0, device_index: int = 0):
        self.device = device if device is not None else select_device(platform_index, device_index)
        try:
            self.context = cl.Context([self.device])
            self.queue = cl.CommandQueue(self.context, self.device)
        except cl.Error as e:
            raise CapabilityQueryFailure(f"unable to create context: {e}") from e

    def query_capabilities(self) -> CapabilitySnapshot:
        return capabilities_from_device(self.device)

    def compile(self, source: str, spec: TransferSpec, direction: CopyDirection) -> CompiledKernel:
        try:
            program = cl.Program(self.context, source).build()
            kernel = cl.Kernel(program, KERNEL_NAME)
            max_wg = kernel.get_work_group_info(
                cl.kernel_work_group_info.WORK_GROUP_SIZE, self.device
            )
        except cl.Error as e:
            raise KernelBuildFailure(f"unable to create testing kernel for {spec.type_name}: {e}") from e

        return CompiledKernel(
            name=KERNEL_NAME,
            spec=spec,
            direction=direction,
            max_work_group_size=int(max_wg),
            handle=kernel,
        )

    def execute(
        self,
        kernel: CompiledKernel,
        geometry: ExecutionGeometry,
        source: np.ndarray,
        destination: np.ndarray,
    ) -> np.ndarray:
        mf = cl.mem_flags
        buffers = []
        try:
            src_buf = cl.Buffer(self.context, mf.READ_WRITE | mf.COPY_HOST_PTR, hostbuf=source)
            buffers.append(src_buf)
            dst_buf = cl.Buffer(self.context, mf.READ_WRITE | mf.COPY_HOST_PTR, hostbuf=destination)
            buffers.append(dst_buf)

            kernel.handle.set_args(
                src_buf,
                dst_buf,
                cl.LocalMemory(geometry.local_buffer_bytes),
                np.int32(geometry.copies_per_workgroup),
                np.int32(geometry.copies_per_work_item),
                np.int32(geometry.stride),
            )
            cl.enqueue_nd_range_kernel(
                self.queue,
                kernel.handle,
                (geometry.global_work_size,),
                (geometry.local_workgroup_size,),
            )

            result = np.empty_like(destination)
            cl.enqueue_copy(self.queue, result, dst_buf, is_blocking=True)
            self.queue.finish()
            return result
        except cl.Error as e:
            raise TransferExecutionFailure(f"{kernel.spec.name}: {e}") from e
        finally:
            for buf in buffers:
                buf.release()
