"""
Geometry planner for strided copy transfers.

Derives the work-group size, local buffer size and number of work groups
for one TransferSpec by narrowing against each device limit in turn:

1. half of local memory must hold every work item's copies
2. the work-group size is capped by the device and by the compiled kernel
3. the total allocation (times the buffer multiplier for unified memory)
   must stay within half of global memory

The planner is a pure function of its inputs, so it can be driven from a
synthetic CapabilitySnapshot without a device.
"""

from typing import Optional

from .errors import ResourceExhausted
from .schema import CapabilitySnapshot, ExecutionGeometry, SweepConfig, TransferSpec


def max_local_workgroup_size(
    local_memory_bytes: int,
    element_size_bytes: int,
    copies_per_work_item: int,
) -> int:
    """Work items whose copies fit in half of local memory."""
    local_storage_per_work_item = copies_per_work_item * element_size_bytes
    return (local_memory_bytes // 2) // local_storage_per_work_item


def plan_geometry(
    capabilities: CapabilitySnapshot,
    spec: TransferSpec,
    kernel_max_work_group_size: int,
    config: Optional[SweepConfig] = None,
) -> ExecutionGeometry:
    """
    Plan the execution geometry for one transfer.

    Args:
        capabilities: Device limits
        spec: Element type, vector width and stride to transfer
        kernel_max_work_group_size: Work-group limit reported for the compiled kernel
        config: Sweep tunables (copies per work item, target work groups,
                address ceiling); defaults when None

    Returns:
        ExecutionGeometry satisfying all device limits

    Raises:
        ResourceExhausted: if no positive-size geometry fits
    """
    config = config or SweepConfig()

    element_size = spec.element_size_bytes
    copies = config.copies_per_work_item

    max_local = max_local_workgroup_size(capabilities.local_memory_bytes, element_size, copies)
    if max_local <= 0:
        raise ResourceExhausted(spec, "local_memory", capabilities.local_memory_bytes)

    local_workgroup_size = min(
        max_local,
        capabilities.max_work_item_sizes[0],
        kernel_max_work_group_size,
    )
    if local_workgroup_size <= 0:
        raise ResourceExhausted(spec, "work_group_size", local_workgroup_size)

    local_buffer_bytes = local_workgroup_size * element_size * copies

    # Keep total allocation under half of global memory to avoid
    # allocation failures from address space fragmentation.
    global_memory = min(capabilities.global_memory_bytes, config.effective_address_limit)
    multiplier = capabilities.buffer_multiplier
    workgroup_limit = global_memory // (2 * multiplier * local_buffer_bytes * spec.stride)
    number_of_workgroups = min(config.target_workgroups, workgroup_limit)
    if number_of_workgroups <= 0:
        raise ResourceExhausted(spec, "global_memory", global_memory)

    return ExecutionGeometry(
        element_size_bytes=element_size,
        copies_per_work_item=copies,
        local_workgroup_size=local_workgroup_size,
        local_buffer_bytes=local_buffer_bytes,
        number_of_workgroups=number_of_workgroups,
        global_buffer_bytes=number_of_workgroups * local_buffer_bytes * spec.stride,
        global_work_size=number_of_workgroups * local_workgroup_size,
        stride=spec.stride,
        buffer_multiplier=multiplier,
    )


def check_geometry(
    capabilities: CapabilitySnapshot,
    geometry: ExecutionGeometry,
    config: Optional[SweepConfig] = None,
) -> list:
    """
    Return the list of violated geometry invariants (empty when valid).

    The --plan-only report prints these next to each planned geometry.
    """
    config = config or SweepConfig()
    global_memory = min(capabilities.global_memory_bytes, config.effective_address_limit)
    violations = []
    if geometry.local_buffer_bytes * 2 > capabilities.local_memory_bytes:
        violations.append("local buffer exceeds half of local memory")
    if geometry.global_buffer_bytes * geometry.buffer_multiplier * 2 > global_memory:
        violations.append("global buffers exceed half of global memory")
    if geometry.global_work_size % geometry.local_workgroup_size != 0:
        violations.append("global work size is not a multiple of the local size")
    return violations
