"""
Strided Copy Schema

Defines the data models shared by the planner, the sweep, the verifier and
the runner. Capability snapshots and sweep configurations can be stored as
YAML (or JSON) so that geometries can be planned offline from recorded or
synthetic device limits.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import yaml

from .errors import VerificationMismatch


class ElementType(Enum):
    """Scalar element types, in sweep order."""
    CHAR = "char"
    UCHAR = "uchar"
    SHORT = "short"
    USHORT = "ushort"
    INT = "int"
    UINT = "uint"
    LONG = "long"
    ULONG = "ulong"
    FLOAT = "float"
    HALF = "half"
    DOUBLE = "double"

    @property
    def size_bytes(self) -> int:
        return ELEMENT_TYPE_TO_DTYPE[self].itemsize

    @property
    def dtype(self) -> np.dtype:
        return ELEMENT_TYPE_TO_DTYPE[self]

    @property
    def is_integer(self) -> bool:
        return np.issubdtype(self.dtype, np.integer)

    def vector_type_name(self, width: int) -> str:
        """Device type name, e.g. 'float' for width 1 and 'float4' for width 4."""
        if width == 1:
            return self.value
        return f"{self.value}{width}"


# Element type to NumPy dtype mapping
ELEMENT_TYPE_TO_DTYPE = {
    ElementType.CHAR: np.dtype(np.int8),
    ElementType.UCHAR: np.dtype(np.uint8),
    ElementType.SHORT: np.dtype(np.int16),
    ElementType.USHORT: np.dtype(np.uint16),
    ElementType.INT: np.dtype(np.int32),
    ElementType.UINT: np.dtype(np.uint32),
    ElementType.LONG: np.dtype(np.int64),
    ElementType.ULONG: np.dtype(np.uint64),
    ElementType.FLOAT: np.dtype(np.float32),
    ElementType.HALF: np.dtype(np.float16),
    ElementType.DOUBLE: np.dtype(np.float64),
}

ALL_ELEMENT_TYPES: Tuple[ElementType, ...] = tuple(ElementType)
VECTOR_WIDTHS: Tuple[int, ...] = (1, 2, 3, 4, 8, 16)
DEFAULT_STRIDES: Tuple[int, ...] = (1, 3, 4, 5)

COPIES_PER_WORK_ITEM = 3
TARGET_WORKGROUPS = 579


def host_address_limit() -> int:
    """Largest byte count addressable by a host pointer (SIZE_MAX)."""
    return 2 ** (struct.calcsize("P") * 8) - 1


def _is_int(value: Any) -> bool:
    # bool is an int subclass; True must not pass as width or stride 1
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class CopyDirection(Enum):
    """Which side of the async copy is the strided global buffer."""
    GLOBAL_TO_LOCAL = "global_to_local"
    LOCAL_TO_GLOBAL = "local_to_global"


# =============================================================================
# Transfer spec
# =============================================================================

@dataclass(frozen=True)
class TransferSpec:
    """
    One point of the sweep: element type, vector width and copy stride.

    Widths of 3 are stored padded to 4 lanes, so `element_size_bytes`
    includes the padding lane while `compare_width_bytes` does not.
    """
    element_type: ElementType
    vector_width: int = 1
    stride: int = 1

    def __post_init__(self):
        if not isinstance(self.element_type, ElementType):
            raise ValueError(f"element_type must be an ElementType, got {self.element_type!r}")
        if not _is_int(self.vector_width) or self.vector_width not in VECTOR_WIDTHS:
            raise ValueError(
                f"vector_width must be one of {VECTOR_WIDTHS}, got {self.vector_width!r}"
            )
        if not _is_int(self.stride) or self.stride < 1:
            raise ValueError(f"stride must be a positive integer, got {self.stride!r}")

    @property
    def element_size_bytes(self) -> int:
        storage_width = 4 if self.vector_width == 3 else self.vector_width
        return self.element_type.size_bytes * storage_width

    @property
    def compare_width_bytes(self) -> int:
        return self.element_type.size_bytes * self.vector_width

    @property
    def type_name(self) -> str:
        return self.element_type.vector_type_name(self.vector_width)

    @property
    def name(self) -> str:
        return f"{self.type_name}/stride{self.stride}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'element_type': self.element_type.value,
            'vector_width': self.vector_width,
            'stride': self.stride,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferSpec':
        return cls(
            element_type=ElementType(data['element_type']),
            vector_width=data.get('vector_width', 1),
            stride=data.get('stride', 1),
        )


# =============================================================================
# Device capabilities
# =============================================================================

@dataclass(frozen=True)
class CapabilitySnapshot:
    """
    Device limits queried once per device.

    Only the memory sizes, work-group limits and extension flags feed the
    planner and the sweep. The name and compute-unit count are diagnostic.
    """
    local_memory_bytes: int
    global_memory_bytes: int
    max_work_group_size: int
    max_work_item_sizes: Tuple[int, int, int]
    host_unified_memory: bool = False
    supports_fp16: bool = False
    supports_fp64: bool = False
    supports_64bit_int: bool = True

    # Diagnostics
    device_name: str = "unknown"
    max_compute_units: int = 0

    def __post_init__(self):
        sizes = tuple(int(s) for s in self.max_work_item_sizes)
        if len(sizes) != 3:
            raise ValueError(f"max_work_item_sizes needs 3 entries, got {len(sizes)}")
        object.__setattr__(self, 'max_work_item_sizes', sizes)
        for name in ('local_memory_bytes', 'global_memory_bytes', 'max_work_group_size'):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if any(s < 0 for s in sizes):
            raise ValueError(f"max_work_item_sizes must be non-negative, got {sizes}")

    @property
    def buffer_multiplier(self) -> int:
        """Buffers budgeted per allocation: host and device copies on unified memory."""
        return 4 if self.host_unified_memory else 2

    def supports(self, element_type: ElementType) -> bool:
        if element_type in (ElementType.LONG, ElementType.ULONG):
            return self.supports_64bit_int
        if element_type == ElementType.HALF:
            return self.supports_fp16
        if element_type == ElementType.DOUBLE:
            return self.supports_fp64
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'device_name': self.device_name,
            'max_compute_units': self.max_compute_units,
            'local_memory_bytes': self.local_memory_bytes,
            'global_memory_bytes': self.global_memory_bytes,
            'max_work_group_size': self.max_work_group_size,
            'max_work_item_sizes': list(self.max_work_item_sizes),
            'host_unified_memory': self.host_unified_memory,
            'supports_fp16': self.supports_fp16,
            'supports_fp64': self.supports_fp64,
            'supports_64bit_int': self.supports_64bit_int,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CapabilitySnapshot':
        data = data.copy()
        if 'max_work_item_sizes' in data:
            data['max_work_item_sizes'] = tuple(data['max_work_item_sizes'])
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# =============================================================================
# Execution geometry
# =============================================================================

@dataclass(frozen=True)
class ExecutionGeometry:
    """Work sizes and buffer sizes for a single transfer."""
    element_size_bytes: int
    copies_per_work_item: int
    local_workgroup_size: int
    local_buffer_bytes: int
    number_of_workgroups: int
    global_buffer_bytes: int
    global_work_size: int
    stride: int = 1
    buffer_multiplier: int = 2

    @property
    def copies_per_workgroup(self) -> int:
        return self.copies_per_work_item * self.local_workgroup_size

    @property
    def element_count(self) -> int:
        return self.global_buffer_bytes // self.element_size_bytes

    def describe(self) -> str:
        return (
            f"Global: {self.global_work_size}, local {self.local_workgroup_size}, "
            f"local buffer {self.local_buffer_bytes}b, global buffer {self.global_buffer_bytes}b, "
            f"copy stride {self.stride}, each work group will copy {self.copies_per_workgroup} "
            f"elements and each work item will copy {self.copies_per_work_item} elements."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'element_size_bytes': self.element_size_bytes,
            'copies_per_work_item': self.copies_per_work_item,
            'local_workgroup_size': self.local_workgroup_size,
            'local_buffer_bytes': self.local_buffer_bytes,
            'number_of_workgroups': self.number_of_workgroups,
            'global_buffer_bytes': self.global_buffer_bytes,
            'global_work_size': self.global_work_size,
            'stride': self.stride,
            'buffer_multiplier': self.buffer_multiplier,
        }


# =============================================================================
# Verification result
# =============================================================================

@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a strided comparison; failed results stop at the first mismatch."""
    success: bool
    mismatch_index: Optional[int] = None
    expected_bytes: bytes = b""
    actual_bytes: bytes = b""
    compare_width_bytes: int = 0
    windows_checked: int = 0

    def format_diagnostic(self) -> str:
        if self.success:
            return f"verified {self.windows_checked} strided windows"
        expected = "".join(f"{b:2x} " for b in self.expected_bytes)
        actual = "".join(f"{b:2x} " for b in self.actual_bytes)
        return f"{self.mismatch_index} -> [{expected}] != [{actual}]"

    def raise_if_failed(self) -> None:
        if not self.success:
            raise VerificationMismatch(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'mismatch_index': self.mismatch_index,
            'expected_bytes': self.expected_bytes.hex(),
            'actual_bytes': self.actual_bytes.hex(),
            'compare_width_bytes': self.compare_width_bytes,
            'windows_checked': self.windows_checked,
        }


# =============================================================================
# Sweep configuration
# =============================================================================

@dataclass
class SweepConfig:
    """Tunables for a conformance run. Defaults match the reference test."""
    copies_per_work_item: int = COPIES_PER_WORK_ITEM
    target_workgroups: int = TARGET_WORKGROUPS
    element_types: Tuple[ElementType, ...] = ALL_ELEMENT_TYPES
    vector_widths: Tuple[int, ...] = VECTOR_WIDTHS
    strides: Tuple[int, ...] = DEFAULT_STRIDES
    directions: Tuple[CopyDirection, ...] = tuple(CopyDirection)
    seed: int = 0

    # Ceiling on global memory size; None means the host pointer-width maximum
    address_space_limit: Optional[int] = None

    def __post_init__(self):
        if self.copies_per_work_item < 1:
            raise ValueError("copies_per_work_item must be >= 1")
        if self.target_workgroups < 1:
            raise ValueError("target_workgroups must be >= 1")
        for width in self.vector_widths:
            if not _is_int(width) or width not in VECTOR_WIDTHS:
                raise ValueError(f"unsupported vector width {width!r}")
        for stride in self.strides:
            if not _is_int(stride) or stride < 1:
                raise ValueError(f"stride must be a positive integer, got {stride!r}")
        if self.address_space_limit is not None:
            if not _is_int(self.address_space_limit) or self.address_space_limit < 1:
                raise ValueError(
                    f"address_space_limit must be a positive integer, got {self.address_space_limit!r}"
                )

    @property
    def effective_address_limit(self) -> int:
        if self.address_space_limit is None:
            return host_address_limit()
        return self.address_space_limit

    def to_dict(self) -> Dict[str, Any]:
        return {
            'copies_per_work_item': self.copies_per_work_item,
            'target_workgroups': self.target_workgroups,
            'element_types': [t.value for t in self.element_types],
            'vector_widths': list(self.vector_widths),
            'strides': list(self.strides),
            'directions': [d.value for d in self.directions],
            'seed': self.seed,
            'address_space_limit': self.address_space_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SweepConfig':
        data = data.copy()
        if 'element_types' in data:
            data['element_types'] = tuple(ElementType(t) for t in data['element_types'])
        if 'vector_widths' in data:
            data['vector_widths'] = tuple(data['vector_widths'])
        if 'strides' in data:
            data['strides'] = tuple(data['strides'])
        if 'directions' in data:
            data['directions'] = tuple(CopyDirection(d) for d in data['directions'])
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# =============================================================================
# YAML / JSON I/O
# =============================================================================

def _load_mapping(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    with open(path, 'r') as f:
        if path.suffix == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _save_mapping(data: Dict[str, Any], path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        if path.suffix == '.json':
            json.dump(data, f, indent=2)
        else:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_capabilities(path: Union[str, Path]) -> CapabilitySnapshot:
    """Load a capability profile from YAML or JSON."""
    return CapabilitySnapshot.from_dict(_load_mapping(path))


def save_capabilities(snapshot: CapabilitySnapshot, path: Union[str, Path]) -> None:
    """Save a capability profile; the format follows the file suffix."""
    _save_mapping(snapshot.to_dict(), path)


def load_config(path: Union[str, Path]) -> SweepConfig:
    """Load a sweep configuration from YAML or JSON."""
    return SweepConfig.from_dict(_load_mapping(path))


def save_config(config: SweepConfig, path: Union[str, Path]) -> None:
    _save_mapping(config.to_dict(), path)
