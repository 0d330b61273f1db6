"""
Strided verifier.

Compares a reference buffer with the buffer read back from the device at
the offsets the strided copy was supposed to write. Only the first
`compare_width_bytes` of each window are checked, so the padding lane of
3-wide vectors and the gap bytes between windows are ignored.
"""

from typing import Union

import numpy as np

from .schema import ExecutionGeometry, TransferSpec, VerificationResult


BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


def as_byte_array(buffer: BufferLike) -> np.ndarray:
    """View any contiguous buffer as a flat uint8 array without copying."""
    if isinstance(buffer, np.ndarray):
        return np.ascontiguousarray(buffer).reshape(-1).view(np.uint8)
    return np.frombuffer(buffer, dtype=np.uint8)


def strided_offsets(length: int, element_size_bytes: int, stride: int) -> range:
    """Byte offsets of the windows the strided copy writes."""
    if element_size_bytes <= 0 or stride <= 0:
        raise ValueError("element_size_bytes and stride must be positive")
    return range(0, length, element_size_bytes * stride)


def verify_strided(
    reference: BufferLike,
    observed: BufferLike,
    element_size_bytes: int,
    stride: int,
    compare_width_bytes: int,
) -> VerificationResult:
    """
    Compare two buffers window by window and stop at the first mismatch.

    Args:
        reference: Bytes the copy was expected to deliver
        observed: Bytes read back from the device
        element_size_bytes: Storage size of one element (padding included)
        stride: Copy stride, in elements
        compare_width_bytes: Bytes checked per window (padding excluded)

    Returns:
        VerificationResult; on failure it carries the offset and
        element-sized byte ranges of both buffers at that offset
    """
    expected = as_byte_array(reference)
    actual = as_byte_array(observed)
    if expected.size != actual.size:
        raise ValueError(
            f"buffer lengths differ: reference {expected.size}b, observed {actual.size}b"
        )
    if compare_width_bytes <= 0 or compare_width_bytes > element_size_bytes:
        raise ValueError(
            f"compare width {compare_width_bytes} must be in 1..{element_size_bytes}"
        )

    length = expected.size
    offsets = strided_offsets(length, element_size_bytes, stride)
    step = offsets.step
    if length == 0:
        return VerificationResult(success=True, compare_width_bytes=compare_width_bytes)

    # Windows that fit entirely are compared in one vectorised pass
    full = 0
    if length >= compare_width_bytes:
        full = (length - compare_width_bytes) // step + 1
        ref_windows = np.lib.stride_tricks.sliding_window_view(expected, compare_width_bytes)[::step]
        obs_windows = np.lib.stride_tricks.sliding_window_view(actual, compare_width_bytes)[::step]
        bad = np.any(ref_windows != obs_windows, axis=1)
        if bad.any():
            window = int(np.argmax(bad))
            return _mismatch(expected, actual, window * step,
                             element_size_bytes, compare_width_bytes, window + 1)

    # A trailing window that runs past the end is clipped
    if full < len(offsets):
        offset = offsets[full]
        if not np.array_equal(expected[offset:], actual[offset:]):
            return _mismatch(expected, actual, offset,
                             element_size_bytes, compare_width_bytes, full + 1)

    return VerificationResult(
        success=True,
        compare_width_bytes=compare_width_bytes,
        windows_checked=len(offsets),
    )


def _mismatch(
    expected: np.ndarray,
    actual: np.ndarray,
    offset: int,
    element_size_bytes: int,
    compare_width_bytes: int,
    windows_checked: int,
) -> VerificationResult:
    end = min(offset + element_size_bytes, expected.size)
    return VerificationResult(
        success=False,
        mismatch_index=offset,
        expected_bytes=expected[offset:end].tobytes(),
        actual_bytes=actual[offset:end].tobytes(),
        compare_width_bytes=compare_width_bytes,
        windows_checked=windows_checked,
    )


def verify(
    reference: BufferLike,
    observed: BufferLike,
    spec: TransferSpec,
    geometry: ExecutionGeometry,
) -> VerificationResult:
    """Verify a completed transfer using the transfer's compare width and the geometry's element size."""
    return verify_strided(
        reference,
        observed,
        element_size_bytes=geometry.element_size_bytes,
        stride=spec.stride,
        compare_width_bytes=spec.compare_width_bytes,
    )
