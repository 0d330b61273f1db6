"""
Random source data for strided copy transfers.

Buffers are filled with random scalars of the element type (integers over
their full range, floats as finite values) and handed around as flat
uint8 arrays, since the verifier compares raw bytes.
"""

import numpy as np

from .schema import ElementType, ExecutionGeometry, TransferSpec


# Magnitude bound for random float data; keeps half values finite
FLOAT_RANGE = {
    ElementType.HALF: 1.0e4,
    ElementType.FLOAT: 1.0e30,
    ElementType.DOUBLE: 1.0e300,
}


def generate_random_data(element_type: ElementType, count: int, rng: np.random.Generator) -> np.ndarray:
    """
    Generate `count` random scalars of an element type.

    Args:
        element_type: Scalar type to generate
        count: Number of scalars
        rng: Seeded NumPy generator

    Returns:
        Array of dtype element_type.dtype
    """
    dtype = element_type.dtype
    if element_type.is_integer:
        info = np.iinfo(dtype)
        return rng.integers(info.min, info.max, size=count, dtype=dtype, endpoint=True)

    bound = FLOAT_RANGE[element_type]
    values = rng.uniform(-1.0, 1.0, size=count) * bound
    return values.astype(dtype)


def generate_source_data(spec: TransferSpec, geometry: ExecutionGeometry, rng: np.random.Generator) -> np.ndarray:
    """Random bytes covering the whole global buffer of a transfer."""
    count = geometry.global_buffer_bytes // spec.element_type.size_bytes
    return generate_random_data(spec.element_type, count, rng).view(np.uint8)


def empty_destination(geometry: ExecutionGeometry) -> np.ndarray:
    """Zero-filled destination buffer of the same size as the source."""
    return np.zeros(geometry.global_buffer_bytes, dtype=np.uint8)
