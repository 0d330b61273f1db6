"""
Tests for random source data generation.
"""

import numpy as np
import pytest

from stridecheck.data import empty_destination, generate_random_data, generate_source_data
from stridecheck.planner import plan_geometry
from stridecheck.schema import CapabilitySnapshot, ElementType, SweepConfig, TransferSpec


CAPS = CapabilitySnapshot(
    local_memory_bytes=8192,
    global_memory_bytes=1024**3,
    max_work_group_size=128,
    max_work_item_sizes=(128, 128, 128),
    supports_fp16=True,
    supports_fp64=True,
)


@pytest.mark.parametrize("element_type", list(ElementType))
def test_dtype_and_count(element_type):
    values = generate_random_data(element_type, 100, np.random.default_rng(0))
    assert values.dtype == element_type.dtype
    assert values.size == 100


@pytest.mark.parametrize("element_type", [ElementType.HALF, ElementType.FLOAT, ElementType.DOUBLE])
def test_floats_are_finite(element_type):
    values = generate_random_data(element_type, 10000, np.random.default_rng(0))
    assert np.all(np.isfinite(values))


def test_integers_cover_range():
    values = generate_random_data(ElementType.UCHAR, 10000, np.random.default_rng(0))
    assert values.min() == 0
    assert values.max() == 255


def test_seeded_is_deterministic():
    a = generate_random_data(ElementType.ULONG, 50, np.random.default_rng(42))
    b = generate_random_data(ElementType.ULONG, 50, np.random.default_rng(42))
    assert np.array_equal(a, b)


@pytest.mark.parametrize("width", [1, 3, 16])
def test_source_covers_global_buffer(width):
    spec = TransferSpec(ElementType.SHORT, width, 3)
    geometry = plan_geometry(CAPS, spec, 128, SweepConfig(target_workgroups=2))
    source = generate_source_data(spec, geometry, np.random.default_rng(0))
    assert source.dtype == np.uint8
    assert source.size == geometry.global_buffer_bytes

    destination = empty_destination(geometry)
    assert destination.size == geometry.global_buffer_bytes
    assert not destination.any()
