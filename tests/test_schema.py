"""
Tests for the strided copy schema.

Tests cover:
- TransferSpec validation and derived sizes (3-wide padding)
- CapabilitySnapshot predicates and buffer multiplier
- SweepConfig defaults and validation
- YAML / JSON profile and config I/O
"""

import json
from pathlib import Path

import numpy as np
import pytest

from stridecheck.errors import VerificationMismatch
from stridecheck.schema import (
    ALL_ELEMENT_TYPES,
    CapabilitySnapshot,
    CopyDirection,
    ElementType,
    ExecutionGeometry,
    SweepConfig,
    TransferSpec,
    VerificationResult,
    host_address_limit,
    load_capabilities,
    load_config,
    save_capabilities,
    save_config,
)


PROFILES_DIR = Path(__file__).parent.parent / "profiles"
CONFIGS_DIR = Path(__file__).parent.parent / "configs"


@pytest.fixture
def gpu_caps():
    return CapabilitySnapshot(
        device_name="Test GPU",
        max_compute_units=8,
        local_memory_bytes=32768,
        global_memory_bytes=2 * 1024**3,
        max_work_group_size=1024,
        max_work_item_sizes=(1024, 1024, 64),
        supports_fp16=True,
        supports_fp64=False,
    )


class TestElementType:
    """Tests for ElementType"""

    def test_sweep_order(self):
        assert [t.value for t in ALL_ELEMENT_TYPES] == [
            "char", "uchar", "short", "ushort", "int", "uint",
            "long", "ulong", "float", "half", "double",
        ]

    @pytest.mark.parametrize("element_type,size", [
        (ElementType.CHAR, 1),
        (ElementType.USHORT, 2),
        (ElementType.UINT, 4),
        (ElementType.LONG, 8),
        (ElementType.HALF, 2),
        (ElementType.FLOAT, 4),
        (ElementType.DOUBLE, 8),
    ])
    def test_sizes(self, element_type, size):
        assert element_type.size_bytes == size

    def test_integer_and_floating(self):
        assert ElementType.ULONG.is_integer
        assert not ElementType.HALF.is_integer
        assert ElementType.HALF.dtype == np.float16

    def test_vector_type_name(self):
        assert ElementType.FLOAT.vector_type_name(1) == "float"
        assert ElementType.UCHAR.vector_type_name(16) == "uchar16"


class TestTransferSpec:
    """Tests for TransferSpec"""

    def test_scalar_sizes(self):
        spec = TransferSpec(ElementType.INT, 1, 1)
        assert spec.element_size_bytes == 4
        assert spec.compare_width_bytes == 4

    def test_three_wide_is_padded(self):
        spec = TransferSpec(ElementType.SHORT, 3, 1)
        assert spec.element_size_bytes == 2 * 4
        assert spec.compare_width_bytes == 2 * 3

    @pytest.mark.parametrize("element_type", list(ElementType))
    def test_padding_only_for_three_wide(self, element_type):
        for width in (1, 2, 4, 8, 16):
            spec = TransferSpec(element_type, width, 1)
            assert spec.element_size_bytes == spec.compare_width_bytes
        spec3 = TransferSpec(element_type, 3, 1)
        assert spec3.element_size_bytes == element_type.size_bytes * 4
        assert spec3.compare_width_bytes == element_type.size_bytes * 3

    def test_names(self):
        spec = TransferSpec(ElementType.FLOAT, 4, 3)
        assert spec.type_name == "float4"
        assert spec.name == "float4/stride3"

    @pytest.mark.parametrize("width", [0, 5, 6, 32, True, 3.0, "4"])
    def test_invalid_width(self, width):
        with pytest.raises(ValueError):
            TransferSpec(ElementType.FLOAT, width, 1)

    def test_from_dict_rejects_fractional_values(self):
        with pytest.raises(ValueError):
            TransferSpec.from_dict({'element_type': 'float', 'vector_width': 4, 'stride': 1.5})

    @pytest.mark.parametrize("stride", [0, -1, 1.5, True])
    def test_invalid_stride(self, stride):
        with pytest.raises(ValueError):
            TransferSpec(ElementType.FLOAT, 1, stride)

    def test_invalid_element_type(self):
        with pytest.raises(ValueError):
            TransferSpec("float", 1, 1)

    def test_is_hashable_and_frozen(self):
        spec = TransferSpec(ElementType.CHAR, 2, 5)
        assert spec in {spec}
        with pytest.raises(AttributeError):
            spec.stride = 2

    def test_dict_roundtrip(self):
        spec = TransferSpec(ElementType.DOUBLE, 8, 4)
        assert spec.to_dict() == {'element_type': 'double', 'vector_width': 8, 'stride': 4}
        assert TransferSpec.from_dict(spec.to_dict()) == spec


class TestCapabilitySnapshot:
    """Tests for CapabilitySnapshot"""

    def test_supports(self, gpu_caps):
        assert gpu_caps.supports(ElementType.FLOAT)
        assert gpu_caps.supports(ElementType.HALF)
        assert not gpu_caps.supports(ElementType.DOUBLE)
        assert gpu_caps.supports(ElementType.LONG)

    def test_no_64bit_int(self, gpu_caps):
        caps = CapabilitySnapshot.from_dict({**gpu_caps.to_dict(), 'supports_64bit_int': False})
        assert not caps.supports(ElementType.LONG)
        assert not caps.supports(ElementType.ULONG)
        assert caps.supports(ElementType.UINT)

    def test_buffer_multiplier(self, gpu_caps):
        assert gpu_caps.buffer_multiplier == 2
        unified = CapabilitySnapshot.from_dict({**gpu_caps.to_dict(), 'host_unified_memory': True})
        assert unified.buffer_multiplier == 4

    def test_work_item_sizes_normalised(self):
        caps = CapabilitySnapshot(
            local_memory_bytes=1024,
            global_memory_bytes=1024**2,
            max_work_group_size=64,
            max_work_item_sizes=[64, 64, 64],
        )
        assert caps.max_work_item_sizes == (64, 64, 64)

    def test_work_item_sizes_need_three(self):
        with pytest.raises(ValueError):
            CapabilitySnapshot(
                local_memory_bytes=1024,
                global_memory_bytes=1024**2,
                max_work_group_size=64,
                max_work_item_sizes=(64, 64),
            )

    @pytest.mark.parametrize("field_name", ["local_memory_bytes", "global_memory_bytes", "max_work_group_size"])
    def test_negative_limits_rejected(self, gpu_caps, field_name):
        with pytest.raises(ValueError, match=field_name):
            CapabilitySnapshot.from_dict({**gpu_caps.to_dict(), field_name: -1})

    def test_negative_profile_rejected(self, gpu_caps, tmp_path):
        path = tmp_path / "broken.yaml"
        save_capabilities(gpu_caps, path)
        path.write_text(path.read_text().replace("global_memory_bytes: 2147483648",
                                                 "global_memory_bytes: -2147483648"))
        with pytest.raises(ValueError):
            load_capabilities(path)

    def test_from_dict_ignores_unknown_keys(self, gpu_caps):
        data = gpu_caps.to_dict()
        data['vendor'] = "Acme"
        assert CapabilitySnapshot.from_dict(data) == gpu_caps


class TestExecutionGeometry:
    """Tests for ExecutionGeometry derived values"""

    def test_derived(self):
        geometry = ExecutionGeometry(
            element_size_bytes=16,
            copies_per_work_item=3,
            local_workgroup_size=256,
            local_buffer_bytes=12288,
            number_of_workgroups=4,
            global_buffer_bytes=4 * 12288 * 3,
            global_work_size=1024,
            stride=3,
        )
        assert geometry.copies_per_workgroup == 768
        assert geometry.element_count == 4 * 768 * 3
        assert "local 256" in geometry.describe()
        assert geometry.to_dict()['global_work_size'] == 1024


class TestVerificationResult:
    """Tests for VerificationResult formatting"""

    def test_diagnostic_format(self):
        result = VerificationResult(
            success=False,
            mismatch_index=16,
            expected_bytes=b"\x01\xff",
            actual_bytes=b"\x00\xff",
        )
        assert result.format_diagnostic() == "16 -> [ 1 ff ] != [ 0 ff ]"

    def test_raise_if_failed(self):
        VerificationResult(success=True).raise_if_failed()
        failed = VerificationResult(success=False, mismatch_index=0,
                                    expected_bytes=b"\x01", actual_bytes=b"\x02")
        with pytest.raises(VerificationMismatch) as exc_info:
            failed.raise_if_failed()
        assert exc_info.value.result is failed

    def test_to_dict_hex(self):
        result = VerificationResult(success=False, mismatch_index=8,
                                    expected_bytes=b"\xab", actual_bytes=b"\xcd")
        d = result.to_dict()
        assert d['expected_bytes'] == "ab"
        assert d['actual_bytes'] == "cd"


class TestSweepConfig:
    """Tests for SweepConfig"""

    def test_defaults(self):
        config = SweepConfig()
        assert config.copies_per_work_item == 3
        assert config.target_workgroups == 579
        assert config.vector_widths == (1, 2, 3, 4, 8, 16)
        assert config.strides == (1, 3, 4, 5)
        assert config.directions == (CopyDirection.GLOBAL_TO_LOCAL, CopyDirection.LOCAL_TO_GLOBAL)
        assert config.effective_address_limit == host_address_limit()

    def test_address_limit_override(self):
        assert SweepConfig(address_space_limit=4096).effective_address_limit == 4096

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            SweepConfig(copies_per_work_item=0)
        with pytest.raises(ValueError):
            SweepConfig(vector_widths=(5,))
        with pytest.raises(ValueError):
            SweepConfig(strides=(0,))

    @pytest.mark.parametrize("limit", [0, -1, 1.5])
    def test_invalid_address_limit(self, limit):
        with pytest.raises(ValueError, match="address_space_limit"):
            SweepConfig(address_space_limit=limit)

    @pytest.mark.parametrize("key,values", [
        ("strides", [1.5]),
        ("strides", [True]),
        ("vector_widths", [3.0]),
        ("vector_widths", [True]),
    ])
    def test_from_dict_rejects_non_integers(self, key, values):
        with pytest.raises(ValueError):
            SweepConfig.from_dict({key: values})

    def test_yaml_fractional_stride_rejected(self, tmp_path):
        path = tmp_path / "sweep.yaml"
        path.write_text("strides: [1.5]\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_dict_roundtrip(self):
        config = SweepConfig(
            element_types=(ElementType.FLOAT, ElementType.HALF),
            strides=(2,),
            directions=(CopyDirection.LOCAL_TO_GLOBAL,),
            seed=7,
        )
        assert SweepConfig.from_dict(config.to_dict()) == config


class TestProfileIO:
    """Tests for capability profile and config files"""

    def test_yaml_roundtrip(self, gpu_caps, tmp_path):
        path = tmp_path / "gpu.yaml"
        save_capabilities(gpu_caps, path)
        assert load_capabilities(path) == gpu_caps

    def test_json_roundtrip(self, gpu_caps, tmp_path):
        path = tmp_path / "nested" / "gpu.json"
        save_capabilities(gpu_caps, path)
        assert json.loads(path.read_text())['device_name'] == "Test GPU"
        assert load_capabilities(path) == gpu_caps

    def test_config_roundtrip(self, tmp_path):
        config = SweepConfig(target_workgroups=10, seed=3)
        path = tmp_path / "sweep.yaml"
        save_config(config, path)
        assert load_config(path) == config

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    @pytest.mark.parametrize("name", ["emulated_gpu.yaml", "embedded_unified.yaml"])
    def test_shipped_profiles_load(self, name):
        caps = load_capabilities(PROFILES_DIR / name)
        assert caps.local_memory_bytes > 0
        assert len(caps.max_work_item_sizes) == 3

    def test_shipped_configs_load(self):
        assert load_config(CONFIGS_DIR / "default_sweep.yaml") == SweepConfig()
        quick = load_config(CONFIGS_DIR / "quick_sweep.yaml")
        assert quick.target_workgroups == 8
        assert quick.strides == (1, 3)
