"""
Integration tests for cli/strided_copy.py.

Runs the tool in a subprocess against capability profiles and the host
emulator, so no OpenCL device is needed.
"""

import json
import subprocess
import sys
from pathlib import Path


ROOT = Path(__file__).parent.parent.parent
CLI = ROOT / "cli" / "strided_copy.py"
PROFILE = ROOT / "profiles" / "emulated_gpu.yaml"
EMBEDDED = ROOT / "profiles" / "embedded_unified.yaml"


def run_cli(args, timeout=300):
    """Run the CLI and return (returncode, stdout, stderr)"""
    result = subprocess.run(
        [sys.executable, str(CLI)] + args,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return result.returncode, result.stdout, result.stderr


def test_plan_only():
    code, out, _ = run_cli(["--profile", str(PROFILE), "--plan-only", "--types", "float", "--widths", "4"])
    assert code == 0
    assert "Planned geometry: Emulated GPU" in out
    assert "float4" in out
    assert "12288" in out


def test_plan_only_embedded_filters_types():
    code, out, _ = run_cli(["--profile", str(EMBEDDED), "--plan-only"])
    assert code == 0
    assert "double" not in out
    assert "long" not in out
    assert "half16" in out


def test_emulated_run_with_report(tmp_path):
    report = tmp_path / "run" / "report.json"
    code, _, _ = run_cli([
        "--emulate", "--workgroups", "2",
        "--types", "int,half", "--widths", "1,3", "--strides", "1,3",
        "--report", str(report), "--quiet",
    ])
    assert code == 0
    data = json.loads(report.read_text())
    assert [r['direction'] for r in data['reports']] == ["global_to_local", "local_to_global"]
    assert all(r['passed'] == 8 for r in data['reports'])
    assert (tmp_path / "run" / "emulated_gpu_all.log").exists()


def test_single_direction(tmp_path):
    report = tmp_path / "report.json"
    code, _, _ = run_cli([
        "--emulate", "--workgroups", "1", "--types", "char", "--direction", "local_to_global",
        "--report", str(report), "--quiet",
    ])
    assert code == 0
    data = json.loads(report.read_text())
    assert len(data['reports']) == 1
    assert data['reports'][0]['passed'] == 24


def test_save_profile(tmp_path):
    target = tmp_path / "copy.json"
    code, out, _ = run_cli(["--profile", str(PROFILE), "--save-profile", str(target)])
    assert code == 0
    assert json.loads(target.read_text())['local_memory_bytes'] == 32768


def test_profile_without_mode_is_rejected():
    code, _, _ = run_cli(["--profile", str(PROFILE), "--quiet"])
    assert code == 2


def test_bad_width_is_usage_error():
    code, _, err = run_cli(["--emulate", "--widths", "5"])
    assert code == 2
    assert "unsupported vector width" in err


def test_negative_address_limit_is_usage_error():
    code, _, err = run_cli(["--emulate", "--address-limit", "-1"])
    assert code == 2
    assert "address_space_limit" in err
