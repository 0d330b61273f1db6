#!/usr/bin/env python
"""
Async Strided Copy Conformance Tool

Runs the async_strided_copy_global_to_local and
async_strided_copy_local_to_global sweeps on an OpenCL device (or on the
host emulator) and reports every type/width/stride combination.

Usage:
    # Run both directions on the first OpenCL device
    ./cli/strided_copy.py

    # Pick a device and a single direction
    ./cli/strided_copy.py --platform 1 --device 0 --direction global_to_local

    # List visible devices
    ./cli/strided_copy.py --list-devices

    # Record the device limits, then plan offline from them
    ./cli/strided_copy.py --save-profile profiles/my_gpu.yaml
    ./cli/strided_copy.py --profile profiles/my_gpu.yaml --plan-only

    # Self-check the harness on the host emulator
    ./cli/strided_copy.py --emulate --workgroups 4

    # Restrict the sweep and save a JSON report with a log alongside
    ./cli/strided_copy.py --types float,half --strides 1,3 --report runs/gpu0.json

Exit status: 0 on success, 1 if any entry failed or errored,
2 if the device could not be queried.
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stridecheck.errors import CapabilityQueryFailure, ResourceExhausted
from stridecheck.logging import create_run_logger
from stridecheck.planner import check_geometry, plan_geometry
from stridecheck.runner import StridedCopyRunner, save_report
from stridecheck.schema import (
    CopyDirection,
    ElementType,
    SweepConfig,
    load_capabilities,
    load_config,
    save_capabilities,
)
from stridecheck.sweep import sweep


DEFAULT_EMULATION_PROFILE = Path(__file__).parent.parent / "profiles" / "emulated_gpu.yaml"


def _csv_ints(text: str) -> tuple:
    return tuple(int(v) for v in text.split(",") if v.strip())


def build_config(args) -> SweepConfig:
    """Start from --config (or defaults) and apply command-line overrides."""
    config = load_config(args.config) if args.config else SweepConfig()
    data = config.to_dict()

    if args.seed is not None:
        data['seed'] = args.seed
    if args.types:
        data['element_types'] = [t.strip() for t in args.types.split(",")]
    if args.widths:
        data['vector_widths'] = _csv_ints(args.widths)
    if args.strides:
        data['strides'] = _csv_ints(args.strides)
    if args.workgroups is not None:
        data['target_workgroups'] = args.workgroups
    if args.address_limit is not None:
        data['address_space_limit'] = args.address_limit
    if args.direction != "all":
        data['directions'] = [args.direction]

    return SweepConfig.from_dict(data)


def list_opencl_devices() -> int:
    from stridecheck.device.opencl import capabilities_from_device, list_devices

    devices = list_devices()
    if not devices:
        print("✗ No OpenCL devices found")
        return 1
    for p_idx, d_idx, platform, device in devices:
        caps = capabilities_from_device(device)
        print(f"[{p_idx}:{d_idx}] {platform.name.strip()} / {caps.device_name}")
        print(f"      local {caps.local_memory_bytes}b, global {caps.global_memory_bytes}b, "
              f"max work group {caps.max_work_group_size}, "
              f"fp16={caps.supports_fp16} fp64={caps.supports_fp64} long={caps.supports_64bit_int}")
    return 0


def plan_only(caps, config: SweepConfig, log) -> int:
    """Print the geometry planned for each spec, using the device work-group limit."""
    log.section(f"Planned geometry: {caps.device_name}")
    widths = [14, 8, 8, 12, 8, 14, 10]
    log.table_header("type", "stride", "local", "local buf", "groups", "global buf", "status",
                     widths=widths)

    bad = 0
    for spec in sweep(caps, config):
        try:
            geometry = plan_geometry(caps, spec, caps.max_work_group_size, config)
        except ResourceExhausted as e:
            log.table_row(spec.type_name, spec.stride, "-", "-", "-", "-", f"skip:{e.reason}",
                          widths=widths)
            continue
        violations = check_geometry(caps, geometry, config)
        bad += bool(violations)
        log.table_row(spec.type_name, spec.stride, geometry.local_workgroup_size,
                      geometry.local_buffer_bytes, geometry.number_of_workgroups,
                      geometry.global_buffer_bytes, "; ".join(violations) or "ok",
                      widths=widths)
    return 1 if bad else 0


def main():
    parser = argparse.ArgumentParser(
        description="Async Strided Copy Conformance Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    # Device selection
    dev_group = parser.add_argument_group("device")
    dev_group.add_argument("--platform", type=int, default=0,
                           help="OpenCL platform index (default: 0)")
    dev_group.add_argument("--device", type=int, default=0,
                           help="OpenCL device index within the platform (default: 0)")
    dev_group.add_argument("--list-devices", action="store_true",
                           help="List OpenCL devices and exit")
    dev_group.add_argument("--emulate", action="store_true",
                           help="Run on the NumPy host emulator instead of a device")
    dev_group.add_argument("--profile", type=str, default=None,
                           help="Capability profile (YAML/JSON) to use instead of querying the device")
    dev_group.add_argument("--save-profile", type=str, default=None,
                           help="Save the queried device capabilities to this file and exit")

    # Sweep options
    parser.add_argument("--config", type=str, default=None,
                        help="Sweep configuration YAML")
    parser.add_argument("--direction", type=str, default="all",
                        choices=["all"] + [d.value for d in CopyDirection],
                        help="Copy direction to test (default: all)")
    parser.add_argument("--types", type=str, default=None,
                        help="Comma-separated element types (default: all of "
                             + ",".join(t.value for t in ElementType) + ")")
    parser.add_argument("--widths", type=str, default=None,
                        help="Comma-separated vector widths (default: 1,2,3,4,8,16)")
    parser.add_argument("--strides", type=str, default=None,
                        help="Comma-separated strides (default: 1,3,4,5)")
    parser.add_argument("--workgroups", type=int, default=None,
                        help="Target number of work groups before clamping (default: 579)")
    parser.add_argument("--address-limit", type=int, default=None,
                        help="Ceiling in bytes applied to global memory size (default: host SIZE_MAX)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for source data")
    parser.add_argument("--plan-only", action="store_true",
                        help="Print planned geometries without running transfers")

    # Output
    parser.add_argument("--report", type=str, default=None,
                        help="Write a JSON report (log file goes next to it)")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress console output")

    args = parser.parse_args()

    if args.list_devices:
        try:
            return list_opencl_devices()
        except CapabilityQueryFailure as e:
            print(f"✗ {e}")
            return 2

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    profile = args.profile
    if profile is None and args.emulate:
        profile = DEFAULT_EMULATION_PROFILE

    try:
        executor = None
        if profile is not None:
            caps = load_capabilities(profile)
        else:
            from stridecheck.device.opencl import OpenCLExecutor
            executor = OpenCLExecutor(platform_index=args.platform, device_index=args.device)
            caps = executor.query_capabilities()
    except CapabilityQueryFailure as e:
        print(f"✗ {e}")
        return 2

    if args.save_profile:
        save_capabilities(caps, args.save_profile)
        print(f"✓ Saved capabilities of {caps.device_name} to {args.save_profile}")
        return 0

    report_path = Path(args.report) if args.report else None
    direction = args.direction
    log = create_run_logger(
        output_dir=report_path.parent if report_path else None,
        device_name=caps.device_name,
        direction=direction,
        quiet=args.quiet,
    )

    with log:
        if args.plan_only:
            return plan_only(caps, config, log)

        if executor is None:
            if not args.emulate:
                log.error("--profile needs --emulate or --plan-only to run without a device")
                return 2
            from stridecheck.device.emulator import HostEmulationExecutor
            executor = HostEmulationExecutor(caps)

        runner = StridedCopyRunner(executor, capabilities=caps, config=config, logger=log)
        reports = runner.run_all()

        if report_path:
            save_report(reports, report_path)
            log.info(f"Report saved to {report_path}")

    return 0 if all(r.success for r in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
