"""
Device executors.

- base.py: TransferExecutor interface and CompiledKernel
- emulator.py: NumPy host emulation of the copy kernels
- opencl.py: pyopencl-backed executor (imported on demand)
"""

from .base import CompiledKernel, TransferExecutor
from .emulator import HostEmulationExecutor

__all__ = [
    'CompiledKernel',
    'TransferExecutor',
    'HostEmulationExecutor',
]
