"""
Diagnostic Modules

The thirteen built-in "why" diagnostics, one module per subsystem.
"""

from whydiag.core.registry import DiagnosticRegistry
from whydiag.modules.batt import BattDiagnostic
from whydiag.modules.boot import BootDiagnostic
from whydiag.modules.cpu import CpuDiagnostic
from whydiag.modules.disk import DiskDiagnostic
from whydiag.modules.fan import FanDiagnostic
from whydiag.modules.gpu import GpuDiagnostic
from whydiag.modules.io import IoDiagnostic
from whydiag.modules.mem import MemDiagnostic
from whydiag.modules.mount import MountDiagnostic
from whydiag.modules.net import NetDiagnostic
from whydiag.modules.sleep import SleepDiagnostic
from whydiag.modules.temp import TempDiagnostic
from whydiag.modules.usb import UsbDiagnostic


def get_diagnostics():
    """Return one instance of every built-in diagnostic, in run-all order."""
    return [
        BootDiagnostic(),
        CpuDiagnostic(),
        MemDiagnostic(),
        DiskDiagnostic(),
        IoDiagnostic(),
        NetDiagnostic(),
        FanDiagnostic(),
        TempDiagnostic(),
        GpuDiagnostic(),
        BattDiagnostic(),
        SleepDiagnostic(),
        UsbDiagnostic(),
        MountDiagnostic(),
    ]


def build_registry() -> DiagnosticRegistry:
    """Registry holding every built-in diagnostic."""
    return DiagnosticRegistry(get_diagnostics())


__all__ = [
    'build_registry',
    'get_diagnostics',
    'BattDiagnostic',
    'BootDiagnostic',
    'CpuDiagnostic',
    'DiskDiagnostic',
    'FanDiagnostic',
    'GpuDiagnostic',
    'IoDiagnostic',
    'MemDiagnostic',
    'MountDiagnostic',
    'NetDiagnostic',
    'SleepDiagnostic',
    'TempDiagnostic',
    'UsbDiagnostic',
]
