"""
GPU Diagnostics

Queries nvidia-smi when present and enumerates DRM cards from sysfs, adding
the busy percentage that amdgpu exposes.
"""

from pathlib import Path
from typing import List, NamedTuple, Optional

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.files import list_dir, read_first_line
from whydiag.utils.parse import parse_int
from whydiag.utils.system import CommandError, command_exists, run_cmd

PCI_VENDORS = {
    "0x10de": "NVIDIA",
    "0x1002": "AMD",
    "0x8086": "Intel",
}

NVIDIA_QUERY = "name,utilization.gpu,memory.used,memory.total,temperature.gpu"


class NvidiaGpu(NamedTuple):
    name: str
    utilization: Optional[int]
    memory_used: Optional[int]
    memory_total: Optional[int]
    temperature: Optional[int]


def parse_nvidia_smi(output: str) -> List[NvidiaGpu]:
    """Rows of ``nvidia-smi --format=csv,noheader,nounits`` output."""
    gpus = []
    for line in output.splitlines():
        parts = [p.strip() for p in line.split(",")]
        if not parts or not parts[0]:
            continue
        parts += [""] * (5 - len(parts))
        gpus.append(NvidiaGpu(parts[0], *(parse_int(p) for p in parts[1:5])))
    return gpus


class GpuDiagnostic(BaseDiagnostic):
    """Explain GPU utilization and memory."""

    name = "gpu"
    description = "Explain GPU utilization and memory (NVIDIA/AMD/Intel)"
    permissions = frozenset({Permission.READ_SYS})
    is_quick = True

    DRM_PATH = Path("/sys/class/drm")

    WARN_CELSIUS = 80
    CRIT_CELSIUS = 90
    WARN_UTILIZATION = 90

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("GPU diagnostics")

        gpus = self._query_nvidia()
        for index, gpu in enumerate(gpus):
            self._add_nvidia_metrics(report, index, gpu)

        cards = self._drm_cards()
        for card, vendor_id in cards:
            vendor = PCI_VENDORS.get(vendor_id.lower(), vendor_id)
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="gpu",
                message=f"{card} - vendor {vendor}",
                details="Use nvidia-smi, radeontop, or intel_gpu_top for live stats.",
            ))
            busy = parse_int(read_first_line(self.DRM_PATH / card / "device" / "gpu_busy_percent"))
            if busy is not None:
                report.add_metric(Metric(f"{card} utilization", busy, "%"))

        if not gpus and not cards:
            report.summary = "No GPU data available"
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="gpu",
                message="No GPU devices found (/sys/class/drm or nvidia-smi)",
            ))

        report.add_recommendation(Recommendation(
            priority=3,
            action="Use 'nvidia-smi' (NVIDIA), 'radeontop' (AMD), or 'intel_gpu_top' (Intel)",
            command="nvidia-smi",
            explanation="Live GPU utilization and memory.",
        ))
        return report

    def _query_nvidia(self) -> List[NvidiaGpu]:
        if not command_exists("nvidia-smi"):
            return []
        try:
            output = run_cmd(["nvidia-smi", f"--query-gpu={NVIDIA_QUERY}", "--format=csv,noheader,nounits"])
        except CommandError:
            return []
        return parse_nvidia_smi(output)

    def _add_nvidia_metrics(self, report: DiagnosticReport, index: int, gpu: NvidiaGpu) -> None:
        prefix = f"NVIDIA GPU {index}"
        report.add_metric(Metric(f"{prefix} name", gpu.name))
        if gpu.utilization is not None:
            report.add_metric(Metric(f"{prefix} utilization", gpu.utilization, "%"))
            if gpu.utilization >= self.WARN_UTILIZATION:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="gpu",
                    message=f"{gpu.name} is {gpu.utilization}% busy",
                ))
        if gpu.memory_used is not None:
            report.add_metric(Metric(f"{prefix} memory used", gpu.memory_used, "MiB"))
        if gpu.memory_total is not None:
            report.add_metric(Metric(f"{prefix} memory total", gpu.memory_total, "MiB"))
        if gpu.temperature is not None:
            report.add_metric(Metric(
                f"{prefix} temperature", gpu.temperature, "°C",
                Threshold(self.WARN_CELSIUS, self.CRIT_CELSIUS),
            ))
            if gpu.temperature >= self.CRIT_CELSIUS:
                report.add_finding(Finding(
                    severity=Severity.WARNING,
                    category="gpu",
                    message=f"{gpu.name} at {gpu.temperature}°C",
                    details="Check case airflow and the GPU fan curve.",
                ))

    def _drm_cards(self):
        cards = []
        for entry in list_dir(self.DRM_PATH):
            # card0-HDMI-A-1 style entries are connectors, not devices
            if not entry.name.startswith("card") or "-" in entry.name:
                continue
            vendor = read_first_line(entry / "device" / "vendor") or "unknown"
            cards.append((entry.name, vendor))
        return cards
