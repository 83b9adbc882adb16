"""
Diagnostic Module Tests

Each module runs against a fake /proc or /sys tree under tmp_path, with
external commands and psutil patched out.

Run with:
    pytest tests/test_modules.py -v
    pytest tests/test_modules.py -k "batt" -v
"""

import os
import time
from collections import namedtuple
from unittest.mock import MagicMock, patch

import psutil
import pytest

from whydiag.core.base import ModuleConfig
from whydiag.core.errors import ExecutionError, ModuleUnavailableError
from whydiag.core.runner import run_module
from whydiag.core.severity import Severity
from whydiag.modules.batt import BattDiagnostic
from whydiag.modules.boot import BootDiagnostic, parse_blame, parse_boot_total, parse_systemd_duration
from whydiag.modules.cpu import CpuDiagnostic
from whydiag.modules.disk import DiskDiagnostic, walk_tree
from whydiag.modules.fan import FanDiagnostic
from whydiag.modules.gpu import GpuDiagnostic, parse_nvidia_smi
from whydiag.modules.io import IoDiagnostic, parse_diskstats
from whydiag.modules.mem import MemDiagnostic
from whydiag.modules.mount import MountDiagnostic, parse_mount_table
from whydiag.modules.net import NetDiagnostic, parse_net_dev, parse_ping_times
from whydiag.modules.sleep import SleepDiagnostic, parse_inhibitors
from whydiag.modules.temp import TempDiagnostic
from whydiag.modules.usb import UsbDiagnostic, usb_error_lines
from whydiag.utils.system import CommandError

DiskUsage = namedtuple("DiskUsage", "total used free")


def messages(report):
    return [f.message for f in report.findings]


def metric_map(report):
    return {m.name: m.value for m in report.metrics}


def commands(outputs):
    """run_cmd replacement answering by the first two arguments."""
    def _run(args, timeout=10.0):
        key = " ".join(args[:2])
        result = outputs.get(key)
        if result is None or isinstance(result, Exception):
            raise result or CommandError(args, "command not found")
        return result
    return _run


# =============================================================================
# boot
# =============================================================================

BOOT_TIME = (
    "Startup finished in 3.512s (kernel) + 1min 2.100s (userspace) = 1min 5.612s \n"
    "graphical.target reached after 1min 2.000s in userspace\n"
)
BOOT_BLAME = (
    "     12.500s NetworkManager-wait-online.service\n"
    "      2.100s snapd.service\n"
    "      850ms systemd-udevd.service\n"
    "      3.000s dev-sda1.device\n"
)


class TestBoot:

    def test_parse_duration(self):
        assert parse_systemd_duration("1min 5.612s") == pytest.approx(65.612)
        assert parse_systemd_duration("850ms") == pytest.approx(0.85)
        assert parse_systemd_duration("soon") is None

    def test_parse_total_uses_sum_not_kernel(self):
        assert parse_boot_total(BOOT_TIME) == pytest.approx(65.612)
        assert parse_boot_total("Bootup is not yet finished.") is None

    def test_parse_blame_services_only(self):
        assert parse_blame(BOOT_BLAME) == [
            ("NetworkManager-wait-online.service", pytest.approx(12.5)),
            ("snapd.service", pytest.approx(2.1)),
            ("systemd-udevd.service", pytest.approx(0.85)),
        ]

    def test_slow_boot(self):
        outputs = {"systemd-analyze time": BOOT_TIME, "systemd-analyze blame": BOOT_BLAME}
        with patch("whydiag.modules.boot.run_cmd", side_effect=commands(outputs)):
            report = BootDiagnostic().run(ModuleConfig())

        assert report.overall_severity == Severity.WARNING
        assert metric_map(report)["Total boot time"] == pytest.approx(65.61)
        assert any("NetworkManager-wait-online.service took 12.50s" in m for m in messages(report))
        assert not any("systemd-udevd" in m for m in messages(report))
        assert report.sorted_recommendations()[0].priority == 2

    def test_boot_not_finished(self):
        with patch("whydiag.modules.boot.run_cmd", side_effect=commands({})):
            report = BootDiagnostic().run(ModuleConfig())
        assert report.overall_severity == Severity.INFO
        assert report.recommendations == []

    def test_unavailable_without_systemd(self):
        with patch("whydiag.modules.boot.command_exists", return_value=False):
            with pytest.raises(ModuleUnavailableError):
                run_module(BootDiagnostic(), ModuleConfig())


# =============================================================================
# cpu
# =============================================================================

def fake_process(pid, name, percents, rss=1024 * 1024, user="alice"):
    proc = MagicMock()
    proc.info = {"pid": pid, "name": name, "username": user}
    proc.cpu_percent.side_effect = percents
    proc.memory_info.return_value.rss = rss
    return proc


class TestCpu:

    def run_cpu(self, per_cpu, processes, load=(1.0, 0.5, 0.25), config=None):
        with patch("whydiag.modules.cpu.psutil.cpu_percent", return_value=per_cpu), \
             patch("whydiag.modules.cpu.psutil.getloadavg", return_value=load), \
             patch("whydiag.modules.cpu.psutil.cpu_count", return_value=len(per_cpu)), \
             patch("whydiag.modules.cpu.psutil.process_iter", return_value=processes):
            return CpuDiagnostic().run(config or ModuleConfig())

    def test_busy_cpu(self):
        processes = [
            fake_process(1, "burner", [0.0, 75.0]),
            fake_process(2, "idle", [0.0, 0.1]),
            fake_process(3, "gone", [0.0, psutil.NoSuchProcess(3)]),
        ]
        report = self.run_cpu([95.0, 85.0], processes)

        assert report.summary == "High CPU utilization detected"
        assert report.overall_severity == Severity.WARNING
        assert metric_map(report)["CPU usage"] == pytest.approx(90.0)
        assert "burner (PID 1) using 75.0% CPU" in messages(report)
        assert not any("idle" in m for m in messages(report))
        assert not any("gone" in m for m in messages(report))
        assert report.raw_data["per_cpu_percent"] == [95.0, 85.0]
        assert [r.priority for r in report.sorted_recommendations()] == [2, 3]

    def test_quiet_cpu(self):
        report = self.run_cpu([5.0, 7.0], [fake_process(1, "sh", [0.0, 1.0])])
        assert report.summary == "CPU usage within normal range"
        assert report.overall_severity == Severity.INFO
        assert report.recommendations == []

    def test_verbose_keeps_small_processes(self):
        report = self.run_cpu([5.0], [fake_process(1, "tiny", [0.0, 0.1])], config=ModuleConfig(verbose=True))
        assert any("tiny" in m for m in messages(report))

    def test_load_above_core_count(self):
        report = self.run_cpu([30.0, 30.0], [], load=(4.5, 3.0, 2.0))
        assert any("exceeds 2 logical CPUs" in m for m in messages(report))

    def test_top_n(self):
        processes = [fake_process(i, f"p{i}", [0.0, 10.0 + i]) for i in range(5)]
        report = self.run_cpu([20.0], processes, config=ModuleConfig(top_n=2))
        assert [m.split()[0] for m in messages(report)] == ["p4", "p3"]


# =============================================================================
# mem
# =============================================================================

VirtualMemory = namedtuple("svmem", "total available percent used free")
SwapMemory = namedtuple("sswap", "total used free percent sin sout")

KIB = 1024
PRESSURED = VirtualMemory(1_000_000 * KIB, 50_000 * KIB, 95.0, 950_000 * KIB, 20_000 * KIB)
HEALTHY = VirtualMemory(1_000_000 * KIB, 900_000 * KIB, 10.0, 100_000 * KIB, 850_000 * KIB)
SWAPPING = SwapMemory(1000 * KIB, 800 * KIB, 200 * KIB, 80.0, 0, 0)
NO_SWAP = SwapMemory(0, 0, 0, 0.0, 0, 0)


def fake_mem_process(pid, name, rss):
    proc = MagicMock()
    proc.info = {"pid": pid, "name": name, "memory_info": MagicMock(rss=rss)}
    return proc


class TestMem:

    def run_with(self, config, memory=PRESSURED, swap=SWAPPING, processes=()):
        with patch("whydiag.modules.mem.psutil.virtual_memory", return_value=memory), \
             patch("whydiag.modules.mem.psutil.swap_memory", return_value=swap) as swap_memory, \
             patch("whydiag.modules.mem.psutil.process_iter", return_value=list(processes)):
            report = MemDiagnostic().run(config)
        return report, swap_memory

    def test_memory_pressure(self):
        processes = [
            fake_mem_process(10, "firefox", 800 * 1024 * 1024),
            fake_mem_process(11, "sh", 2 * 1024 * 1024),
        ]
        report, _ = self.run_with(ModuleConfig(), processes=processes)

        assert report.overall_severity == Severity.WARNING
        assert metric_map(report)["Memory usage"] == pytest.approx(95.0)
        cats = [f.category for f in report.findings]
        assert "mem" in cats and "swap" in cats
        assert "firefox (PID 10) uses 800.0 MiB" in messages(report)
        assert not any("sh (PID" in m for m in messages(report))
        assert report.recommendations[0].priority == 1
        assert report.raw_data["virtual_memory"]["total"] == 1_000_000 * KIB
        assert report.raw_data["swap_memory"]["percent"] == 80.0

    def test_swap_disabled(self):
        report, swap_memory = self.run_with(ModuleConfig(extra_args={"swap": "false"}))
        swap_memory.assert_not_called()
        assert "swap" not in [f.category for f in report.findings]
        assert "Swap used" not in metric_map(report)
        assert "swap_memory" not in report.raw_data

    def test_no_swap_configured(self):
        report, _ = self.run_with(ModuleConfig(), memory=HEALTHY, swap=NO_SWAP)
        assert "Swap used" not in metric_map(report)

    def test_healthy(self):
        report, _ = self.run_with(ModuleConfig(), memory=HEALTHY)
        assert report.overall_severity == Severity.WARNING  # swap still at 80%
        report, _ = self.run_with(ModuleConfig(), memory=HEALTHY, swap=NO_SWAP)
        assert report.overall_severity == Severity.OK
        assert report.recommendations == []

    def test_psutil_failure_is_execution_error(self):
        with patch("whydiag.modules.mem.psutil.virtual_memory", side_effect=OSError("no /proc")):
            with pytest.raises(ExecutionError, match="cannot read system memory"):
                MemDiagnostic().run(ModuleConfig())

    def test_missing_meminfo_is_unavailable(self, tmp_path):
        module = MemDiagnostic()
        module.PROC_MEMINFO = tmp_path / "missing"
        with pytest.raises(ModuleUnavailableError):
            run_module(module, ModuleConfig())


# =============================================================================
# disk
# =============================================================================

class TestDisk:

    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / "data"
        (root / "videos").mkdir(parents=True)
        (root / "videos" / "big.bin").write_bytes(b"\0" * 2_000_000)
        (root / "notes.txt").write_text("hello")
        (root / ".cache").mkdir()
        (root / ".cache" / "blob").write_bytes(b"\0" * 3_000_000)
        (root / "a" / "b" / "c").mkdir(parents=True)
        (root / "a" / "b" / "c" / "deep.bin").write_bytes(b"\0" * 1_500_000)
        old = root / "old.log"
        old.write_text("x")
        past = time.time() - 400 * 86400
        os.utime(old, (past, past))
        return root

    def run_disk(self, extra, usage=DiskUsage(100, 50, 50)):
        with patch("whydiag.modules.disk.shutil.disk_usage", return_value=usage):
            return DiskDiagnostic().run(ModuleConfig(extra_args=extra))

    def test_large_and_old_files(self, tree):
        report = self.run_disk({"path": str(tree), "large": "1M", "old": "365"})
        found = messages(report)
        assert any("big.bin" in m for m in found)
        assert not any("deep.bin" in m for m in found)
        assert not any("blob" in m for m in found)
        assert any("old.log - last modified" in m for m in found)
        assert metric_map(report)["Path analyzed"] == str(tree)
        assert report.overall_severity == Severity.INFO

    def test_hidden_included_on_request(self, tree):
        report = self.run_disk({"path": str(tree), "large": "1M", "hidden": "true"})
        assert any("blob" in m for m in messages(report))

    def test_depth_limits_walk(self, tree):
        shallow = walk_tree(tree, max_depth=1)
        assert shallow.file_count == 2
        deep = walk_tree(tree, max_depth=5)
        assert deep.file_count == 4
        assert walk_tree(tree, max_depth=0).file_count == 0

    def test_full_filesystem_is_critical(self, tree):
        report = self.run_disk({"path": str(tree)}, usage=DiskUsage(100, 97, 3))
        assert report.overall_severity == Severity.CRITICAL
        assert report.sorted_recommendations()[0].priority == 1

    def test_missing_path(self, tmp_path):
        report = self.run_disk({"path": str(tmp_path / "nope")})
        assert report.overall_severity == Severity.WARNING
        assert "Path does not exist" in messages(report)[0]

    def test_bad_size_option_is_ignored(self, tree):
        report = self.run_disk({"path": str(tree), "large": "huge"})
        assert not any(f.category == "file" for f in report.findings)


# =============================================================================
# io
# =============================================================================

DISKSTATS = (
    "   7       0 loop0 10 0 100 0 0 0 0 0 0 0 0\n"
    "   8       0 sda 100 0 2048 0 50 0 4096 0 0 0 0\n"
    " 259       0 nvme0n1 0 0 0 0 0 0 0 0 0 0 0\n"
)


class TestIo:

    @pytest.fixture
    def module(self, fake_tree):
        proc = fake_tree({
            "diskstats": DISKSTATS,
            "100/comm": "rsync\n",
            "100/io": "rchar: 1\nwchar: 2\nread_bytes: 20971520\nwrite_bytes: 1048576\n",
            "200/comm": "tiny\n",
            "200/io": "read_bytes: 10\nwrite_bytes: 0\n",
            "300/comm": "noio\n",
            "self/io": "read_bytes: 99999999999\nwrite_bytes: 0\n",
        })
        module = IoDiagnostic()
        module.PROC_ROOT = proc
        return module

    def test_parse_diskstats(self):
        devices = parse_diskstats(DISKSTATS)
        assert devices[1].name == "sda"
        assert devices[1].read_bytes == 2048 * 512
        assert devices[1].write_bytes == 4096 * 512

    def test_devices_and_processes(self, module):
        report = module.run(ModuleConfig())
        metrics = metric_map(report)
        assert metrics["sda read"] == "1.0 MiB"
        assert metrics["sda write"] == "2.0 MiB"
        assert not any(name.startswith(("loop0", "nvme0n1")) for name in metrics)
        assert messages(report) == ["rsync (PID 100) - read 20.0 MiB, write 1.0 MiB"]
        assert report.recommendations

    def test_verbose_and_device_filter(self, module):
        report = module.run(ModuleConfig(verbose=True, extra_args={"device": "nvme"}))
        assert report.metrics == []
        assert len(report.findings) == 2

    def test_unavailable_without_diskstats(self, tmp_path):
        module = IoDiagnostic()
        module.PROC_ROOT = tmp_path
        assert module.is_available() is False


# =============================================================================
# net
# =============================================================================

PING_OK = (
    "64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=240 ms\n"
    "64 bytes from 8.8.8.8: icmp_seq=2 ttl=117 time=260 ms\n"
    "64 bytes from 8.8.8.8: icmp_seq=3 ttl=117 time=250 ms\n"
)
NET_DEV = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed\n"
    "    lo:  1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0\n"
    "  eth0: 123456    100    2    1    0     0          0         0    654321     90    0    0    0     0       0          0\n"
    " wlan0:     0       0    0    0    0     0          0         0        0      0    0    0    0     0       0          0\n"
)


class TestNet:

    @pytest.fixture
    def module(self, fake_tree):
        module = NetDiagnostic()
        module.NET_DEV_PATH = fake_tree({"net/dev": NET_DEV}) / "net" / "dev"
        return module

    def run_net(self, module, ping, dns=None, extra=None):
        if isinstance(ping, Exception):
            ping_mock = patch("whydiag.modules.net.run_process", side_effect=ping)
        else:
            ping_mock = patch("whydiag.modules.net.run_process", return_value=ping)
        with ping_mock as mock_ping, patch("whydiag.modules.net.run_cmd", side_effect=commands(dns or {})):
            report = module.run(ModuleConfig(extra_args=extra or {}))
        return report, mock_ping

    def test_parsers(self):
        assert parse_ping_times(PING_OK) == [240.0, 260.0, 250.0]
        assert parse_ping_times("time<1 ms") == [1.0]
        ifaces = parse_net_dev(NET_DEV)
        assert [i.name for i in ifaces] == ["lo", "eth0", "wlan0"]
        assert ifaces[1].rx_errors == 2 and ifaces[1].tx_bytes == 654321

    def test_high_latency(self, module):
        ping = MagicMock(stdout=PING_OK, returncode=0)
        dns = {"getent hosts": "142.250.1.1   google.com\n"}
        report, mock_ping = self.run_net(module, ping, dns)

        assert report.overall_severity == Severity.WARNING
        assert metric_map(report)["Ping latency (avg)"] == pytest.approx(250.0)
        assert "DNS resolution for google.com OK" in messages(report)
        assert metric_map(report)["eth0 rx"] == 123456
        assert "lo rx" not in metric_map(report)
        assert "wlan0 rx" not in metric_map(report)
        assert any("eth0: 2 errors, 1 dropped" in m for m in messages(report))
        assert mock_ping.call_args.args[0] == ["ping", "-c", "3", "-W", "2", "8.8.8.8"]

    def test_unreachable_host(self, module):
        ping = MagicMock(stdout="", returncode=1)
        report, _ = self.run_net(module, ping, extra={"host": "example.org", "count": "1"})
        assert report.overall_severity == Severity.WARNING
        assert "Ping to example.org failed; host may be unreachable" in messages(report)
        assert any("Could not verify DNS for example.org" in m for m in messages(report))
        assert report.sorted_recommendations()[0].priority == 1

    def test_ping_missing(self, module):
        report, _ = self.run_net(module, CommandError(["ping"], "command not found"),
                                 {"host google.com": "google.com has address 1.2.3.4\n"})
        assert report.overall_severity == Severity.INFO
        assert "Could not run ping" in messages(report)
        assert "DNS resolution for google.com OK" in messages(report)


# =============================================================================
# fan and temp
# =============================================================================

class TestFan:

    def make(self, fake_tree, hwmon_files, thermal_files=None):
        module = FanDiagnostic()
        module.HWMON_PATH = fake_tree(hwmon_files, subdir="hwmon")
        module.THERMAL_PATH = fake_tree(thermal_files or {}, subdir="thermal")
        return module

    def test_no_fans(self, fake_tree):
        report = self.make(fake_tree, {}).run(ModuleConfig())
        assert report.overall_severity == Severity.INFO
        assert "No fan sensors found" in messages(report)[0]

    def test_fans_listed(self, fake_tree):
        module = self.make(fake_tree, {"hwmon2/name": "thinkpad\n", "hwmon2/fan1_input": "2400\n"})
        report = module.run(ModuleConfig())
        assert metric_map(report) == {"thinkpad fan1": 2400}
        assert report.summary == "Fan speeds within normal range"
        assert report.overall_severity == Severity.OK

    def test_threshold_correlates_with_temperature(self, fake_tree):
        module = self.make(
            fake_tree,
            {"hwmon2/name": "thinkpad\n", "hwmon2/fan1_input": "4800\n"},
            {"thermal_zone0/type": "x86_pkg_temp\n", "thermal_zone0/temp": "82000\n"},
        )
        hot = module.run(ModuleConfig(extra_args={"threshold": "75"}))
        assert any("4800 RPM while x86_pkg_temp is 82°C" in m for m in messages(hot))
        cool = module.run(ModuleConfig(extra_args={"threshold": "90"}))
        assert cool.findings == []


class TestTemp:

    def make(self, fake_tree, thermal_files, hwmon_files=None):
        module = TempDiagnostic()
        module.THERMAL_PATH = fake_tree(thermal_files, subdir="thermal")
        module.HWMON_PATH = fake_tree(hwmon_files or {}, subdir="hwmon")
        return module

    def test_no_sensors(self, fake_tree):
        report = self.make(fake_tree, {}).run(ModuleConfig())
        assert report.overall_severity == Severity.INFO

    def test_hot_sensors(self, fake_tree):
        module = self.make(
            fake_tree,
            {"thermal_zone0/type": "acpitz\n", "thermal_zone0/temp": "40000\n"},
            {"hwmon0/name": "coretemp\n", "hwmon0/temp1_input": "95000\n", "hwmon0/temp2_input": "85500\n"},
        )
        report = module.run(ModuleConfig())
        assert report.overall_severity == Severity.CRITICAL
        assert metric_map(report) == {"acpitz": 40, "coretemp temp1": 95, "coretemp temp2": 85}
        assert [f.severity for f in report.findings] == [Severity.CRITICAL, Severity.WARNING]
        assert report.recommendations[0].command == "sensors"

    def test_only_critical(self, fake_tree):
        module = self.make(
            fake_tree,
            {"thermal_zone0/type": "acpitz\n", "thermal_zone0/temp": "85000\n",
             "thermal_zone1/type": "cpu\n", "thermal_zone1/temp": "91000\n"},
        )
        report = module.run(ModuleConfig(extra_args={"critical": "true"}))
        assert list(metric_map(report)) == ["cpu"]

    def test_normal(self, fake_tree):
        module = self.make(fake_tree, {"thermal_zone0/type": "acpitz\n", "thermal_zone0/temp": "45000\n"})
        report = module.run(ModuleConfig())
        assert report.summary == "Temperatures within normal range"
        assert report.recommendations == []


# =============================================================================
# gpu
# =============================================================================

class TestGpu:

    def make(self, fake_tree, files):
        module = GpuDiagnostic()
        module.DRM_PATH = fake_tree(files, subdir="drm")
        return module

    def test_parse_nvidia_smi(self):
        gpus = parse_nvidia_smi("NVIDIA GeForce RTX 3080, 45, 1024, 10240, 92\nTesla T4, [N/A], 0\n")
        assert gpus[0].utilization == 45 and gpus[0].temperature == 92
        assert gpus[1].name == "Tesla T4"
        assert gpus[1].utilization is None and gpus[1].temperature is None

    def test_drm_cards(self, fake_tree):
        module = self.make(fake_tree, {
            "card0/device/vendor": "0x8086\n",
            "card0-HDMI-A-1/status": "connected\n",
            "card1/device/vendor": "0x1002\n",
            "card1/device/gpu_busy_percent": "37\n",
            "renderD128/dev": "226:128\n",
        })
        with patch("whydiag.modules.gpu.command_exists", return_value=False):
            report = module.run(ModuleConfig())
        assert messages(report) == ["card0 - vendor Intel", "card1 - vendor AMD"]
        assert metric_map(report) == {"card1 utilization": 37}
        assert report.overall_severity == Severity.INFO

    def test_nvidia_hot(self, fake_tree):
        module = self.make(fake_tree, {})
        with patch("whydiag.modules.gpu.command_exists", return_value=True), \
             patch("whydiag.modules.gpu.run_cmd", return_value="RTX 3080, 45, 1024, 10240, 92\n"):
            report = module.run(ModuleConfig())
        metrics = metric_map(report)
        assert metrics["NVIDIA GPU 0 name"] == "RTX 3080"
        assert metrics["NVIDIA GPU 0 memory total"] == 10240
        assert report.overall_severity == Severity.WARNING

    def test_no_gpu(self, fake_tree):
        module = self.make(fake_tree, {})
        with patch("whydiag.modules.gpu.command_exists", return_value=False):
            report = module.run(ModuleConfig())
        assert report.summary == "No GPU data available"
        assert report.overall_severity == Severity.INFO


# =============================================================================
# batt
# =============================================================================

class TestBatt:

    def make(self, path):
        module = BattDiagnostic()
        module.POWER_SUPPLY_PATH = path
        return module

    def test_no_power_supply_class(self, tmp_path):
        """Desktop without a power_supply class: Info, never an error."""
        report = self.make(tmp_path / "missing").run(ModuleConfig())
        assert report.overall_severity == Severity.INFO
        assert "No power_supply class found" in messages(report)[0]

    def test_no_battery(self, fake_tree):
        root = fake_tree({"AC/type": "Mains\n", "AC/online": "1\n"})
        report = self.make(root).run(ModuleConfig())
        assert report.overall_severity in (Severity.OK, Severity.INFO)
        assert "No battery device found" in messages(report)[0]

    def test_low_worn_battery(self, fake_tree):
        root = fake_tree({
            "BAT0/type": "Battery\n",
            "BAT0/status": "Discharging\n",
            "BAT0/capacity": "5\n",
            "BAT0/energy_full": "40000000\n",
            "BAT0/energy_full_design": "80000000\n",
            "BAT0/energy_now": "20000000\n",
            "BAT0/power_now": "10000000\n",
        })
        report = self.make(root).run(ModuleConfig(extra_args={"detailed": "true"}))
        metrics = metric_map(report)
        assert metrics["BAT0 status"] == "Discharging"
        assert metrics["BAT0 capacity"] == 5
        assert metrics["BAT0 health"] == 50.0
        assert metrics["BAT0 time to empty"] == 2.0
        assert report.overall_severity == Severity.WARNING
        assert "Battery at 5% - very low" in messages(report)
        assert report.recommendations[0].command.endswith("battery_BAT0")

    def test_healthy_battery_without_details(self, fake_tree):
        root = fake_tree({"BAT1/type": "Battery\n", "BAT1/capacity": "80\n", "BAT1/power_now": "1\n"})
        report = self.make(root).run(ModuleConfig())
        assert report.summary == "Battery status OK"
        assert "BAT1 power_now" not in metric_map(report)


# =============================================================================
# sleep
# =============================================================================

INHIBIT_LIST = (
    "WHO            UID  USER PID  COMM           WHAT  WHY                                 MODE\n"
    "ModemManager   0    root 812  ModemManager   sleep ModemManager needs to reset devices delay\n"
    "NetworkManager 0    root 900  NetworkManager sleep NetworkManager needs to turn off    delay\n"
    "\n"
    "2 inhibitors listed.\n"
)


class TestSleep:

    def make(self, fake_tree, files):
        module = SleepDiagnostic()
        module.POWER_PATH = fake_tree(files, subdir="power")
        return module

    def test_parse_inhibitors(self):
        assert len(parse_inhibitors(INHIBIT_LIST)) == 2
        assert parse_inhibitors("WHO UID USER\n\n0 inhibitors listed.\n") == []

    def test_inhibitors_and_power_state(self, fake_tree):
        module = self.make(fake_tree, {"state": "freeze mem disk\n", "wakeup_count": "12\n"})
        with patch("whydiag.modules.sleep.command_exists", return_value=True), \
             patch("whydiag.modules.sleep.run_cmd", return_value=INHIBIT_LIST):
            report = module.run(ModuleConfig())
        metrics = metric_map(report)
        assert metrics["Active inhibitors"] == 2
        assert metrics["Supported sleep states"] == ["freeze", "mem", "disk"]
        assert metrics["Wakeup count"] == 12
        assert all(m.startswith("Inhibitor: ") for m in messages(report))
        assert [r.priority for r in report.recommendations] == [3]

    def test_no_inhibitors(self, fake_tree):
        module = self.make(fake_tree, {"state": "freeze\n"})
        with patch("whydiag.modules.sleep.command_exists", return_value=True), \
             patch("whydiag.modules.sleep.run_cmd", return_value="0 inhibitors listed.\n"):
            report = module.run(ModuleConfig())
        assert "No sleep inhibitors active" in messages(report)
        assert "Suspend-to-RAM is not offered by the kernel" in messages(report)

    def test_nothing_available(self, fake_tree):
        module = self.make(fake_tree, {})
        with patch("whydiag.modules.sleep.command_exists", return_value=False):
            report = module.run(ModuleConfig())
        assert report.overall_severity == Severity.INFO
        assert "No inhibitor or wakeup data available" in messages(report)[0]


# =============================================================================
# usb
# =============================================================================

LSUSB = (
    "Bus 002 Device 001: ID 1d6b:0003 Linux Foundation 3.0 root hub\n"
    "Bus 001 Device 003: ID 046d:c52b Logitech, Inc. Unifying Receiver\n"
)
DMESG = (
    "[Mon Jan  1 10:00:00 2024] usb 1-2: new high-speed USB device number 4\n"
    "[Mon Jan  1 10:00:01 2024] usb 1-2: device descriptor read/64, error -71\n"
    "[Mon Jan  1 10:00:02 2024] usb 1-2: reset high-speed USB device number 4\n"
)


class TestUsb:

    def test_lsusb_with_filter(self):
        with patch("whydiag.modules.usb.command_exists", side_effect=lambda name: name == "lsusb"), \
             patch("whydiag.modules.usb.run_cmd", return_value=LSUSB):
            report = UsbDiagnostic().run(ModuleConfig(extra_args={"device": "logitech"}))
        assert metric_map(report)["USB devices (lsusb)"] == 2
        assert len(report.findings) == 1
        assert "Logitech" in messages(report)[0]

    def test_filter_applies_before_device_limit(self):
        hubs = "".join(
            f"Bus 001 Device {n:03d}: ID 1d6b:0002 Linux Foundation 2.0 root hub\n" for n in range(1, 20)
        )
        output = hubs + "Bus 003 Device 002: ID 046d:c52b Logitech, Inc. Unifying Receiver\n"
        with patch("whydiag.modules.usb.command_exists", side_effect=lambda name: name == "lsusb"), \
             patch("whydiag.modules.usb.run_cmd", return_value=output):
            report = UsbDiagnostic().run(ModuleConfig(extra_args={"device": "logitech"}))
        assert metric_map(report)["USB devices (lsusb)"] == 20
        assert len(report.findings) == 1
        assert "Logitech" in messages(report)[0]

    def test_unfiltered_listing_is_capped(self):
        output = "".join(f"Bus 001 Device {n:03d}: ID 1d6b:0002 hub\n" for n in range(1, 21))
        with patch("whydiag.modules.usb.command_exists", side_effect=lambda name: name == "lsusb"), \
             patch("whydiag.modules.usb.run_cmd", return_value=output):
            report = UsbDiagnostic().run(ModuleConfig())
        assert len(report.findings) == UsbDiagnostic.DEVICE_LIMIT

    def test_dmesg_errors(self):
        with patch("whydiag.modules.usb.command_exists", return_value=True), \
             patch("whydiag.modules.usb.run_cmd", side_effect=commands({"lsusb": LSUSB, "dmesg -T": DMESG})):
            report = UsbDiagnostic().run(ModuleConfig(extra_args={"dmesg": "true"}))
        dmesg = [f for f in report.findings if f.category == "dmesg"]
        assert len(dmesg) == 2
        assert report.overall_severity == Severity.WARNING

    def test_usb_error_lines(self):
        assert len(usb_error_lines(DMESG, limit=1)) == 1

    def test_sysfs_fallback(self, fake_tree):
        root = fake_tree({"usb1/idVendor": "1d6b\n", "1-1/idVendor": "046d\n", "1-1:1.0/bInterfaceClass": "03\n"})
        module = UsbDiagnostic()
        module.USB_DEVICES_PATH = root
        with patch("whydiag.modules.usb.command_exists", return_value=False):
            report = module.run(ModuleConfig())
        assert metric_map(report) == {"USB devices (sysfs)": 1}

    def test_nothing_available(self, tmp_path):
        module = UsbDiagnostic()
        module.USB_DEVICES_PATH = tmp_path / "missing"
        with patch("whydiag.modules.usb.command_exists", return_value=False):
            report = module.run(ModuleConfig())
        assert report.overall_severity == Severity.INFO


# =============================================================================
# mount
# =============================================================================

MOUNTS = (
    "/dev/sda1 / ext4 rw,relatime,errors=remount-ro 0 0\n"
    "/dev/sdb1 /data ext4 ro,relatime 0 0\n"
    "tmpfs /run tmpfs ro,nosuid 0 0\n"
    "server:/export /mnt/nfs nfs4 rw,vers=4.2 0 0\n"
    "/dev/loop0 /snap/core/1 squashfs ro,nodev 0 0\n"
    "/dev/sdc1 /media/My\\040Disk vfat rw 0 0\n"
)
FSTAB = (
    "# /etc/fstab\n"
    "UUID=abc / ext4 defaults 0 1\n"
    "UUID=def /backup ext4 defaults 0 2\n"
    "UUID=swp none swap sw 0 0\n"
    "/dev/sr0 /media/cdrom iso9660 noauto 0 0\n"
)


class TestMount:

    def make(self, fake_tree, mounts=MOUNTS, fstab=FSTAB):
        root = fake_tree({"mounts": mounts, "fstab": fstab})
        module = MountDiagnostic()
        module.MOUNTS_PATH = root / "mounts"
        module.FSTAB_PATH = root / "fstab"
        return module

    def test_parse_mount_table(self):
        entries = parse_mount_table(MOUNTS)
        assert entries[-1].mountpoint == "/media/My Disk"
        assert entries[0].options == ["rw", "relatime", "errors=remount-ro"]

    def test_read_only_and_fstab(self, fake_tree):
        report = self.make(fake_tree).run(ModuleConfig())
        found = messages(report)
        assert "Read-only: /dev/sdb1 on /data" in found
        assert not any("remount-ro" in m or "/run" in m or "/snap" in m for m in found)
        assert any("fstab entry /backup" in m for m in found)
        assert not any("cdrom" in m or "none" in m for m in found)
        metrics = metric_map(report)
        assert metrics["Mount count"] == 6
        assert metrics["fstab entries"] == 4
        assert report.overall_severity == Severity.WARNING

    def test_nfs_and_options(self, fake_tree):
        report = self.make(fake_tree, fstab="").run(
            ModuleConfig(extra_args={"nfs": "true", "options": "true", "mountpoint": "/mnt"}))
        assert messages(report) == ["/mnt/nfs rw,vers=4.2"]
        assert metric_map(report)["/mnt/nfs"] == "rw,vers=4.2"
        assert metric_map(report)["Mount count"] == 1

    def test_clean(self, fake_tree):
        report = self.make(fake_tree, mounts="/dev/sda1 / ext4 rw 0 0\n", fstab="UUID=a / ext4 defaults 0 1\n").run(ModuleConfig())
        assert report.summary == "Mounts look normal"
        assert report.overall_severity == Severity.OK

    def test_unreadable_mounts_is_execution_error(self, tmp_path):
        module = MountDiagnostic()
        module.MOUNTS_PATH = tmp_path
        with pytest.raises(ExecutionError):
            module.run(ModuleConfig())
