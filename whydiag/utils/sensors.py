"""Readers for /sys/class/hwmon and /sys/class/thermal sensor trees."""

from pathlib import Path
from typing import List, Tuple

from whydiag.utils.files import list_dir, read_first_line
from whydiag.utils.parse import parse_int

HWMON_PATH = Path("/sys/class/hwmon")
THERMAL_PATH = Path("/sys/class/thermal")


def read_hwmon_inputs(kind: str, hwmon_path: Path = HWMON_PATH) -> List[Tuple[str, int]]:
    """
    Raw ``<kind>N_input`` values from every hwmon chip.

    Args:
        kind: Sensor prefix, e.g. "fan" (RPM) or "temp" (millidegrees C)

    Returns:
        (label, raw value) pairs; labels look like "coretemp temp1", or use
        the chip's ``<kind>N_label`` file when present.
    """
    readings = []
    for chip in list_dir(hwmon_path):
        chip_name = read_first_line(chip / "name") or chip.name
        for entry in list_dir(chip):
            fname = entry.name
            if not (fname.startswith(kind) and fname.endswith("_input")):
                continue
            value = parse_int(read_first_line(entry))
            if value is None:
                continue
            sensor = fname[: -len("_input")]
            label = read_first_line(chip / f"{sensor}_label")
            readings.append((f"{chip_name} {label or sensor}", value))
    return readings


def read_thermal_zones(thermal_path: Path = THERMAL_PATH) -> List[Tuple[str, int]]:
    """(zone type, millidegrees C) for every thermal_zone with a readable temp."""
    zones = []
    for zone in list_dir(thermal_path):
        if not zone.name.startswith("thermal_zone"):
            continue
        value = parse_int(read_first_line(zone / "temp"))
        if value is None:
            continue
        zones.append((read_first_line(zone / "type") or zone.name, value))
    return zones
