"""Shared helpers for diagnostic modules."""

from whydiag.utils.files import list_dir, read_file_optional, read_first_line
from whydiag.utils.format import format_bytes, format_duration, format_percent
from whydiag.utils.parse import (
    parse_float,
    parse_int,
    parse_size_human,
)
from whydiag.utils.permissions import (
    can_read_proc,
    can_read_sys,
    has_all_permissions,
    has_permission,
    is_root,
    missing_permissions,
)
from whydiag.utils.process import parse_status, process_name, process_uid
from whydiag.utils.sensors import read_hwmon_inputs, read_thermal_zones
from whydiag.utils.system import CommandError, command_exists, run_cmd, run_process

__all__ = [
    'list_dir',
    'read_file_optional',
    'read_first_line',
    'format_bytes',
    'format_duration',
    'format_percent',
    'parse_float',
    'parse_int',
    'parse_size_human',
    'can_read_proc',
    'can_read_sys',
    'has_all_permissions',
    'has_permission',
    'is_root',
    'missing_permissions',
    'parse_status',
    'process_name',
    'process_uid',
    'read_hwmon_inputs',
    'read_thermal_zones',
    'CommandError',
    'command_exists',
    'run_cmd',
    'run_process',
]
