"""Human-readable formatting helpers."""

_BINARY_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]


def format_bytes(num_bytes: int) -> str:
    """Format a byte count with binary units, e.g. "1.5 GiB"."""
    value = float(num_bytes)
    for unit in _BINARY_UNITS:
        if abs(value) < 1024 or unit == _BINARY_UNITS[-1]:
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{num_bytes} B"


def format_duration(seconds: float) -> str:
    """Format seconds compactly, e.g. "3h 24m" or "1.2s"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    total = int(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs and not days:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_percent(value: float) -> str:
    return f"{value:.1f}%"
