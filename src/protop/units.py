"""Human-readable formatting of byte counts and durations."""


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} {unit}"
        size = size / 1024
    return f"{size:.1f} P"


def format_rate(bytes_per_second: float) -> str:
    """Format a transfer rate in bytes per second."""
    return f"{format_bytes(bytes_per_second)}/s"


def format_uptime(seconds: float) -> str:
    """Format an uptime as ``[N days, ]HH:MM:SS``."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
