"""Human-readable byte sizes for progress and summary output."""

from typing import Tuple

_UNITS: Tuple[str, ...] = ("KB", "MB", "GB")


def format_size(num_bytes: int) -> str:
    """
    Format a byte count using 1024-based units.

    Values below 1024 are shown as plain bytes; anything larger is scaled to
    KB, MB or GB with two decimals. GB is the largest unit used.

    Args:
        num_bytes (int): The size in bytes.

    Returns:
        str: The formatted size, e.g. ``"1023 bytes"`` or ``"1.50 KB"``.
    """
    if num_bytes < 1024:
        return f"{num_bytes} bytes"

    value: float = float(num_bytes)
    unit: str = _UNITS[0]
    for unit in _UNITS:
        value /= 1024
        if value < 1024:
            break
    return f"{value:.2f} {unit}"
