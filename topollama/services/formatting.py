import math

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
MISSING = "-"


def format_size(num_bytes: int | float | None) -> str:
    """Render a byte count as B/KB/MB/GB/TB using base-1024 steps.

    ``None`` and NaN render as ``-``; raw bytes stay integral, every larger
    unit gets one decimal place.
    """
    if num_bytes is None or (isinstance(num_bytes, float) and math.isnan(num_bytes)):
        return MISSING
    if num_bytes == 0:
        return "0 B"

    index = 0
    scaled = float(num_bytes)
    while scaled >= 1024 and index < len(SIZE_UNITS) - 1:
        scaled /= 1024
        index += 1

    if index == 0:
        return f"{int(num_bytes)} {SIZE_UNITS[0]}"
    return f"{scaled:.1f} {SIZE_UNITS[index]}"
