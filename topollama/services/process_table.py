"""Parser for the fixed-width table printed by ``ollama ps``.

Columns are located by the position of their labels in the header line, so
values that contain spaces ("4.2 GB", "100% GPU", "4 minutes from now") are
sliced intact. A header that lacks any expected label is rejected outright.
"""

import re

import structlog

from topollama.core.exceptions import UnsupportedTableFormatError
from topollama.schemas.models import ZERO_PERCENT, ModelUsage

logger = structlog.get_logger()

EXPECTED_COLUMNS = ("NAME", "ID", "SIZE", "PROCESSOR", "UNTIL")

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_PROCESSOR_RE = re.compile(r"\b(CPU|GPU)\b")
_CELL_GAP_RE = re.compile(r"\s{2,}")


def column_offsets(header: str) -> dict[str, int]:
    """Map each expected label to its start offset in ``header``."""
    offsets: dict[str, int] = {}
    missing = []
    for label in EXPECTED_COLUMNS:
        match = re.search(rf"(?<!\S){label}(?!\S)", header)
        if match is None:
            missing.append(label)
        else:
            offsets[label] = match.start()
    if missing:
        raise UnsupportedTableFormatError(missing=missing)
    return offsets


def _cuts_between_values(row: str, starts: list[int]) -> bool:
    # A cut must land in whitespace and not on the lone space inside a
    # value such as "4.2 GB" or "100% GPU".
    for start in starts[1:]:
        if start >= len(row):
            continue
        if not row[start - 1].isspace():
            return False
        lone_space = start >= 2 and not row[start - 2].isspace() and not row[start].isspace()
        if lone_space:
            return False
    return True


def split_row(row: str, offsets: dict[str, int]) -> dict[str, str]:
    """Slice one data row into cells keyed by column label."""
    ordered = sorted(offsets.items(), key=lambda item: item[1])
    labels = [label for label, _ in ordered]
    starts = [start for _, start in ordered]

    if _cuts_between_values(row, starts):
        ends = starts[1:] + [None]
        cells = [row[start:end].strip() for start, end in zip(starts, ends)]
        # a cell holding a column gap means two values fell between the same cuts
        if not any(_CELL_GAP_RE.search(cell) for cell in cells):
            return dict(zip(labels, cells))

    # Row drifted off the header grid; accept it only if the gaps between
    # values still give exactly one cell per column.
    cells = _CELL_GAP_RE.split(row.strip())
    if len(cells) != len(labels):
        raise ValueError(f"expected {len(labels)} columns, found {len(cells)}")
    return dict(zip(labels, cells))


def _trailing_percent(text: str) -> str:
    matches = _PERCENT_RE.findall(text)
    return f"{matches[-1]}%" if matches else "100%"


def parse_processor(descriptor: str) -> tuple[str, str]:
    """Return ``(cpu_percent, gpu_percent)`` for a PROCESSOR cell.

    ``"100% GPU"`` -> ``("0%", "100%")``, ``"CPU"`` -> ``("100%", "0%")``,
    ``"48%/52% CPU/GPU"`` -> ``("48%", "52%")``. Anything else is ``0%/0%``.
    """
    text = descriptor.strip().upper()
    processors = _PROCESSOR_RE.findall(text)

    if len(processors) == 2 and set(processors) == {"CPU", "GPU"}:
        percents = _PERCENT_RE.findall(text)
        if len(percents) == 2:
            split = {name: f"{pct}%" for name, pct in zip(processors, percents)}
            return split["CPU"], split["GPU"]

    if "GPU" in processors:
        return ZERO_PERCENT, _trailing_percent(text)
    if "CPU" in processors:
        return _trailing_percent(text), ZERO_PERCENT
    return ZERO_PERCENT, ZERO_PERCENT


def parse_process_table(output: str) -> dict[str, ModelUsage]:
    """Parse ``ollama ps`` output into ``{model name: ModelUsage}``.

    Returns an empty mapping for empty or unsupported output. A row that
    fails to parse is logged and skipped; later duplicates of a name win.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if len(lines) < 2:
        return {}

    try:
        offsets = column_offsets(lines[0])
    except UnsupportedTableFormatError as e:
        logger.warning("process_table_unsupported_format", missing=e.details["missing"], header=lines[0].strip())
        return {}

    usage: dict[str, ModelUsage] = {}
    for index, row in enumerate(lines[1:], start=1):
        try:
            cells = split_row(row, offsets)
            name = cells["NAME"]
            if not name or not cells["PROCESSOR"]:
                raise ValueError("row has no NAME or PROCESSOR value")
            cpu_pct, gpu_pct = parse_processor(cells["PROCESSOR"])
            usage[name] = ModelUsage(
                committed_memory=cells["SIZE"],
                cpu_percent=cpu_pct,
                gpu_percent=gpu_pct,
            )
        except Exception as e:
            logger.warning("process_table_row_skipped", row=index, error=str(e))
    return usage
