from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from textwrap import wrap
from typing import Union

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    """Render a titled block of aligned ``label: value`` lines for log output."""
    items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
    lines: list[str] = [""] if pad_top else []
    lines.append(title)
    lines.append("-" * len(title))

    computed_width = max((len(str(key)) for key, _ in items), default=0)
    label_width = max(min(computed_width, DEFAULT_LABEL_WIDTH), 8)
    value_width = max(DEFAULT_WRAP_WIDTH - len(DEFAULT_INDENT) - label_width - 4, 32)

    for key, value in items:
        wrapped = wrap(_stringify(value), width=value_width) or [""]
        lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {wrapped[0]}")
        for continuation in wrapped[1:]:
            lines.append(f"{DEFAULT_INDENT}{'':<{label_width}}  {continuation}")
    return "\n".join(lines).rstrip()
