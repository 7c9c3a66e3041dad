"""Reference strings for archive documents and organigram file versions."""

import re
from typing import Iterable, Optional, Sequence

from ..core.enums import CategoryMode
from ..schemas.settings import ReferenceFormat

_PLACEHOLDER_RE = re.compile(r"\{(seq|cat|sep|year|name)\}")


def category_segment(path_names: Sequence[str], fmt: ReferenceFormat) -> str:
    """The category part of a reference, picked from the root-first path."""
    if not path_names:
        return ""
    if fmt.category_mode == CategoryMode.LAST:
        return path_names[-1]
    if fmt.category_mode == CategoryMode.ROOT:
        return path_names[0]
    return fmt.separator.join(path_names)


def format_sequence(seq: int, fmt: ReferenceFormat) -> str:
    return str(seq).zfill(fmt.sequence_length)


def build_reference(
    path_names: Sequence[str],
    seq: int,
    fmt: ReferenceFormat,
    year: Optional[int] = None,
    name: str = "",
) -> str:
    """Render one reference.

    Args:
        path_names: Category (or organigram) names from the root down.
        seq: Sequence number, zero-padded to ``fmt.sequence_length``.
        fmt: Current reference format.
        year: Substituted for ``{year}``.
        name: Substituted for ``{name}``.
    """
    seq_str = format_sequence(seq, fmt)
    cat = category_segment(path_names, fmt)

    if fmt.pattern and "{" in fmt.pattern:
        values = {
            "{seq}": seq_str,
            "{cat}": cat,
            "{sep}": fmt.separator,
            "{year}": "" if year is None else str(year),
            "{name}": name or "",
        }
        # Single pass: substituted values are never scanned again.
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], fmt.pattern)

    return f"{seq_str}{fmt.separator}{cat}"


def next_code(existing_codes: Iterable[str]) -> int:
    """Next sequence number given the codes already used in a (category, year).

    Codes that are not plain integers are ignored. Starts at 1.
    """
    highest = 0
    for code in existing_codes:
        try:
            value = int(code)
        except (TypeError, ValueError):
            continue
        highest = max(highest, value)
    return highest + 1
