"""Utility functions for page selection and filtering."""

import re
from typing import Iterator, List, Optional, Tuple

# Leading digits are read and anything after them ignored ("3.0" -> 3, "2a" -> 2).
_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def _parse_int(text: str) -> Optional[int]:
    """Parse the leading base-10 integer of text, or None when there is none."""
    match = _LEADING_INT.match(text)
    if not match:
        return None
    return int(match.group(1))


def _segments(page_range: str) -> Iterator[Tuple[int, int]]:
    """Yield each usable segment as an inclusive 1-based (start, end) pair."""
    for part in page_range.split(','):
        if not part.strip():
            continue
        if '-' in part:
            start_text, end_text = part.split('-', 1)
            start = _parse_int(start_text)
            end = _parse_int(end_text)
            if start is None or end is None:
                continue
            yield start, end
        else:
            page = _parse_int(part)
            if page is not None:
                yield page, page


def parse_page_range(page_range: str) -> List[int]:
    """
    Parse page range string into list of zero-based page indices.

    Args:
        page_range: Page range string (e.g., "1-3,5,9-10")
                   Pages are 1-indexed.

    Returns:
        List of page indices (0-indexed) in the order they were written.
        Repeated pages are kept. Blank, non-numeric and reversed segments
        contribute nothing, and pages below 1 are dropped.
    """
    return [
        i - 1
        for start, end in _segments(page_range)
        for i in range(max(start, 1), end + 1)
    ]


def count_page_range(page_range: str) -> int:
    """Number of indices parse_page_range would return, without building them."""
    return sum(max(0, end - max(start, 1) + 1) for start, end in _segments(page_range))
