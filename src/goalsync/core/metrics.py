# src/goalsync/core/metrics.py
"""
Metric Extractor.

Derives a non-negative integer from a document's text.  The extractor is
pure; reading the document is the document store's job.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, Union

from ..exceptions import UnsupportedMetricKind
from ..models import MetricKind

COMPLETED_MARKER = "- [x]"
UNCOMPLETED_MARKER = "- [ ]"

_LINE_BREAK_RE = re.compile(r"\r?\n")


def count_words(text: str) -> int:
    """Number of whitespace-delimited tokens."""
    return len(text.split())


def _count_marked_lines(text: str, marker: str) -> int:
    return sum(1 for line in _LINE_BREAK_RE.split(text) if line.strip().startswith(marker))


def count_completed_tasks(text: str) -> int:
    return _count_marked_lines(text, COMPLETED_MARKER)


def count_uncompleted_tasks(text: str) -> int:
    return _count_marked_lines(text, UNCOMPLETED_MARKER)


EXTRACTORS: Dict[MetricKind, Callable[[str], int]] = {
    MetricKind.WORD_COUNT: count_words,
    MetricKind.COMPLETED_TASKS: count_completed_tasks,
    MetricKind.UNCOMPLETED_TASKS: count_uncompleted_tasks,
}


def extract(text: str, kind: Union[MetricKind, str]) -> int:
    """
    Compute the metric of ``kind`` for ``text``.

    Args:
        text: Full document content.
        kind: A :class:`MetricKind` or its string form (aliases such as
            ``"wordCount"`` are accepted).

    Returns:
        The metric value.

    Raises:
        UnsupportedMetricKind: If ``kind`` is not a known metric.
    """
    try:
        metric = MetricKind(kind)
    except ValueError:
        raise UnsupportedMetricKind(kind)

    extractor = EXTRACTORS.get(metric)
    if extractor is None:
        raise UnsupportedMetricKind(kind)
    return extractor(text)
