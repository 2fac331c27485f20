"""Drop labels that carry no information across a batch of frames.

When several sub-queries are charted together, a ``key=value`` label that
is present on *every* value column of *every* frame in the batch does not
tell the columns apart, so it is removed everywhere.  Columns left without
labels are named after their frame's ``telemetry`` label, if it had one.

Note the rule is global: a pair shared by all columns is removed even if it
was the only thing distinguishing two of them.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from enquery.telemetry.frames import Frame

logger = logging.getLogger(__name__)

TELEMETRY_LABEL = "telemetry"


def make_labels_unique(frames: Sequence[Frame]) -> None:
    """Remove batch-wide constant labels in place and name bare columns.

    Frames without value columns are ignored.  Each frame's default column
    name is the value of its first ``telemetry`` label.
    """
    frames = [f for f in frames if f.data_fields]

    counter: Counter[tuple[str, str]] = Counter()
    default_names: dict[int, str] = {}
    total = 0

    for i, frame in enumerate(frames):
        for frame_field in frame.data_fields:
            for k, v in frame_field.labels.items():
                if k == TELEMETRY_LABEL:
                    default_names.setdefault(i, v)
                counter[(k, v)] += 1
            total += 1

    redundant = [kv for kv, n in counter.items() if n == total]
    if redundant:
        logger.debug("Removing labels shared by all %d columns: %s", total, redundant)

    for k, _v in redundant:
        for frame in frames:
            for frame_field in frame.data_fields:
                del frame_field.labels[k]

    for i, frame in enumerate(frames):
        name = default_names.get(i)
        if name is None:
            continue
        for frame_field in frame.data_fields:
            if not frame_field.labels:
                frame_field.name = name
