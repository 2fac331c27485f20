"""Telemetry query pipeline: prepare, decode, assemble, label."""

from __future__ import annotations

from enquery.telemetry.decoder import TimeseriesDecoder
from enquery.telemetry.frames import Frame, FrameField, assemble_frame
from enquery.telemetry.labels import make_labels_unique
from enquery.telemetry.preparer import (
    PreparedQuery,
    TimeRange,
    default_granularity,
    prepare_query,
)

__all__ = [
    "Frame",
    "FrameField",
    "PreparedQuery",
    "TimeRange",
    "TimeseriesDecoder",
    "assemble_frame",
    "default_granularity",
    "make_labels_unique",
    "prepare_query",
]
