from __future__ import annotations

from enquery.models.config import AppSettings
from enquery.models.timeseries import DataField, DataType, Timeseries

__all__ = [
    # config
    "AppSettings",
    # timeseries
    "DataField",
    "DataType",
    "Timeseries",
]
