"""
Candle model and input coercion.

The engine reads candles in three shapes:
  - a pandas DataFrame with open/high/low/close/volume columns (any case),
    timestamps from a 'timestamp' column or a DatetimeIndex
  - a sequence of Candle
  - a sequence of mappings with the same keys ('timeStamp' also accepted)

Everything is normalised to a CandleArrays of float64 numpy arrays before the
search starts. Contract violations (non-numeric fields, NaN/inf, missing
columns) raise here, at the boundary, never inside the search.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from numbers import Real
from typing import List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

OHLCV = ("open", "high", "low", "close", "volume")
_TIMESTAMP_KEYS = ("timestamp", "timeStamp", "time_stamp")


@dataclass(frozen=True)
class Candle:
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: float = 0.0   # seconds since epoch

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CandleArrays:
    """Column-oriented view of a candle series."""
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray
    timestamp: np.ndarray

    def __len__(self) -> int:
        return len(self.close)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame({
            "open":   self.open,
            "high":   self.high,
            "low":    self.low,
            "close":  self.close,
            "volume": self.volume,
        })
        df.index = pd.to_datetime(self.timestamp, unit="s")
        return df


CandleInput = Union[pd.DataFrame, "CandleArrays", Sequence[Candle], Sequence[Mapping]]


def to_arrays(candles: CandleInput) -> CandleArrays:
    """Normalise any supported candle container to CandleArrays."""
    if isinstance(candles, CandleArrays):
        return candles
    if isinstance(candles, pd.DataFrame):
        return _from_frame(candles)
    if isinstance(candles, (str, bytes)) or not isinstance(candles, Sequence):
        raise TypeError(
            f"candles must be a DataFrame or a sequence of candles, "
            f"got {type(candles).__name__}"
        )
    return _from_records(candles)


def _from_frame(df: pd.DataFrame) -> CandleArrays:
    cols = {str(c).lower(): c for c in df.columns}
    missing = [k for k in OHLCV if k not in cols]
    if missing:
        raise ValueError(f"candle frame is missing columns: {missing}")

    arrays = {}
    for key in OHLCV:
        series = df[cols[key]]
        if not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
            raise TypeError(f"column '{key}' must be numeric, got {series.dtype}")
        arrays[key] = series.to_numpy(dtype=np.float64)

    ts_col = next((cols[k.lower()] for k in _TIMESTAMP_KEYS if k.lower() in cols), None)
    if ts_col is not None:
        arrays["timestamp"] = df[ts_col].to_numpy(dtype=np.float64)
    elif isinstance(df.index, pd.DatetimeIndex):
        # int64 nanoseconds → float seconds
        arrays["timestamp"] = df.index.as_unit("ns").asi8.astype(np.float64) / 1e9
    else:
        arrays["timestamp"] = np.zeros(len(df), dtype=np.float64)

    return _checked(arrays)


def _from_records(records: Sequence) -> CandleArrays:
    arrays = {key: np.empty(len(records), dtype=np.float64) for key in OHLCV + ("timestamp",)}
    for i, rec in enumerate(records):
        if isinstance(rec, Candle):
            rec = asdict(rec)
        elif not isinstance(rec, Mapping):
            raise TypeError(f"candle {i} must be a Candle or mapping, got {type(rec).__name__}")
        for key in OHLCV:
            if key not in rec:
                raise ValueError(f"candle {i} is missing '{key}'")
            arrays[key][i] = _number(rec[key], key, i)
        ts = next((rec[k] for k in _TIMESTAMP_KEYS if k in rec), 0.0)
        arrays["timestamp"][i] = _number(ts, "timestamp", i)
    return _checked(arrays)


def _number(value, key: str, i: int) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"candle {i} field '{key}' must be numeric, got {value!r}")
    return float(value)


def _checked(arrays: dict) -> CandleArrays:
    for key in OHLCV:
        bad = np.flatnonzero(~np.isfinite(arrays[key]))
        if len(bad):
            raise ValueError(f"non-finite '{key}' at candle {int(bad[0])}")
    return CandleArrays(**arrays)


def to_candles(arrays: CandleArrays) -> List[Candle]:
    """Row-oriented copy of a CandleArrays."""
    return [
        Candle(
            open=float(arrays.open[i]),
            high=float(arrays.high[i]),
            low=float(arrays.low[i]),
            close=float(arrays.close[i]),
            volume=float(arrays.volume[i]),
            timestamp=float(arrays.timestamp[i]),
        )
        for i in range(len(arrays))
    ]
