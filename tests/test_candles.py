"""
Unit tests for candle input coercion.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import numpy as np
import pandas as pd
import pytest

from src.patterns.candles import Candle, CandleArrays, to_arrays, to_candles


def make_frame(n: int = 5) -> pd.DataFrame:
    close = np.linspace(100.0, 104.0, n)
    return pd.DataFrame({
        "open":   close - 0.5,
        "high":   close + 1.0,
        "low":    close - 1.0,
        "close":  close,
        "volume": np.full(n, 1_000.0),
    })


class TestFromFrame:
    def test_columns_become_float_arrays(self):
        arr = to_arrays(make_frame())
        assert len(arr) == 5
        assert arr.close.dtype == np.float64
        assert arr.high[0] == 101.0

    def test_timestamps_default_to_zero(self):
        assert not to_arrays(make_frame()).timestamp.any()

    def test_timestamps_from_datetime_index(self):
        df = make_frame(3)
        df.index = pd.date_range("2024-01-01", periods=3, freq="1h")
        ts = to_arrays(df).timestamp
        assert ts[0] == pd.Timestamp("2024-01-01").timestamp()
        assert ts[1] - ts[0] == 3600.0

    def test_timestamp_column_wins(self):
        df = make_frame(3)
        df["TimeStamp"] = [10, 20, 30]
        assert to_arrays(df).timestamp.tolist() == [10.0, 20.0, 30.0]

    def test_bool_column_rejected(self):
        df = make_frame()
        df["volume"] = True
        with pytest.raises(TypeError):
            to_arrays(df)

    def test_inf_rejected(self):
        df = make_frame()
        df.loc[2, "low"] = np.inf
        with pytest.raises(ValueError, match="non-finite 'low' at candle 2"):
            to_arrays(df)


class TestFromRecords:
    def test_candles_and_mappings_agree(self):
        arr = to_arrays(make_frame())
        from_candles = to_arrays(to_candles(arr))
        from_dicts = to_arrays([c.to_dict() for c in to_candles(arr)])
        for key in ("open", "high", "low", "close", "volume"):
            np.testing.assert_array_equal(getattr(from_candles, key), getattr(arr, key))
            np.testing.assert_array_equal(getattr(from_dicts, key), getattr(arr, key))

    def test_missing_key(self):
        with pytest.raises(ValueError, match="missing 'volume'"):
            to_arrays([{"open": 1, "high": 2, "low": 0.5, "close": 1.5}])

    def test_bool_field_rejected(self):
        c = {"open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": False}
        with pytest.raises(TypeError):
            to_arrays([c])

    def test_non_mapping_record(self):
        with pytest.raises(TypeError):
            to_arrays([(1, 2, 0.5, 1.5, 100)])

    def test_arrays_pass_through(self):
        arr = to_arrays(make_frame())
        assert to_arrays(arr) is arr


class TestToFrame:
    def test_datetime_index_round_trip(self):
        c = Candle(open=1.0, high=2.0, low=0.5, close=1.5, volume=10.0, timestamp=1_700_000_000)
        df = to_arrays([c]).to_frame()
        assert list(df.columns) == ["open", "high", "low", "close", "volume"]
        assert df.index[0] == pd.Timestamp(1_700_000_000, unit="s")
        assert isinstance(to_arrays(df), CandleArrays)
