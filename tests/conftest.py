"""
Shared fixtures: synthetic head-and-shoulders candles and lever isolation.
"""
import os
import sys

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.patterns import pattern_config


def synthetic_hs_frame(
    base_price: float = 100.0,
    pattern_height: float = 20.0,
    total_periods: int = 60,
    right_shoulder_scale: float = 0.6,
    shoulder_volume: float = 1.35,
    head_volume: float = 0.8,
    crest_wick: float = 0.03,
    body_wick: float = 0.004,
    noise: float = 0.0,
    seed: int = 0,
) -> pd.DataFrame:
    """
    Left shoulder / head / right shoulder as three scaled sine lobes.

    Lobes span progress [0, 0.25], (0.25, 0.6], (0.6, 1]; shoulders reach
    60% of pattern_height, the head 100%. The crest bar of each lobe prints
    an exhaustion wick (crest_wick above the body) so every lobe top clears
    the 2% prominence gate. Volume is shoulder_volume × 1M on the shoulders
    and head_volume × 1M on the head. noise=0 gives a fully deterministic
    series; noise > 0 adds seeded close jitter of ±noise/2 of price.
    """
    n = total_periods
    idx = np.arange(n)
    progress = idx / (n - 1)

    seg = np.where(progress <= 0.25, 0, np.where(progress <= 0.6, 1, 2))
    local = np.select(
        [seg == 0, seg == 1, seg == 2],
        [progress / 0.25, (progress - 0.25) / 0.35, (progress - 0.6) / 0.4],
    )
    scale = np.select([seg == 0, seg == 1, seg == 2], [0.6, 1.0, right_shoulder_scale])
    mult = 1 + pattern_height / 100 * scale * np.sin(local * np.pi)
    price = base_price * mult

    rng = np.random.default_rng(seed)
    close = price + (noise * price * (rng.random(n) - 0.5) if noise else 0.0)
    open_ = close + (noise * 0.5 * price * (rng.random(n) - 0.5) if noise else 0.0)
    top = np.maximum(open_, close)
    bottom = np.minimum(open_, close)
    high = top * (1 + body_wick)
    low = bottom * (1 - body_wick)

    for s in (0, 1, 2):
        members = np.flatnonzero(seg == s)
        crest = members[np.argmax(mult[members])]
        high[crest] = top[crest] * (1 + crest_wick)

    on_shoulder = (progress <= 0.25) | (progress >= 0.6)
    volume = np.where(on_shoulder, shoulder_volume, head_volume) * 1_000_000

    return pd.DataFrame({
        "open":      open_,
        "high":      high,
        "low":       low,
        "close":     close,
        "volume":    volume,
        "timestamp": 1_700_000_000 + idx * 86_400,
    })


@pytest.fixture
def make_hs_frame():
    return synthetic_hs_frame


@pytest.fixture
def hs_frame():
    return synthetic_hs_frame()


@pytest.fixture(autouse=True)
def _restore_levers():
    """Levers are module globals: undo any test's apply_levers()."""
    saved = pattern_config.snapshot_levers()
    yield
    pattern_config.apply_levers(saved)
