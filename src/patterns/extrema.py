"""
Extremum Detector

Local peaks and troughs over a fixed ±2 bar neighbourhood, gated by relative
prominence.

  Peak at i (2 ≤ i ≤ n-3):
    v[i] strictly above v[i-2], v[i-1], v[i+1], v[i+2]
    prominence = (v[i] - max(min(v[i-1], v[i-2]), min(v[i+1], v[i+2]))) / v[i]

  Trough at i (mirror):
    v[i] strictly below the same four neighbours
    ref        = min(max(v[i-1], v[i-2]), max(v[i+1], v[i+2]))
    prominence = (ref - v[i]) / ref

The neighbourhood width is fixed. It is NOT a lever.

Because the test at i only reads v[i-2..i+2], the extrema of any slice
values[a:b+1] are exactly the full-series extrema inside [a+2, b-2]. The
orchestrator relies on this to compute extrema once per series.
"""
from typing import List, Optional

import numpy as np
from scipy.signal import argrelextrema

from . import pattern_config as _cfg

_NEIGHBORS = 2
_MIN_POINTS = 2 * _NEIGHBORS + 1


def find_peaks(values, min_prominence: Optional[float] = None) -> List[int]:
    """Ascending indices of prominent local maxima."""
    return _find_extrema(values, min_prominence, kind="peak")


def find_troughs(values, min_prominence: Optional[float] = None) -> List[int]:
    """Ascending indices of prominent local minima."""
    return _find_extrema(values, min_prominence, kind="trough")


def _find_extrema(values, min_prominence: Optional[float], kind: str) -> List[int]:
    v = np.asarray(values, dtype=np.float64)
    n = len(v)
    if n < _MIN_POINTS:
        return []
    if min_prominence is None:
        min_prominence = _cfg.MIN_PROMINENCE

    comparator = np.greater if kind == "peak" else np.less
    idx = argrelextrema(v, comparator, order=_NEIGHBORS)[0]
    # argrelextrema clips at the edges; the first/last two bars never qualify
    idx = idx[(idx >= _NEIGHBORS) & (idx <= n - 1 - _NEIGHBORS)]
    if len(idx) == 0:
        return []

    l1, l2 = v[idx - 1], v[idx - 2]
    r1, r2 = v[idx + 1], v[idx + 2]
    cur = v[idx]

    # Zero denominators follow IEEE semantics: +inf passes, nan fails.
    with np.errstate(divide="ignore", invalid="ignore"):
        if kind == "peak":
            floor = np.maximum(np.minimum(l1, l2), np.minimum(r1, r2))
            prominence = (cur - floor) / cur
        else:
            ref = np.minimum(np.maximum(l1, l2), np.maximum(r1, r2))
            prominence = (ref - cur) / ref

    return [int(i) for i in idx[prominence >= min_prominence]]
