"""
Candidate Generator

Turns the detected peaks/troughs of one search window into a head-and-shoulders
skeleton: three peaks (left shoulder, head, right shoulder) and the two lowest
lows between them (the neckline anchors).

Selection is first-match: triples are tried in ascending (i, j, k) order and
the first that passes every gate is returned. The generator never ranks
alternatives inside a window; ranking across windows is the orchestrator's job.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Optional, Sequence

import numpy as np

from . import pattern_config as _cfg


@dataclass(frozen=True)
class PatternSkeleton:
    """Geometric backbone of a formation. All indices are series positions."""
    left_shoulder_start:  int
    left_shoulder_peak:   int
    left_shoulder_end:    int    # = neckline_left
    head_start:           int    # = neckline_left
    head_peak:            int
    head_end:             int    # = neckline_right
    right_shoulder_start: int    # = neckline_right
    right_shoulder_peak:  int
    right_shoulder_end:   int
    neckline_left:        int
    neckline_right:       int
    left_shoulder_height:  float
    head_height:           float
    right_shoulder_height: float

    @property
    def duration(self) -> int:
        return self.right_shoulder_end - self.left_shoulder_start + 1

    def shifted(self, offset: int) -> "PatternSkeleton":
        """Same skeleton with every index moved by offset bars."""
        return replace(
            self,
            left_shoulder_start  = self.left_shoulder_start + offset,
            left_shoulder_peak   = self.left_shoulder_peak + offset,
            left_shoulder_end    = self.left_shoulder_end + offset,
            head_start           = self.head_start + offset,
            head_peak            = self.head_peak + offset,
            head_end             = self.head_end + offset,
            right_shoulder_start = self.right_shoulder_start + offset,
            right_shoulder_peak  = self.right_shoulder_peak + offset,
            right_shoulder_end   = self.right_shoulder_end + offset,
            neckline_left        = self.neckline_left + offset,
            neckline_right       = self.neckline_right + offset,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["duration"] = self.duration
        return d


def shoulder_difference(left: float, right: float) -> float:
    """|L - R| / max(L, R) as a fraction."""
    taller = max(left, right)
    if taller == 0:
        return 0.0 if left == right else float("inf")
    return abs(left - right) / taller


def find_trough_between(lows, start_peak: int, end_peak: int) -> int:
    """
    Index of the lowest low strictly between two peaks, or -1 when the peaks
    are adjacent. Ties resolve to the earliest bar.
    """
    if end_peak - start_peak < 2:
        return -1
    segment = np.asarray(lows[start_peak + 1:end_peak], dtype=np.float64)
    return start_peak + 1 + int(np.argmin(segment))


def find_skeleton(
    highs,
    lows,
    peaks: Sequence[int],
    troughs: Sequence[int],
    window_start: int = 0,
    window_end: Optional[int] = None,
) -> Optional[PatternSkeleton]:
    """
    First valid head-and-shoulders skeleton among the given peaks.

    highs/lows    : price arrays the peak/trough indices refer to
    peaks/troughs : ascending extremum indices inside the window
    window_start  : first bar of the search window (left padding clamp)
    window_end    : last bar of the search window, inclusive (right padding
                    clamp); defaults to the last bar of highs

    Returns None when fewer than 3 peaks or 2 troughs are available, or when
    no triple passes the head-dominance, symmetry and neckline gates.
    """
    if len(peaks) < 3 or len(troughs) < 2:
        return None
    if window_end is None:
        window_end = len(highs) - 1

    tolerance = _cfg.SHOULDER_TOLERANCE
    pad = _cfg.SHOULDER_PADDING_BARS
    n_peaks = len(peaks)

    for i in range(n_peaks - 2):
        for j in range(i + 1, n_peaks - 1):
            for k in range(j + 1, n_peaks):
                ls_idx, h_idx, rs_idx = peaks[i], peaks[j], peaks[k]
                ls = float(highs[ls_idx])
                h  = float(highs[h_idx])
                rs = float(highs[rs_idx])

                # Head must be higher than both shoulders
                if not (h > ls and h > rs):
                    continue

                if shoulder_difference(ls, rs) > tolerance:
                    continue

                left_trough  = find_trough_between(lows, ls_idx, h_idx)
                right_trough = find_trough_between(lows, h_idx, rs_idx)
                if left_trough == -1 or right_trough == -1:
                    continue

                return PatternSkeleton(
                    left_shoulder_start  = max(window_start, ls_idx - pad),
                    left_shoulder_peak   = ls_idx,
                    left_shoulder_end    = left_trough,
                    head_start           = left_trough,
                    head_peak            = h_idx,
                    head_end             = right_trough,
                    right_shoulder_start = right_trough,
                    right_shoulder_peak  = rs_idx,
                    right_shoulder_end   = min(window_end, rs_idx + pad),
                    neckline_left        = left_trough,
                    neckline_right       = right_trough,
                    left_shoulder_height  = ls,
                    head_height           = h,
                    right_shoulder_height = rs,
                )

    return None
