"""
Unit tests for the candidate generator.

Covers:
  - Skeleton geometry from a hand-built series
  - Head dominance and shoulder symmetry gates
  - First-match triple order
  - Neckline trough lookup (adjacent peaks, ties)
  - Shoulder padding clamp to the search window
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import numpy as np
import pytest

from src.patterns import pattern_config
from src.patterns.candidates import (
    PatternSkeleton, find_skeleton, find_trough_between, shoulder_difference,
)


# ── Fixtures ────────────────────────────────────────────────────────────────

def make_series(n: int = 30, **peak_heights):
    """
    Flat 100 highs / 99 lows with the given peaks raised and two neckline
    dips at bars 8 and 16. Keyword names are 'p<index>'.
    """
    highs = np.full(n, 100.0)
    for key, h in peak_heights.items():
        highs[int(key[1:])] = h
    lows = highs - 1.0
    lows[8] = 95.0
    lows[16] = 96.0
    return highs, lows


# ── Trough lookup ───────────────────────────────────────────────────────────

class TestFindTroughBetween:
    def test_lowest_low_strictly_between(self):
        lows = [5, 4, 3, 4, 5]
        assert find_trough_between(lows, 0, 4) == 2

    def test_adjacent_peaks_have_no_trough(self):
        assert find_trough_between([5, 4, 3], 0, 1) == -1

    def test_one_bar_gap(self):
        assert find_trough_between([5, 4, 3], 0, 2) == 1

    def test_ties_resolve_to_earliest(self):
        lows = [9, 2, 5, 2, 9]
        assert find_trough_between(lows, 0, 4) == 1

    def test_endpoints_excluded(self):
        # the peaks' own lows are lower but do not count
        lows = [0, 5, 4, 5, 0]
        assert find_trough_between(lows, 0, 4) == 2


class TestShoulderDifference:
    def test_relative_to_taller(self):
        assert shoulder_difference(110, 100) == pytest.approx(10 / 110)
        assert shoulder_difference(100, 110) == pytest.approx(10 / 110)

    def test_zero_heights(self):
        assert shoulder_difference(0, 0) == 0.0


# ── Skeleton ────────────────────────────────────────────────────────────────

class TestFindSkeleton:
    def test_basic_geometry(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        sk = find_skeleton(highs, lows, [5, 12, 19], [8, 16])
        assert sk == PatternSkeleton(
            left_shoulder_start=0, left_shoulder_peak=5, left_shoulder_end=8,
            head_start=8, head_peak=12, head_end=16,
            right_shoulder_start=16, right_shoulder_peak=19, right_shoulder_end=24,
            neckline_left=8, neckline_right=16,
            left_shoulder_height=110.0, head_height=120.0, right_shoulder_height=111.0,
        )
        assert sk.duration == 25

    def test_structural_ordering(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        sk = find_skeleton(highs, lows, [5, 12, 19], [8, 16])
        assert (sk.left_shoulder_start <= sk.left_shoulder_peak < sk.neckline_left
                < sk.head_peak < sk.neckline_right < sk.right_shoulder_peak
                <= sk.right_shoulder_end)
        assert sk.head_height > sk.left_shoulder_height
        assert sk.head_height > sk.right_shoulder_height

    def test_head_must_dominate(self):
        highs, lows = make_series(p5=110, p12=105, p19=111)
        assert find_skeleton(highs, lows, [5, 12, 19], [8, 16]) is None

    def test_head_equal_to_shoulder_rejected(self):
        highs, lows = make_series(p5=120, p12=120, p19=111)
        assert find_skeleton(highs, lows, [5, 12, 19], [8, 16]) is None

    def test_symmetry_gate(self):
        # (110 - 90) / 110 ≈ 18% > 15%
        highs, lows = make_series(p5=110, p12=120, p19=90)
        assert find_skeleton(highs, lows, [5, 12, 19], [8, 16]) is None

    def test_symmetry_gate_follows_lever(self):
        highs, lows = make_series(p5=110, p12=120, p19=90)
        pattern_config.apply_levers({"SHOULDER_TOLERANCE": 0.20})
        assert find_skeleton(highs, lows, [5, 12, 19], [8, 16]) is not None

    def test_first_matching_triple_wins(self):
        # (5, 12, 19) fails symmetry; (5, 12, 26) is the next triple tried
        highs, lows = make_series(n=40, p5=110, p12=120, p19=90, p26=108)
        sk = find_skeleton(highs, lows, [5, 12, 19, 26], [8, 16])
        assert (sk.left_shoulder_peak, sk.head_peak, sk.right_shoulder_peak) == (5, 12, 26)
        # the rejected shoulder at 19 (low 89) is now the lowest bar between
        assert sk.neckline_right == 19

    def test_too_few_extrema(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        assert find_skeleton(highs, lows, [5, 12], [8, 16]) is None
        assert find_skeleton(highs, lows, [5, 12, 19], [8]) is None

    def test_adjacent_peaks_skipped(self):
        highs, lows = make_series(p5=110, p6=120, p19=111)
        assert find_skeleton(highs, lows, [5, 6, 19], [8, 16]) is None

    def test_padding_clamped_to_window(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        sk = find_skeleton(highs, lows, [5, 12, 19], [8, 16],
                           window_start=3, window_end=22)
        assert sk.left_shoulder_start == 3
        assert sk.right_shoulder_end == 22

    def test_padding_lever(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        pattern_config.apply_levers({"SHOULDER_PADDING_BARS": 2})
        sk = find_skeleton(highs, lows, [5, 12, 19], [8, 16])
        assert (sk.left_shoulder_start, sk.right_shoulder_end) == (3, 21)


class TestSkeletonShift:
    def test_shifted_moves_every_index(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        sk = find_skeleton(highs, lows, [5, 12, 19], [8, 16])
        moved = sk.shifted(10)
        assert moved.head_peak == 22
        assert moved.neckline_left == 18
        assert moved.left_shoulder_start == 10
        assert moved.duration == sk.duration
        assert moved.head_height == sk.head_height

    def test_to_dict_includes_duration(self):
        highs, lows = make_series(p5=110, p12=120, p19=111)
        d = find_skeleton(highs, lows, [5, 12, 19], [8, 16]).to_dict()
        assert d["duration"] == 25
        assert d["head_peak"] == 12
