"""
Head & Shoulders Pattern Engine

Slides a multi-length window over the candle series, pulls one skeleton per
window out of the candidate generator, ranks every skeleton found by HEAD
HEIGHT and scores only the top one.

  candles → extrema (per window) → candidate generator → skeleton
          → level calculator → scorer → HeadAndShouldersResult

Ranking rule: descending head height, ties resolved in window order (earlier
start, then shorter duration). The best-scoring skeleton is NOT searched for:
if the tallest head fails the score gate the call reports "no pattern" even
when a shorter head would have passed.

Every call is stateless:

  insufficient data        → sentinel ("Insufficient data for pattern detection")
  no skeleton in any window → sentinel ("No valid head and shoulders formations found")
  skeleton found           → score → is_pattern True, or sentinel with the
                             per-criterion reasons when the score is below 50
  search deadline exceeded → sentinel ("Pattern search deadline exceeded")

Usage:
    from src.patterns.head_and_shoulders import detect_head_and_shoulders
    result = detect_head_and_shoulders(df)          # DataFrame or list of candles
    if result.is_pattern:
        print(result.breakout_level, result.target_price, result.stop_loss)
"""
from __future__ import annotations

import bisect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

from . import pattern_config as _cfg
from .candidates import PatternSkeleton, find_skeleton
from .candles import CandleInput, to_arrays
from .extrema import find_peaks, find_troughs
from .levels import LevelSet, compute_levels
from .scorer import Confidence, ScoreBreakdown, score_pattern

logger = logging.getLogger(__name__)

REASON_INSUFFICIENT_DATA = "Insufficient data for pattern detection"
REASON_NO_FORMATIONS     = "No valid head and shoulders formations found"
REASON_NO_VALID_PATTERN  = "No valid head and shoulders patterns found"
REASON_DEADLINE          = "Pattern search deadline exceeded"


class SearchDeadlineExceeded(Exception):
    """Raised inside the window loop when the search budget runs out."""


# ── Result ─────────────────────────────────────────────────────────────────

@dataclass
class HeadAndShouldersResult:
    is_pattern:             bool  = False
    confidence:             str   = Confidence.LOW.value
    score:                  int   = 0
    left_shoulder_start:    int   = -1
    left_shoulder_peak:     int   = -1
    left_shoulder_end:      int   = -1
    head_start:             int   = -1
    head_peak:              int   = -1
    head_end:               int   = -1
    right_shoulder_start:   int   = -1
    right_shoulder_peak:    int   = -1
    right_shoulder_end:     int   = -1
    neckline_left:          int   = -1
    neckline_right:         int   = -1
    neckline_slope:         float = 0.0
    breakout_level:         float = 0.0
    target_price:           float = 0.0
    stop_loss:              float = 0.0
    risk_reward:            float = 0.0
    pattern_duration:       int   = 0
    left_shoulder_height:   float = 0.0
    head_height:            float = 0.0
    right_shoulder_height:  float = 0.0
    volume_confirmation:    bool  = False
    reasons:                List[str] = field(default_factory=list)

    @classmethod
    def no_pattern(cls, *reasons: str) -> "HeadAndShouldersResult":
        return cls(reasons=list(reasons))

    @classmethod
    def from_scored(
        cls,
        skeleton: PatternSkeleton,
        levels: LevelSet,
        breakdown: ScoreBreakdown,
    ) -> "HeadAndShouldersResult":
        return cls(
            is_pattern            = breakdown.is_pattern,
            confidence            = breakdown.confidence.value,
            score                 = breakdown.total,
            left_shoulder_start   = skeleton.left_shoulder_start,
            left_shoulder_peak    = skeleton.left_shoulder_peak,
            left_shoulder_end     = skeleton.left_shoulder_end,
            head_start            = skeleton.head_start,
            head_peak             = skeleton.head_peak,
            head_end              = skeleton.head_end,
            right_shoulder_start  = skeleton.right_shoulder_start,
            right_shoulder_peak   = skeleton.right_shoulder_peak,
            right_shoulder_end    = skeleton.right_shoulder_end,
            neckline_left         = skeleton.neckline_left,
            neckline_right        = skeleton.neckline_right,
            neckline_slope        = levels.neckline_slope,
            breakout_level        = levels.breakout_level,
            target_price          = levels.target_price,
            stop_loss             = levels.stop_loss,
            risk_reward           = breakdown.risk_reward,
            pattern_duration      = skeleton.duration,
            left_shoulder_height  = skeleton.left_shoulder_height,
            head_height           = skeleton.head_height,
            right_shoulder_height = skeleton.right_shoulder_height,
            volume_confirmation   = breakdown.volume_confirmation,
            reasons               = breakdown.reasons,
        )

    def to_dict(self) -> dict:
        return {k: (list(v) if isinstance(v, list) else v) for k, v in self.__dict__.items()}


# ── Window search ──────────────────────────────────────────────────────────

def _search_start(
    start: int,
    highs,
    lows,
    min_periods: int,
    max_periods: int,
    peaks: Optional[List[int]],
    troughs: Optional[List[int]],
    deadline: Optional[float],
) -> List[PatternSkeleton]:
    """Skeletons for every window beginning at `start`, in duration order."""
    if deadline is not None and time.monotonic() > deadline:
        raise SearchDeadlineExceeded(f"deadline hit at start={start}")

    n = len(highs)
    found = []
    last_duration = min(max_periods, n - start - 1)
    for duration in range(min_periods, last_duration + 1):
        end = start + duration

        if peaks is not None:
            # Full-series extrema restricted to the window interior
            w_peaks = peaks[bisect.bisect_left(peaks, start + 2):bisect.bisect_right(peaks, end - 2)]
            w_troughs = troughs[bisect.bisect_left(troughs, start + 2):bisect.bisect_right(troughs, end - 2)]
            skeleton = find_skeleton(highs, lows, w_peaks, w_troughs,
                                     window_start=start, window_end=end)
        else:
            win_highs = highs[start:end + 1]
            win_lows = lows[start:end + 1]
            skeleton = find_skeleton(win_highs, win_lows,
                                     find_peaks(win_highs), find_troughs(win_lows))
            if skeleton is not None:
                skeleton = skeleton.shifted(start)

        if skeleton is not None:
            found.append(skeleton)
    return found


def collect_candidates(
    highs,
    lows,
    min_periods: Optional[int] = None,
    max_periods: Optional[int] = None,
    *,
    reuse_extrema: Optional[bool] = None,
    max_workers: Optional[int] = None,
    deadline_s: Optional[float] = None,
) -> List[PatternSkeleton]:
    """
    Every skeleton found across all (start, duration) windows, sorted by head
    height descending. The sort is stable, so equal heads keep window order.

    Raises SearchDeadlineExceeded when deadline_s (> 0) elapses mid-search.
    """
    min_periods = _cfg.MIN_PATTERN_PERIODS if min_periods is None else min_periods
    max_periods = _cfg.MAX_PATTERN_PERIODS if max_periods is None else max_periods
    reuse_extrema = _cfg.SEARCH_REUSE_EXTREMA if reuse_extrema is None else reuse_extrema
    max_workers = _cfg.SEARCH_MAX_WORKERS if max_workers is None else max_workers
    deadline_s = _cfg.SEARCH_DEADLINE_S if deadline_s is None else deadline_s

    deadline = time.monotonic() + deadline_s if deadline_s and deadline_s > 0 else None

    if reuse_extrema:
        peaks, troughs = find_peaks(highs), find_troughs(lows)
    else:
        peaks = troughs = None

    starts = range(0, len(highs) - min_periods)

    def _one(start: int) -> List[PatternSkeleton]:
        return _search_start(start, highs, lows, min_periods, max_periods,
                             peaks, troughs, deadline)

    if max_workers and max_workers > 1:
        # map() yields in submission order: the reduce is identical to serial
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            per_start = list(pool.map(_one, starts))
    else:
        per_start = [_one(s) for s in starts]

    candidates = [sk for batch in per_start for sk in batch]
    candidates.sort(key=lambda sk: sk.head_height, reverse=True)
    logger.debug(
        f"H&S search: {len(highs)} bars, {len(starts)} start offsets, "
        f"{len(candidates)} candidate skeletons"
    )
    return candidates


# ── Main entry point ───────────────────────────────────────────────────────

def detect_head_and_shoulders(
    candles: CandleInput,
    min_pattern_periods: Optional[int] = None,
    max_pattern_periods: Optional[int] = None,
    *,
    max_workers: Optional[int] = None,
    deadline_s: Optional[float] = None,
) -> HeadAndShouldersResult:
    """
    Detect the best head-and-shoulders formation in a candle series.

    Args:
        candles             : DataFrame, list of Candle, or list of mappings
        min_pattern_periods : shortest search window in bars (default 20)
        max_pattern_periods : longest search window in bars (default 100)
        max_workers         : threads for the window fan-out (default 1)
        deadline_s          : search budget in seconds, 0 = unbounded

    Returns:
        HeadAndShouldersResult. Never raises for well-typed input; raises
        TypeError / ValueError for contract violations before searching.
    """
    min_periods = _cfg.MIN_PATTERN_PERIODS if min_pattern_periods is None else min_pattern_periods
    max_periods = _cfg.MAX_PATTERN_PERIODS if max_pattern_periods is None else max_pattern_periods
    for name, val in (("min_pattern_periods", min_periods), ("max_pattern_periods", max_periods)):
        if isinstance(val, bool) or not isinstance(val, int):
            raise TypeError(f"{name} must be an int, got {val!r}")
        if val < 1:
            raise ValueError(f"{name} must be >= 1, got {val}")

    arrays = to_arrays(candles)
    n = len(arrays)

    if n < min_periods + _cfg.MIN_EXTRA_BARS:
        logger.debug(f"H&S: {n} bars < {min_periods + _cfg.MIN_EXTRA_BARS} required")
        return HeadAndShouldersResult.no_pattern(REASON_INSUFFICIENT_DATA)

    try:
        candidates = collect_candidates(
            arrays.high, arrays.low, min_periods, max_periods,
            max_workers=max_workers, deadline_s=deadline_s,
        )
    except SearchDeadlineExceeded as e:
        logger.warning(f"H&S search abandoned on {n} bars: {e}")
        return HeadAndShouldersResult.no_pattern(REASON_DEADLINE)

    if not candidates:
        return HeadAndShouldersResult.no_pattern(REASON_NO_FORMATIONS)

    best = candidates[0]
    levels = compute_levels(best, arrays.low)
    breakdown = score_pattern(best, levels, arrays.volume)

    if not breakdown.is_pattern:
        logger.info(
            f"H&S rejected: head@{best.head_peak} scored {breakdown.total}/100 "
            f"(< {_cfg.PATTERN_MIN_SCORE})"
        )
        return HeadAndShouldersResult.no_pattern(*breakdown.reasons, REASON_NO_VALID_PATTERN)

    logger.info(
        f"H&S detected: head@{best.head_peak} neckline {levels.breakout_level:.4f} "
        f"target {levels.target_price:.4f} score {breakdown.total}/100 "
        f"{breakdown.confidence.value}"
    )
    return HeadAndShouldersResult.from_scored(best, levels, breakdown)
