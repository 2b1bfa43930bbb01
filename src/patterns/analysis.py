"""
Head & Shoulders Analysis — stage, signal and strength on top of detection.

detect_head_and_shoulders() answers "is there a formation?". This module
answers "where is price relative to it, and what should a trader do?":

  stage   LEFT_SHOULDER / HEAD_FORMING / RIGHT_SHOULDER while the last bar is
          still inside the formation; past the right shoulder it is
          BREAKDOWN (last close at or below the neckline) or COMPLETED
  signal  SELL on breakdown; a completed formation upgrades to SELL with HIGH
          confidence and strength ≥ 70, or to HOLD with MEDIUM confidence and
          strength ≥ 50; WAIT otherwise
  strength  min(100, prominence% × 0.4 + symmetry% × 0.3 + 30 if volume confirms)

A pattern is only a setup zone. The signal is advisory; nothing here places
orders.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from . import pattern_config as _cfg
from .candles import CandleInput, to_arrays
from .head_and_shoulders import HeadAndShouldersResult, detect_head_and_shoulders
from .scorer import Confidence


class Stage(str, Enum):
    LEFT_SHOULDER  = "LEFT_SHOULDER"
    HEAD_FORMING   = "HEAD_FORMING"
    RIGHT_SHOULDER = "RIGHT_SHOULDER"
    COMPLETED      = "COMPLETED"
    BREAKDOWN      = "BREAKDOWN"
    NONE           = "NONE"


class Signal(str, Enum):
    SELL = "SELL"
    HOLD = "HOLD"
    WAIT = "WAIT"


@dataclass
class HeadAndShouldersAnalysis:
    pattern:          HeadAndShouldersResult
    signal:           Signal
    stage:            Stage
    strength:         int
    risk_reward:      float
    interpretation:   List[str] = field(default_factory=list)
    trading_strategy: dict = field(default_factory=dict)
    chart_data:       dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "pattern":          self.pattern.to_dict(),
            "signal":           self.signal.value,
            "stage":            self.stage.value,
            "strength":         self.strength,
            "risk_reward":      self.risk_reward,
            "interpretation":   list(self.interpretation),
            "trading_strategy": dict(self.trading_strategy),
            "chart_data":       dict(self.chart_data),
        }


def _shape_metrics(result: HeadAndShouldersResult) -> tuple:
    """(head prominence %, shoulder symmetry %) where 100% symmetry = equal shoulders."""
    taller = max(result.left_shoulder_height, result.right_shoulder_height)
    if result.head_height == 0 or taller == 0:
        return 0.0, 0.0
    prominence = (result.head_height - taller) / result.head_height * 100
    symmetry = 100 - abs(result.left_shoulder_height - result.right_shoulder_height) / taller * 100
    return prominence, symmetry


def pattern_strength(result: HeadAndShouldersResult) -> float:
    """Unrounded 0–100 strength of a detected pattern."""
    prominence, symmetry = _shape_metrics(result)
    if prominence == 0.0 and symmetry == 0.0:
        return 0.0
    return min(100.0, prominence * 0.4 + symmetry * 0.3 + (30 if result.volume_confirmation else 0))


def _chart_data(arrays, result: Optional[HeadAndShouldersResult]) -> dict:
    data = {
        "timestamps": (arrays.timestamp * 1000).tolist(),
        "prices":     arrays.close.tolist(),
        "volume":     arrays.volume.tolist(),
    }
    r = result if result is not None and result.is_pattern else HeadAndShouldersResult()
    data.update({
        "left_shoulder_start_index":  r.left_shoulder_start,
        "left_shoulder_peak_index":   r.left_shoulder_peak,
        "left_shoulder_end_index":    r.left_shoulder_end,
        "head_start_index":           r.head_start,
        "head_peak_index":            r.head_peak,
        "head_end_index":             r.head_end,
        "right_shoulder_start_index": r.right_shoulder_start,
        "right_shoulder_peak_index":  r.right_shoulder_peak,
        "right_shoulder_end_index":   r.right_shoulder_end,
        "neckline_left_index":        r.neckline_left,
        "neckline_right_index":       r.neckline_right,
        "breakout_level":             r.breakout_level,
        "target_price":               r.target_price,
        "stop_loss":                  r.stop_loss,
    })
    return data


def analyze_head_and_shoulders(
    candles: CandleInput,
    min_pattern_periods: Optional[int] = None,
    max_pattern_periods: Optional[int] = None,
) -> HeadAndShouldersAnalysis:
    arrays = to_arrays(candles)
    result = detect_head_and_shoulders(arrays, min_pattern_periods, max_pattern_periods)

    if not result.is_pattern:
        return HeadAndShouldersAnalysis(
            pattern        = result,
            signal         = Signal.WAIT,
            stage          = Stage.NONE,
            strength       = 0,
            risk_reward    = 0.0,
            interpretation = ["No Head and Shoulders pattern detected", *result.reasons],
            trading_strategy = {
                "entry":     "Wait for pattern formation",
                "exit":      "N/A",
                "stop_loss": 0.0,
                "target":    0.0,
            },
            chart_data = _chart_data(arrays, None),
        )

    interpretation = []
    current = len(arrays) - 1
    signal = Signal.WAIT

    if current <= result.left_shoulder_end:
        stage = Stage.LEFT_SHOULDER
        interpretation.append("Currently in left shoulder formation phase")
    elif current <= result.head_end:
        stage = Stage.HEAD_FORMING
        interpretation.append("Currently in head formation phase")
    elif current <= result.right_shoulder_end:
        stage = Stage.RIGHT_SHOULDER
        interpretation.append("Currently in right shoulder formation phase")
    elif float(arrays.close[current]) <= result.breakout_level:
        stage = Stage.BREAKDOWN
        signal = Signal.SELL
        interpretation.append("Breakdown completed - pattern fulfilled")
    else:
        stage = Stage.COMPLETED
        interpretation.append("Pattern complete - ready for breakdown")

    strength = pattern_strength(result)
    risk_reward = result.risk_reward

    if stage in (Stage.COMPLETED, Stage.BREAKDOWN):
        if result.confidence == Confidence.HIGH.value and strength >= _cfg.SELL_MIN_STRENGTH:
            signal = Signal.SELL
            interpretation.append("Strong bearish signal - consider short position")
        elif result.confidence == Confidence.MEDIUM.value and strength >= _cfg.HOLD_MIN_STRENGTH:
            signal = Signal.HOLD
            interpretation.append("Moderate bearish signal - wait for confirmation")

    prominence, symmetry = _shape_metrics(result)
    interpretation.append(f"Head prominence: {prominence:.1f}%")
    interpretation.append(f"Shoulder symmetry: {symmetry:.1f}%")
    interpretation.append(f"Pattern strength: {strength:.0f}/100")
    interpretation.append(f"Risk/Reward ratio: {risk_reward:.2f}:1")
    if result.volume_confirmation:
        interpretation.append("Volume pattern supports bearish reversal")
    else:
        interpretation.append("Volume pattern needs confirmation")

    entry = "Wait for neckline breakdown"
    if signal is Signal.SELL:
        entry = f"Enter short position on break below ${result.breakout_level:.2f}"
    elif signal is Signal.HOLD:
        entry = f"Monitor for breakdown below ${result.breakout_level:.2f} with volume"

    return HeadAndShouldersAnalysis(
        pattern        = result,
        signal         = signal,
        stage          = stage,
        strength       = int(np.floor(strength + 0.5)),   # half-up, not banker's
        risk_reward    = risk_reward,
        interpretation = interpretation,
        trading_strategy = {
            "entry":     entry,
            "exit":      "Target reached or stop loss hit",
            "stop_loss": result.stop_loss,
            "target":    result.target_price,
        },
        chart_data = _chart_data(arrays, result),
    )
