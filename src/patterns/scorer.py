"""
Pattern Scorer — grades a skeleton + levels on a 0–100 scale.

Six independent criteria, each worth full / partial / zero points:

  1. Head prominence     (25 / 15 / 0)   (head - max(L, R)) / head × 100
  2. Shoulder symmetry   (20 / 15 / 0)   |L - R| / max(L, R) × 100
  3. Duration            (15 / 10 / 0)   right_shoulder_end - left_shoulder_start + 1
  4. Neckline flatness   (15 / 10 / 0)   |slope| / neckline_left_price × 100
  5. Volume confirmation (15 / 0)        head volume dries up, returns on right shoulder
  6. Risk / reward       (10 / 5 / 0)    (breakout - target) / (stop - breakout)

Total maps to confidence:  ≥ 80 HIGH, ≥ 60 MEDIUM, else LOW.
A pattern is valid at total ≥ 50.

Every criterion emits exactly one reason line whatever its outcome, so
callers always see the full justification, not just the verdict.

Usage:
    from src.patterns.scorer import score_pattern
    breakdown = score_pattern(skeleton, levels, volumes)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List

import numpy as np

from . import pattern_config as _cfg
from .candidates import PatternSkeleton, shoulder_difference
from .levels import LevelSet

logger = logging.getLogger(__name__)


class Verdict(Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class Confidence(str, Enum):
    HIGH   = "HIGH"
    MEDIUM = "MEDIUM"
    LOW    = "LOW"


_TAGS = {Verdict.PASS: "✅", Verdict.WARN: "⚠️", Verdict.FAIL: "❌"}


# ── Result ─────────────────────────────────────────────────────────────────

@dataclass
class CriterionScore:
    name:       str
    points:     int
    max_points: int
    verdict:    Verdict
    value:      float
    message:    str

    @property
    def reason(self) -> str:
        return f"{_TAGS[self.verdict]} {self.message}"

    def to_dict(self) -> dict:
        return {
            "name":       self.name,
            "points":     self.points,
            "max_points": self.max_points,
            "verdict":    self.verdict.value,
            "value":      self.value,
            "reason":     self.reason,
        }


@dataclass
class ScoreBreakdown:
    criteria:            List[CriterionScore] = field(default_factory=list)
    volume_confirmation: bool  = False
    risk_reward:         float = 0.0

    @property
    def total(self) -> int:
        return sum(c.points for c in self.criteria)

    @property
    def confidence(self) -> Confidence:
        return confidence_for_score(self.total)

    @property
    def is_pattern(self) -> bool:
        return is_valid_score(self.total)

    @property
    def reasons(self) -> List[str]:
        """One line per criterion, then the score summary."""
        lines = [c.reason for c in self.criteria]
        if self.is_pattern:
            lines.append(f"{_TAGS[Verdict.PASS]} Pattern score: {self.total}/100")
        else:
            lines.append(f"{_TAGS[Verdict.FAIL]} Pattern score too low: {self.total}/100")
        return lines

    def to_dict(self) -> dict:
        return {
            "total":               self.total,
            "confidence":          self.confidence.value,
            "is_pattern":          self.is_pattern,
            "volume_confirmation": self.volume_confirmation,
            "risk_reward":         self.risk_reward,
            "criteria":            [c.to_dict() for c in self.criteria],
            "reasons":             self.reasons,
        }


def confidence_for_score(score: float) -> Confidence:
    if score >= _cfg.CONFIDENCE_HIGH_SCORE:
        return Confidence.HIGH
    if score >= _cfg.CONFIDENCE_MEDIUM_SCORE:
        return Confidence.MEDIUM
    return Confidence.LOW


def is_valid_score(score: float) -> bool:
    return score >= _cfg.PATTERN_MIN_SCORE


# ── Component scorers ──────────────────────────────────────────────────────

def _head_prominence_score(prominence_pct: float) -> CriterionScore:
    """
    How far the head clears the taller shoulder, as % of head height.
      5–25%  → full   (clear but not a spike)
      ≥ 3%   → partial
      else   → 0
    """
    if _cfg.HEAD_PROMINENCE_OPTIMAL_MIN <= prominence_pct <= _cfg.HEAD_PROMINENCE_OPTIMAL_MAX:
        pts, verdict, msg = _cfg.POINTS_HEAD_OPTIMAL, Verdict.PASS, "Head prominence optimal"
    elif prominence_pct >= _cfg.HEAD_PROMINENCE_ACCEPTABLE_MIN:
        pts, verdict, msg = _cfg.POINTS_HEAD_ACCEPTABLE, Verdict.WARN, "Head prominence acceptable"
    else:
        pts, verdict, msg = 0, Verdict.FAIL, "Head prominence too low"
    return CriterionScore("head_prominence", pts, _cfg.POINTS_HEAD_OPTIMAL, verdict,
                          prominence_pct, f"{msg}: {prominence_pct:.1f}%")


def _shoulder_symmetry_score(difference_pct: float) -> CriterionScore:
    if difference_pct <= _cfg.SYMMETRY_EXCELLENT_PCT:
        pts, verdict, msg = _cfg.POINTS_SYMMETRY_EXCELLENT, Verdict.PASS, "Shoulder symmetry excellent"
    elif difference_pct <= _cfg.SYMMETRY_GOOD_PCT:
        pts, verdict, msg = _cfg.POINTS_SYMMETRY_GOOD, Verdict.WARN, "Shoulder symmetry good"
    else:
        pts, verdict, msg = 0, Verdict.FAIL, "Shoulder symmetry poor"
    return CriterionScore("shoulder_symmetry", pts, _cfg.POINTS_SYMMETRY_EXCELLENT, verdict,
                          difference_pct, f"{msg}: {difference_pct:.1f}% difference")


def _duration_score(duration: int) -> CriterionScore:
    if _cfg.DURATION_OPTIMAL_MIN <= duration <= _cfg.DURATION_OPTIMAL_MAX:
        pts, verdict, msg = _cfg.POINTS_DURATION_OPTIMAL, Verdict.PASS, "Pattern duration optimal"
    elif duration >= _cfg.DURATION_ACCEPTABLE_MIN:
        pts, verdict, msg = _cfg.POINTS_DURATION_ACCEPTABLE, Verdict.WARN, "Pattern duration acceptable"
    else:
        pts, verdict, msg = 0, Verdict.FAIL, "Pattern duration too short"
    return CriterionScore("duration", pts, _cfg.POINTS_DURATION_OPTIMAL, verdict,
                          float(duration), f"{msg}: {duration} periods")


def _neckline_flatness_score(slope_pct: float) -> CriterionScore:
    """Flat or gently sloping necklines score; steep ones do not."""
    if slope_pct <= _cfg.NECKLINE_IDEAL_PCT:
        pts, verdict, msg = _cfg.POINTS_NECKLINE_IDEAL, Verdict.PASS, "Neckline slope ideal"
    elif slope_pct <= _cfg.NECKLINE_ACCEPTABLE_PCT:
        pts, verdict, msg = _cfg.POINTS_NECKLINE_ACCEPTABLE, Verdict.WARN, "Neckline slope acceptable"
    else:
        pts, verdict, msg = 0, Verdict.FAIL, "Neckline slope too steep"
    return CriterionScore("neckline_flatness", pts, _cfg.POINTS_NECKLINE_IDEAL, verdict,
                          slope_pct, f"{msg}: {slope_pct:.2f}%")


def _volume_score(confirmed: bool) -> CriterionScore:
    if confirmed:
        return CriterionScore("volume_confirmation", _cfg.POINTS_VOLUME_CONFIRMED,
                              _cfg.POINTS_VOLUME_CONFIRMED, Verdict.PASS, 1.0,
                              "Volume pattern supports the formation")
    return CriterionScore("volume_confirmation", 0, _cfg.POINTS_VOLUME_CONFIRMED,
                          Verdict.WARN, 0.0, "Volume pattern not ideal")


def _risk_reward_score(risk_reward: float) -> CriterionScore:
    if risk_reward >= _cfg.RR_FAVORABLE:
        pts, verdict, msg = _cfg.POINTS_RR_FAVORABLE, Verdict.PASS, "Favorable risk/reward ratio"
    elif risk_reward >= _cfg.RR_MODERATE:
        pts, verdict, msg = _cfg.POINTS_RR_MODERATE, Verdict.WARN, "Moderate risk/reward ratio"
    else:
        pts, verdict, msg = 0, Verdict.FAIL, "Poor risk/reward ratio"
    return CriterionScore("risk_reward", pts, _cfg.POINTS_RR_FAVORABLE, verdict,
                          risk_reward, f"{msg}: {risk_reward:.2f}:1")


# ── Measurements ───────────────────────────────────────────────────────────

def head_prominence_pct(skeleton: PatternSkeleton) -> float:
    taller = max(skeleton.left_shoulder_height, skeleton.right_shoulder_height)
    if skeleton.head_height == 0:
        return 0.0
    return (skeleton.head_height - taller) / skeleton.head_height * 100


def neckline_slope_pct(levels: LevelSet) -> float:
    if levels.neckline_left_price == 0:
        return float("inf")
    return abs(levels.neckline_slope) / levels.neckline_left_price * 100


def check_volume_pattern(skeleton: PatternSkeleton, volumes) -> bool:
    """
    Volume dries up at the top and returns on the way down:
      avg(head window)           < avg(left shoulder window)
      avg(right shoulder window) > avg(head window)
    Windows are inclusive index ranges.
    """
    v = np.asarray(volumes, dtype=np.float64)
    left  = v[skeleton.left_shoulder_start:skeleton.left_shoulder_end + 1]
    head  = v[skeleton.head_start:skeleton.head_end + 1]
    right = v[skeleton.right_shoulder_start:skeleton.right_shoulder_end + 1]
    if len(left) == 0 or len(head) == 0 or len(right) == 0:
        return False

    left_avg, head_avg, right_avg = left.mean(), head.mean(), right.mean()
    return bool(head_avg < left_avg and right_avg > head_avg)


# ── Main entry point ───────────────────────────────────────────────────────

def score_pattern(
    skeleton: PatternSkeleton,
    levels: LevelSet,
    volumes,
) -> ScoreBreakdown:
    """
    Grade one skeleton.

    Args:
        skeleton : candidate geometry (absolute indices)
        levels   : LevelSet computed for that skeleton
        volumes  : full-series volume array the skeleton indices refer to

    Returns:
        ScoreBreakdown with six criteria, total, confidence and validity.
    """
    volume_ok = check_volume_pattern(skeleton, volumes)
    risk_reward = levels.risk_reward

    criteria = [
        _head_prominence_score(head_prominence_pct(skeleton)),
        _shoulder_symmetry_score(
            shoulder_difference(skeleton.left_shoulder_height,
                                skeleton.right_shoulder_height) * 100),
        _duration_score(skeleton.duration),
        _neckline_flatness_score(neckline_slope_pct(levels)),
        _volume_score(volume_ok),
        _risk_reward_score(risk_reward),
    ]
    breakdown = ScoreBreakdown(
        criteria            = criteria,
        volume_confirmation = volume_ok,
        risk_reward         = risk_reward,
    )
    logger.debug(
        f"Scored skeleton head@{skeleton.head_peak}: {breakdown.total}/100 "
        f"({breakdown.confidence.value})"
    )
    return breakdown
