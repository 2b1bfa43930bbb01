"""
Level Calculator — neckline, breakout, measured-move target and stop.

Pure function of a skeleton and the low prices. Always computable once a
skeleton exists: neckline_right > neckline_left by construction.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict

from . import pattern_config as _cfg
from .candidates import PatternSkeleton


@dataclass(frozen=True)
class LevelSet:
    neckline_slope:       float   # price units per bar
    breakout_level:       float   # neckline price at the right anchor
    target_price:         float   # breakout - (head - higher neckline anchor)
    stop_loss:            float   # right shoulder + buffer
    neckline_left_price:  float
    neckline_right_price: float

    @property
    def risk(self) -> float:
        return self.stop_loss - self.breakout_level

    @property
    def reward(self) -> float:
        return self.breakout_level - self.target_price

    @property
    def risk_reward(self) -> float:
        return self.reward / self.risk if self.risk > 0 else 0.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["risk_reward"] = self.risk_reward
        return d


def compute_levels(skeleton: PatternSkeleton, lows) -> LevelSet:
    left_price  = float(lows[skeleton.neckline_left])
    right_price = float(lows[skeleton.neckline_right])

    slope = (right_price - left_price) / (skeleton.neckline_right - skeleton.neckline_left)

    breakout = right_price
    # Measured move: head-to-neckline distance projected below the breakout
    head_to_neckline = skeleton.head_height - max(left_price, right_price)
    target = breakout - head_to_neckline

    stop = skeleton.right_shoulder_height * (1 + _cfg.STOP_LOSS_BUFFER)

    return LevelSet(
        neckline_slope       = slope,
        breakout_level       = breakout,
        target_price         = target,
        stop_loss            = stop,
        neckline_left_price  = left_price,
        neckline_right_price = right_price,
    )
