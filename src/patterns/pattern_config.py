"""
pattern_config.py — Single Source of Truth for Pattern Engine Thresholds
=========================================================================

Every threshold the head-and-shoulders engine uses lives here. The extremum
detector, candidate generator, level calculator, scorer and orchestrator all
import this module BY REFERENCE (from . import pattern_config as _cfg) and
read the constants at call time, never at definition time. Patch a value here
and every stage sees it on the next call.

LEVER SYSTEM
============
Every constant below is a named lever. Override without editing source:

    from src.patterns.pattern_config import apply_levers
    apply_levers({"SHOULDER_TOLERANCE": 0.10, "PATTERN_MIN_SCORE": 60})

Or load a named profile from <repo>/profiles/<name>.json:

    load_profile("strict")

Or set PATTERN_<LEVER> in the environment / .env file at the repo root:

    PATTERN_MIN_PROMINENCE=0.03
"""
import logging as _logging
import os as _os
import sys as _sys
from pathlib import Path as _Path

from dotenv import load_dotenv as _load_dotenv

_logger = _logging.getLogger(__name__)

_ROOT = _Path(__file__).resolve().parents[2]
_ENV_PREFIX = "PATTERN_"

# ── Extremum detection ─────────────────────────────────────────────────────
# Minimum prominence of a peak/trough relative to its own price.
# 0.02 = the bar must stand 2% clear of its ±2-bar neighbourhood.
MIN_PROMINENCE: float = 0.02

# ── Candidate geometry ─────────────────────────────────────────────────────
# Maximum shoulder height difference as a fraction of the taller shoulder.
# Triples outside this gate never become skeletons.
SHOULDER_TOLERANCE: float = 0.15

# Bars padded before the left shoulder peak and after the right shoulder
# peak to mark the formation boundaries (clamped to the search window).
SHOULDER_PADDING_BARS: int = 5

# ── Trading levels ─────────────────────────────────────────────────────────
# Stop sits this fraction above the right shoulder peak (bearish pattern).
STOP_LOSS_BUFFER: float = 0.02

# ── Search windows ─────────────────────────────────────────────────────────
MIN_PATTERN_PERIODS: int = 20
MAX_PATTERN_PERIODS: int = 100

# Bars required beyond MIN_PATTERN_PERIODS before any search is attempted.
MIN_EXTRA_BARS: int = 10

# Compute extrema once over the full series and slice per window.
# A window's extrema equal the full-series extrema inside [start+2, end-2],
# so output matches per-window recomputation (False) exactly.
SEARCH_REUSE_EXTREMA: bool = True

# Worker threads for the window fan-out. 1 = serial.
SEARCH_MAX_WORKERS: int = 1

# Wall-clock budget for one search in seconds. 0 = unbounded.
SEARCH_DEADLINE_S: float = 0.0

# ── Scoring: head prominence (% of head height) ────────────────────────────
HEAD_PROMINENCE_OPTIMAL_MIN: float = 5.0
HEAD_PROMINENCE_OPTIMAL_MAX: float = 25.0
HEAD_PROMINENCE_ACCEPTABLE_MIN: float = 3.0
POINTS_HEAD_OPTIMAL: int = 25
POINTS_HEAD_ACCEPTABLE: int = 15

# ── Scoring: shoulder symmetry (% difference) ──────────────────────────────
SYMMETRY_EXCELLENT_PCT: float = 10.0
SYMMETRY_GOOD_PCT: float = 15.0
POINTS_SYMMETRY_EXCELLENT: int = 20
POINTS_SYMMETRY_GOOD: int = 15

# ── Scoring: duration (bars) ───────────────────────────────────────────────
DURATION_OPTIMAL_MIN: int = 20
DURATION_OPTIMAL_MAX: int = 100
DURATION_ACCEPTABLE_MIN: int = 15
POINTS_DURATION_OPTIMAL: int = 15
POINTS_DURATION_ACCEPTABLE: int = 10

# ── Scoring: neckline flatness (|slope| as % of left neckline price) ──────
NECKLINE_IDEAL_PCT: float = 2.0
NECKLINE_ACCEPTABLE_PCT: float = 5.0
POINTS_NECKLINE_IDEAL: int = 15
POINTS_NECKLINE_ACCEPTABLE: int = 10

# ── Scoring: volume confirmation ───────────────────────────────────────────
POINTS_VOLUME_CONFIRMED: int = 15

# ── Scoring: risk / reward ─────────────────────────────────────────────────
RR_FAVORABLE: float = 2.0
RR_MODERATE: float = 1.5
POINTS_RR_FAVORABLE: int = 10
POINTS_RR_MODERATE: int = 5

# ── Verdict thresholds ─────────────────────────────────────────────────────
PATTERN_MIN_SCORE: int = 50
CONFIDENCE_HIGH_SCORE: int = 80
CONFIDENCE_MEDIUM_SCORE: int = 60

# ── Analysis layer ─────────────────────────────────────────────────────────
# Strength needed before a completed pattern upgrades to SELL / HOLD.
SELL_MIN_STRENGTH: float = 70.0
HOLD_MIN_STRENGTH: float = 50.0


# ══════════════════════════════════════════════════════════════════════════════
# LEVER RUNTIME SYSTEM
# ══════════════════════════════════════════════════════════════════════════════

def apply_levers(overrides: dict) -> dict:
    """
    Patch module-level constants at runtime.

    Type coercion is automatic based on the existing type of each constant.
    Booleans accept: True/False/true/false/1/0/yes/no.

    Returns the dict of applied overrides (useful for logging).
    Raises ValueError for unknown or non-overridable keys.

    Example:
        apply_levers({"SHOULDER_TOLERANCE": 0.10, "PATTERN_MIN_SCORE": 60})
    """
    m = _sys.modules[__name__]
    applied = {}
    for key, raw_val in overrides.items():
        if key.startswith("_"):
            raise ValueError(f"apply_levers: '{key}' is private, not a lever")
        existing = getattr(m, key, _MISSING := object())
        if existing is _MISSING:
            raise ValueError(f"apply_levers: unknown lever '{key}'")
        if callable(existing):
            raise ValueError(f"apply_levers: '{key}' is a function, not a lever")
        if isinstance(existing, bool):
            if isinstance(raw_val, str):
                val = raw_val.strip().lower() not in ("false", "0", "no", "off")
            else:
                val = bool(raw_val)
        elif isinstance(existing, float):
            val = float(raw_val)
        elif isinstance(existing, int):
            val = int(raw_val)
        elif isinstance(existing, str):
            val = str(raw_val)
        else:
            val = raw_val
        setattr(m, key, val)
        applied[key] = val
    return applied


def snapshot_levers() -> dict:
    """Current value of every lever, keyed by name."""
    m = _sys.modules[__name__]
    return {
        k: getattr(m, k) for k in dir(m)
        if k.isupper() and not k.startswith("_")
    }


def load_profile(profile_name: str) -> dict:
    """
    Load a named lever profile from profiles/<name>.json and apply it.
    Returns the dict of applied overrides.
    """
    import json
    profile_path = _ROOT / "profiles" / f"{profile_name}.json"
    if not profile_path.exists():
        available = sorted(p.stem for p in (_ROOT / "profiles").glob("*.json"))
        raise FileNotFoundError(
            f"Profile '{profile_name}' not found at {profile_path}. "
            f"Available: {available}"
        )
    with open(profile_path) as f:
        overrides = json.load(f)
    # Strip comment/metadata keys (anything starting with "_")
    overrides = {k: v for k, v in overrides.items() if not k.startswith("_")}
    return apply_levers(overrides)


def apply_env_levers(environ=None) -> dict:
    """
    Apply every PATTERN_<LEVER> variable found in the environment.
    Variables that do not name a lever are logged and skipped.
    """
    environ = _os.environ if environ is None else environ
    known = snapshot_levers()
    overrides = {}
    for key, val in environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        name = key[len(_ENV_PREFIX):]
        if name not in known:
            _logger.warning(f"Ignoring {key}: '{name}' is not a pattern lever")
            continue
        overrides[name] = val
    return apply_levers(overrides) if overrides else {}


def get_model_tags() -> list:
    """
    Short tags describing every lever that differs from its shipped default.
    Sort + join them to get a run fingerprint; an unmodified config yields
    ["default"].
    """
    m = _sys.modules[__name__]
    tags = []

    if m.MIN_PROMINENCE != 0.02:
        tags.append(f"prom_{m.MIN_PROMINENCE:.3f}")
    if m.SHOULDER_TOLERANCE != 0.15:
        tags.append(f"shoulder_tol_{m.SHOULDER_TOLERANCE:.2f}")
    if m.SHOULDER_PADDING_BARS != 5:
        tags.append(f"pad_{m.SHOULDER_PADDING_BARS}")
    if m.STOP_LOSS_BUFFER != 0.02:
        tags.append(f"stop_buf_{m.STOP_LOSS_BUFFER:.3f}")
    if (m.MIN_PATTERN_PERIODS, m.MAX_PATTERN_PERIODS) != (20, 100):
        tags.append(f"periods_{m.MIN_PATTERN_PERIODS}_{m.MAX_PATTERN_PERIODS}")
    if not m.SEARCH_REUSE_EXTREMA:
        tags.append("per_window_extrema")
    if m.PATTERN_MIN_SCORE != 50:
        tags.append(f"min_score_{m.PATTERN_MIN_SCORE}")
    if (m.CONFIDENCE_HIGH_SCORE, m.CONFIDENCE_MEDIUM_SCORE) != (80, 60):
        tags.append(f"tiers_{m.CONFIDENCE_HIGH_SCORE}_{m.CONFIDENCE_MEDIUM_SCORE}")

    return tags or ["default"]


_load_dotenv(_ROOT / ".env")
apply_env_levers()
