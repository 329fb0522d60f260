"""Rank tracks by text match and/or audio-feature distance."""

import math

import numpy as np

from sfaucet.library import normalize_tempo
from sfaucet.models import QueryParams, ScoredResult, Sliders, Track

DEFAULT_LIMIT = 5
WEIGHT_TEXT = 0.55
WEIGHT_FEATURES = 0.45

# Order matters: slider-reason ties go to the earliest dimension.
FEATURE_KEYS = ("danceability", "energy", "valence", "tempo_norm", "acousticness")
FEATURE_LABELS = {
    "danceability": "Danceability",
    "energy": "Energy",
    "valence": "Valence",
    "tempo_norm": "Tempo",
    "acousticness": "Acousticness",
}
MAX_DISTANCE = math.sqrt(len(FEATURE_KEYS))


class InvalidArgument(ValueError):
    """Raised when search() is called with arguments it cannot honour."""


def _slider_target(sliders: Sliders) -> dict[str, float]:
    """Slider values in track feature space; unset dimensions count as 0."""
    return {
        "danceability": sliders.danceability or 0.0,
        "energy": sliders.energy or 0.0,
        "valence": sliders.valence or 0.0,
        "tempo_norm": normalize_tempo(sliders.tempo) if sliders.tempo is not None else 0.0,
        "acousticness": sliders.acousticness or 0.0,
    }


def _feature_vec(values: dict[str, float] | Track) -> np.ndarray:
    if isinstance(values, Track):
        return np.array([getattr(values, k) for k in FEATURE_KEYS], dtype=float)
    return np.array([values.get(k, 0.0) for k in FEATURE_KEYS], dtype=float)


def text_score(track: Track, query: str) -> float:
    """Score how well a track's name, artists and album match a query (0-1)."""
    q = query.strip().lower()
    if not q:
        return 0.0
    name = track.name.lower()
    artists = track.artists.lower()
    album = track.album.lower()

    score = 0.0
    if name == q:
        score += 1.0
    elif name.startswith(q):
        score += 0.8
    elif q in name:
        score += 0.6

    if artists == q:
        score += 0.9
    elif q in artists:
        score += 0.5

    if q in album:
        score += 0.2

    words = q.split()
    if len(words) > 1:
        matched = [w for w in words if w in name or w in artists]
        score += (len(matched) / len(words)) * 0.3

    return min(score, 1.0)


def feature_score(track: Track, target: dict[str, float]) -> float:
    """1 at identical features, falling linearly with Euclidean distance."""
    distance = float(np.linalg.norm(_feature_vec(track) - _feature_vec(target)))
    # raw features outside [0, 1] can push the distance past sqrt(5)
    return max(0.0, 1.0 - distance / MAX_DISTANCE)


def _text_reason(track: Track, query: str) -> str:
    q = query.lower()
    if q in track.name.lower():
        return f'Matched your search "{query}" in the track name'
    if q in track.artists.lower():
        return f'Found "{query}" among the artists'
    return f'Partial match for "{query}"'


def _slider_reason(track: Track, target: dict[str, float]) -> str:
    # min() keeps the first of equal diffs
    best = min(FEATURE_KEYS, key=lambda k: abs(getattr(track, k) - target[k]))
    if best == "tempo_norm":
        shown = f"{round(track.tempo)} BPM"
    else:
        shown = f"{getattr(track, best) * 100:.0f}%"
    return f"Closest on {FEATURE_LABELS[best]} ({shown}), in strong alignment with your slider settings"


def search(
    library: list[Track],
    params: QueryParams,
    limit: int = DEFAULT_LIMIT,
) -> list[ScoredResult]:
    """Rank the library against a text query, slider targets, or both.

    Text-bearing searches drop tracks that score 0. Equal scores keep
    library order.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidArgument(f"limit must be a positive integer, got {limit!r}")

    query = params.text.strip()
    has_query = bool(query)
    has_sliders = params.sliders is not None and params.sliders.active
    if not has_query and not has_sliders:
        return []

    target = _slider_target(params.sliders) if has_sliders else None

    scored = []
    for track in library:
        t_score = text_score(track, query) if has_query else 0.0
        f_score = feature_score(track, target) if target is not None else 0.0

        if has_query and has_sliders:
            score = WEIGHT_TEXT * t_score + WEIGHT_FEATURES * f_score
        elif has_query:
            score = t_score
        else:
            score = f_score

        if has_query and score == 0:
            continue

        reasons = []
        if has_query and t_score > 0:
            reasons.append(_text_reason(track, query))
        if target is not None:
            reasons.append(_slider_reason(track, target))

        scored.append(ScoredResult(track=track, score=score, reasons=reasons))

    # sorted() is stable with reverse=True, so ties keep library order
    scored = sorted(scored, key=lambda r: r.score, reverse=True)
    return scored[:limit]


def score_percent(score: float) -> int:
    """Score as a whole percentage, halves rounded up."""
    return math.floor(score * 100 + 0.5)


def build_explanation(result: ScoredResult) -> str:
    """Human-readable summary of why a result was returned."""
    intro = f"Match confidence: {score_percent(result.score)}%. "
    return intro + ". ".join(result.reasons) + "."
