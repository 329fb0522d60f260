"""Load the track library from a CSV export and normalize its fields."""

import math
from pathlib import Path

import pyarrow as pa
import pyarrow.csv as pa_csv
from loguru import logger

from sfaucet.models import Track

DATA_PATH = Path.home() / ".local" / "share" / "sfaucet"
DEFAULT_LIBRARY = DATA_PATH / "allsongs.csv"

TEMPO_MIN = 40.0
TEMPO_RANGE = 180.0
LOUDNESS_FLOOR = -60.0

# read verbatim; inference would turn "007" into 7.0
TEXT_COLUMNS = ("Track Name", "Artist Name(s)", "Album Name", "Track URI")

# CSV column -> Track attribute
NUMERIC_FIELDS = {
    "Danceability": "danceability",
    "Energy": "energy",
    "Valence": "valence",
    "Tempo": "tempo",
    "Acousticness": "acousticness",
    "Loudness": "loudness",
    "Speechiness": "speechiness",
    "Instrumentalness": "instrumentalness",
    "Liveness": "liveness",
    "Popularity": "popularity",
    "Duration (ms)": "duration_ms",
    "Key": "key",
    "Mode": "mode",
    "Time Signature": "time_signature",
}


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def _to_float(value: object) -> float:
    """Parse a raw cell into a finite float, falling back to 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def _to_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_tempo(bpm: float) -> float:
    """Map a tempo in BPM onto [0, 1] (40 BPM -> 0, 220 BPM -> 1)."""
    return _clamp01((bpm - TEMPO_MIN) / TEMPO_RANGE)


def normalize_loudness(db: float) -> float:
    """Map loudness in dB onto [0, 1] (-60 dB -> 0, 0 dB -> 1)."""
    return _clamp01((db - LOUDNESS_FLOOR) / -LOUDNESS_FLOOR)


def spotify_id_from_uri(uri: str) -> str | None:
    parts = uri.split(":")
    if len(parts) == 3 and parts[2]:
        return parts[2]
    return None


def normalize_row(row: dict) -> Track | None:
    """Build a Track from one CSV row. Rows without a name or URI are dropped."""
    name = _to_str(row.get("Track Name"))
    uri = _to_str(row.get("Track URI"))
    if not name or not uri:
        return None

    numbers = {attr: _to_float(row.get(col)) for col, attr in NUMERIC_FIELDS.items()}

    return Track(
        name=name,
        artists=_to_str(row.get("Artist Name(s)")),
        album=_to_str(row.get("Album Name")),
        uri=uri,
        spotify_id=spotify_id_from_uri(uri),
        tempo_norm=normalize_tempo(numbers["tempo"]),
        loudness_norm=normalize_loudness(numbers["loudness"]),
        **numbers,
    )


def load_library(path: Path) -> list[Track]:
    """Read a CSV export and return its usable tracks in file order."""
    table = pa_csv.read_csv(
        str(path),
        parse_options=pa_csv.ParseOptions(ignore_empty_lines=True),
        convert_options=pa_csv.ConvertOptions(
            column_types={col: pa.string() for col in TEXT_COLUMNS},
        ),
    )
    rows = table.to_pylist()

    tracks = []
    for row in rows:
        track = normalize_row(row)
        if track is not None:
            tracks.append(track)

    skipped = len(rows) - len(tracks)
    if skipped:
        logger.debug(f"Skipped {skipped} rows without a track name or URI")
    logger.info(f"Loaded {len(tracks)} tracks from {path}")
    return tracks


def find_by_name(tracks: list[Track], name: str) -> Track | None:
    """Find a track by name (case-insensitive)."""
    wanted = name.strip().lower()
    for track in tracks:
        if track.name.lower() == wanted:
            return track
    return None
