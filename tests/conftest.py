from pathlib import Path

import pytest
from loguru import logger

HEADER = (
    "Track URI,Track Name,Artist Name(s),Album Name,Danceability,Energy,Key,Loudness,"
    "Mode,Speechiness,Acousticness,Instrumentalness,Liveness,Valence,Tempo,"
    "Time Signature,Popularity,Duration (ms)"
)

ROWS = [
    "spotify:track:sun123,Sun,Aria,Daylight,0.8,0.7,5,-6.0,1,0.05,0.1,0.0,0.12,0.9,128.0,4,61,201000",
    "spotify:track:moon456,Moon,Luna,Nightfall,0.2,0.3,2,-14.5,0,0.04,0.85,0.6,0.09,0.2,92.0,3,40,245000",
    ",Ghost,Nobody,Void,0.5,0.5,1,-10.0,1,0.1,0.1,0.1,0.1,0.5,100.0,4,10,100000",
    "spotify:track:blank789,Blank Stare,Aria,Daylight,,,,,,,,,,,,,,",
]


@pytest.fixture(autouse=True)
def _quiet_loguru():
    # CliRunner swaps sys.stderr; drop sinks so later tests don't write to a closed stream
    yield
    logger.remove()


@pytest.fixture
def library_csv(tmp_path: Path) -> Path:
    path = tmp_path / "allsongs.csv"
    path.write_text("\n".join([HEADER, *ROWS]) + "\n", encoding="utf-8")
    return path
