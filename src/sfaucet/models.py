"""Data models for tracks, queries and search results."""

from dataclasses import dataclass, field

SPOTIFY_EMBED_URL = "https://open.spotify.com/embed/track/{id}?utm_source=generator&theme=0"


@dataclass(frozen=True)
class Track:
    name: str
    artists: str
    album: str
    uri: str
    spotify_id: str | None = None
    danceability: float = 0.0
    energy: float = 0.0
    valence: float = 0.0
    tempo: float = 0.0
    tempo_norm: float = 0.0
    loudness: float = 0.0
    loudness_norm: float = 0.0
    acousticness: float = 0.0
    speechiness: float = 0.0
    instrumentalness: float = 0.0
    liveness: float = 0.0
    popularity: float = 0.0
    duration_ms: float = 0.0
    key: float = 0.0
    mode: float = 0.0
    time_signature: float = 0.0

    @property
    def embed_url(self) -> str | None:
        """Spotify embed player URL, when the URI carried a track id."""
        if not self.spotify_id:
            return None
        return SPOTIFY_EMBED_URL.format(id=self.spotify_id)


@dataclass(frozen=True)
class Sliders:
    danceability: float | None = None
    energy: float | None = None
    valence: float | None = None
    tempo: float | None = None
    acousticness: float | None = None

    @property
    def active(self) -> bool:
        return any(
            v is not None
            for v in (self.danceability, self.energy, self.valence, self.tempo, self.acousticness)
        )


@dataclass(frozen=True)
class QueryParams:
    text: str = ""
    sliders: Sliders | None = None


@dataclass
class ScoredResult:
    track: Track
    score: float
    reasons: list[str] = field(default_factory=list)
