"""CLI entrypoint for sfaucet."""

from pathlib import Path

import typer

from sfaucet.library import DEFAULT_LIBRARY, find_by_name, load_library
from sfaucet.log import setup_logging
from sfaucet.models import QueryParams, ScoredResult, Sliders, Track
from sfaucet.search import DEFAULT_LIMIT, build_explanation, score_percent, search

app = typer.Typer(
    name="sfaucet",
    help="Search a music library by text or audio features and visualize the results",
    no_args_is_help=True,
)

BAR_WIDTH = 20

# label -> Track attribute, in display order
FEATURE_BARS = [
    ("Danceability", "danceability"),
    ("Energy", "energy"),
    ("Valence", "valence"),
    ("Acousticness", "acousticness"),
    ("Speechiness", "speechiness"),
    ("Instrumental", "instrumentalness"),
    ("Liveness", "liveness"),
    ("Loudness", "loudness_norm"),
]

LibraryOption = typer.Option(DEFAULT_LIBRARY, "--library", "-l", help="Path to the library CSV")
DanceabilityOption = typer.Option(None, "--danceability", min=0.0, max=1.0, help="Target danceability (0-1)")
EnergyOption = typer.Option(None, "--energy", min=0.0, max=1.0, help="Target energy (0-1)")
ValenceOption = typer.Option(None, "--valence", min=0.0, max=1.0, help="Target valence (0-1)")
TempoOption = typer.Option(None, "--tempo", min=40.0, max=220.0, help="Target tempo in BPM (40-220)")
AcousticnessOption = typer.Option(None, "--acousticness", min=0.0, max=1.0, help="Target acousticness (0-1)")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    setup_logging("DEBUG" if verbose else "INFO")


def _load(library: Path) -> list[Track]:
    if not library.is_file():
        typer.echo(f"Error: {library} is not a file", err=True)
        raise typer.Exit(1)
    return load_library(library)


def _run_search(
    library: Path,
    query: str,
    sliders: Sliders,
    n: int,
) -> list[ScoredResult]:
    if not query.strip() and not sliders.active:
        typer.echo("Nothing to search for. Give a query or at least one feature target.")
        raise typer.Exit(1)

    tracks = _load(library)
    results = search(tracks, QueryParams(text=query, sliders=sliders), limit=n)
    if not results:
        typer.echo("No matches found. Try a different search or adjust the sliders.")
        raise typer.Exit(1)
    return results


def _bar(value: float) -> str:
    filled = round(max(0.0, min(1.0, value)) * BAR_WIDTH)
    return "█" * filled + "░" * (BAR_WIDTH - filled)


@app.command("search")
def search_cmd(
    query: str = typer.Argument("", help="Text to match against track, artist and album names"),
    danceability: float | None = DanceabilityOption,
    energy: float | None = EnergyOption,
    valence: float | None = ValenceOption,
    tempo: float | None = TempoOption,
    acousticness: float | None = AcousticnessOption,
    n: int = typer.Option(DEFAULT_LIMIT, "-n", min=1, help="Number of results"),
    library: Path = LibraryOption,
) -> None:
    """Search the library by text, audio-feature targets, or both."""
    sliders = Sliders(danceability, energy, valence, tempo, acousticness)
    results = _run_search(library, query, sliders, n)

    for i, r in enumerate(results, 1):
        t = r.track
        typer.echo(f"  {i:2d}. {t.artists} - {t.name} ({t.album}) [{score_percent(r.score)}% match]")
        typer.echo(f"      {build_explanation(r)}")


@app.command()
def show(
    name: str = typer.Argument(..., help="Track name"),
    library: Path = LibraryOption,
) -> None:
    """Show a track's details and audio-feature bars."""
    track = find_by_name(_load(library), name)
    if track is None:
        typer.echo(f"Error: track not found: {name}", err=True)
        raise typer.Exit(1)

    typer.echo(f"\n{track.name}")
    typer.echo(f"{track.artists}")
    typer.echo(f"{track.album}\n")
    typer.echo(f"Tempo: {round(track.tempo)} BPM")
    if track.embed_url:
        typer.echo(f"Listen: {track.embed_url}")
    typer.echo("")
    for label, attr in FEATURE_BARS:
        value = getattr(track, attr)
        typer.echo(f"  {label:<13} {_bar(value)} {value * 100:3.0f}%")


@app.command()
def visualize(
    query: str = typer.Argument("", help="Text to match against track, artist and album names"),
    danceability: float | None = DanceabilityOption,
    energy: float | None = EnergyOption,
    valence: float | None = ValenceOption,
    tempo: float | None = TempoOption,
    acousticness: float | None = AcousticnessOption,
    n: int = typer.Option(DEFAULT_LIMIT, "-n", min=1, help="Number of results to cycle through"),
    width: int = typer.Option(960, "--width", min=64, help="Window width"),
    height: int = typer.Option(540, "--height", min=64, help="Window height"),
    fps: int = typer.Option(60, "--fps", min=1, help="Frames per second"),
    library: Path = LibraryOption,
) -> None:
    """Search, then animate the results (left/right arrows switch, Esc quits)."""
    sliders = Sliders(danceability, energy, valence, tempo, acousticness)
    results = _run_search(library, query, sliders, n)

    from sfaucet.display import run_window

    for i, r in enumerate(results, 1):
        typer.echo(f"  {i:2d}. {r.track.artists} - {r.track.name} [{score_percent(r.score)}% match]")
    run_window([r.track for r in results], size=(width, height), fps=fps)


if __name__ == "__main__":
    app()
