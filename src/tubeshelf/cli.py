"""CLI interface — thin wrapper over LibraryStore and the search provider."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer

from tubeshelf.config import settings
from tubeshelf.format import format_duration, format_number
from tubeshelf.library import LibraryStore
from tubeshelf.models import VideoRef
from tubeshelf.search import SearchProvider, YtDlpSearchProvider
from tubeshelf.storage.adapter import DurableStore, StorageWriteError
from tubeshelf.storage.sqlite import SQLiteBackend
from tubeshelf.youtube import extract_video_id, watch_url

T = TypeVar("T")

app = typer.Typer(
    name="tubeshelf",
    help="Keep playlists, favorites, watch-later and history for YouTube videos.",
    no_args_is_help=True,
)
playlist_app = typer.Typer(help="Create and edit playlists.", no_args_is_help=True)
app.add_typer(playlist_app, name="playlist")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-V", help="Log storage activity.")) -> None:
    """Personal YouTube library manager."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _get_store() -> LibraryStore:
    """Create a library store backed by the default SQLite database."""
    settings.ensure_dirs()
    return LibraryStore(DurableStore(SQLiteBackend()))


def _get_search() -> SearchProvider:
    return YtDlpSearchProvider()


def _run(action: Callable[[LibraryStore], Awaitable[T]]) -> T:
    """Load the library, run action against it, and close it again."""
    store = _get_store()

    async def runner() -> T:
        try:
            if not store.loaded:
                await store.load()
            return await action(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except StorageWriteError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)


def _edit_playlist(playlist_id: str, edit: Callable[[LibraryStore], Awaitable[object]]) -> None:
    """Run edit against an existing playlist, or exit if playlist_id is unknown."""

    async def action(store: LibraryStore) -> bool:
        if store.get_playlist(playlist_id) is None:
            return False
        await edit(store)
        return True

    if not _run(action):
        typer.echo(f"❌ Playlist not found: {playlist_id}", err=True)
        raise typer.Exit(code=1)


def _video_id_or_exit(value: str) -> str:
    video_id = extract_video_id(value)
    if video_id is None:
        typer.echo(f"❌ Not a YouTube video ID or URL: {value}", err=True)
        raise typer.Exit(code=1)
    return video_id


def _title_for(store: LibraryStore, video_id: str, title: str | None) -> str:
    if title:
        return title
    ref = store.get_video(video_id)
    return ref.title if ref else video_id


def _describe(video_id: str, ref: VideoRef | None) -> str:
    if ref is None:
        return f"{video_id}  (no metadata)"
    extras = [x for x in (ref.channel_name, format_duration(ref.duration)) if x]
    suffix = f"  [{', '.join(extras)}]" if extras else ""
    return f"{video_id}  {ref.title}{suffix}"


# ----------------------------------------------------------------------
# Playlists


@playlist_app.command("create")
def playlist_create(name: str = typer.Argument(..., help="Playlist name.")) -> None:
    """Create a new, empty playlist."""
    playlist = _run(lambda store: store.create_playlist(name))
    typer.echo(f"✅ Created: {playlist.name}")
    typer.echo(f"   ID: {playlist.id}")


@playlist_app.command("list")
def playlist_list() -> None:
    """List all playlists."""

    async def action(store: LibraryStore):
        return store.playlists

    playlists = _run(action)
    if not playlists:
        typer.echo("No playlists yet. Use 'tubeshelf playlist create <name>' to make one.")
        return
    for i, p in enumerate(playlists, 1):
        typer.echo(f"  {i}. {p.id}  {len(p.video_ids):>3d} video(s)  {p.name}")


@playlist_app.command("show")
def playlist_show(playlist_id: str = typer.Argument(..., help="Playlist ID.")) -> None:
    """Show the videos in a playlist."""

    async def action(store: LibraryStore):
        playlist = store.get_playlist(playlist_id)
        if playlist is None:
            return None, []
        return playlist, [_describe(v, store.get_video(v)) for v in playlist.video_ids]

    playlist, lines = _run(action)
    if playlist is None:
        typer.echo(f"❌ Playlist not found: {playlist_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{playlist.name}  ({len(lines)} video(s), updated {playlist.updated_at:%Y-%m-%d %H:%M})")
    for i, line in enumerate(lines, 1):
        typer.echo(f"  {i}. {line}")


@playlist_app.command("rename")
def playlist_rename(
    playlist_id: str = typer.Argument(..., help="Playlist ID."),
    name: str = typer.Argument(..., help="New name."),
) -> None:
    """Rename a playlist."""
    _edit_playlist(playlist_id, lambda store: store.rename_playlist(playlist_id, name))
    typer.echo(f"✏️  Renamed: {playlist_id} → {name}")


@playlist_app.command("delete")
def playlist_delete(playlist_id: str = typer.Argument(..., help="Playlist ID.")) -> None:
    """Delete a playlist."""
    _edit_playlist(playlist_id, lambda store: store.delete_playlist(playlist_id))
    typer.echo(f"🗑️  Deleted: {playlist_id}")


@playlist_app.command("add")
def playlist_add(
    playlist_id: str = typer.Argument(..., help="Playlist ID."),
    video: str = typer.Argument(..., help="Video ID or URL."),
    title: str | None = typer.Option(None, "--title", "-t", help="Title to cache for the video."),
) -> None:
    """Add a video to a playlist."""
    video_id = _video_id_or_exit(video)
    _edit_playlist(
        playlist_id,
        lambda store: store.add_video_to_playlist(playlist_id, video_id, _title_for(store, video_id, title)),
    )
    typer.echo(f"➕ Added {video_id} to {playlist_id}")


@playlist_app.command("remove")
def playlist_remove(
    playlist_id: str = typer.Argument(..., help="Playlist ID."),
    video: str = typer.Argument(..., help="Video ID or URL."),
) -> None:
    """Remove a video from a playlist."""
    video_id = _video_id_or_exit(video)
    _edit_playlist(playlist_id, lambda store: store.remove_video_from_playlist(playlist_id, video_id))
    typer.echo(f"➖ Removed {video_id} from {playlist_id}")


# ----------------------------------------------------------------------
# Favorites, watch later, history


@app.command()
def favorite(
    video: str = typer.Argument(..., help="Video ID or URL."),
    title: str | None = typer.Option(None, "--title", "-t", help="Title to cache for the video."),
) -> None:
    """Toggle a video in favorites."""
    video_id = _video_id_or_exit(video)
    added = _run(lambda store: store.toggle_favorite(video_id, _title_for(store, video_id, title)))
    typer.echo(f"⭐ Favorited: {video_id}" if added else f"☆ Unfavorited: {video_id}")


@app.command()
def later(
    video: str = typer.Argument(..., help="Video ID or URL."),
    title: str | None = typer.Option(None, "--title", "-t", help="Title to cache for the video."),
) -> None:
    """Toggle a video in the watch-later queue."""
    video_id = _video_id_or_exit(video)
    added = _run(lambda store: store.toggle_watch_later(video_id, _title_for(store, video_id, title)))
    typer.echo(f"🕒 Queued: {video_id}" if added else f"✔️  Unqueued: {video_id}")


def _list_videos(attr: str, empty: str) -> None:
    async def action(store: LibraryStore):
        return [_describe(v, store.get_video(v)) for v in getattr(store, attr)]

    lines = _run(action)
    if not lines:
        typer.echo(empty)
        return
    for i, line in enumerate(lines, 1):
        typer.echo(f"  {i}. {line}")


@app.command()
def favorites() -> None:
    """List favorite videos."""
    _list_videos("favorites", "No favorites yet.")


@app.command(name="watch-later")
def watch_later() -> None:
    """List the watch-later queue."""
    _list_videos("watch_later", "Watch-later queue is empty.")


@app.command()
def play(video: str = typer.Argument(..., help="Video ID or URL.")) -> None:
    """Record a play in history and print the watch URL."""
    video_id = _video_id_or_exit(video)
    _run(lambda store: store.add_to_history(video_id))
    typer.echo(f"▶️  {watch_url(video_id)}")


@app.command()
def history(clear: bool = typer.Option(False, "--clear", help="Clear playback history.")) -> None:
    """Show (or clear) playback history, most recent first."""
    if clear:
        _run(lambda store: store.clear_history())
        typer.echo("🧹 History cleared.")
        return

    async def action(store: LibraryStore):
        return [(h.played_at, _describe(h.video_id, store.get_video(h.video_id))) for h in store.history]

    items = _run(action)
    if not items:
        typer.echo("History is empty.")
        return
    for played_at, line in items:
        typer.echo(f"  {played_at:%Y-%m-%d %H:%M}  {line}")


# ----------------------------------------------------------------------
# Search


@app.command()
def search(
    query: str = typer.Argument(..., help="Search keywords."),
    limit: int = typer.Option(settings.search_limit, "--limit", "-n", help="Maximum results."),
) -> None:
    """Search YouTube and remember the keywords."""
    provider = _get_search()

    async def action(store: LibraryStore):
        await store.add_to_search_history(query)
        results = await provider.search_videos(query, limit)
        for r in results:
            if store.get_video(r.video_id) is None:
                await store.cache_video(VideoRef.from_search_result(r))
        return results

    results = _run(action)
    if not results:
        typer.echo("No results found.")
        return
    for i, r in enumerate(results, 1):
        duration = r.duration or "--:--"
        views = f"  {format_number(r.views)} views" if r.views else ""
        typer.echo(f"  {i}. {r.video_id}  {duration:>8s}  {r.channel_name:<20s}  {r.title}{views}")


@app.command()
def suggest(count: int = typer.Option(3, "--count", "-n", help="Number of keywords.")) -> None:
    """Suggest a few keywords from past searches."""

    async def action(store: LibraryStore):
        return store.get_random_search_keywords(count)

    keywords = _run(action)
    if not keywords:
        typer.echo("No search history yet.")
        return
    for keyword in keywords:
        typer.echo(f"  🔎 {keyword}")


@app.command(name="clear-all")
def clear_all(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation.")) -> None:
    """Erase every playlist, favorite, queue entry, history item and cached video."""
    if not yes:
        typer.confirm("This permanently deletes all library data. Continue?", abort=True)
    _run(lambda store: store.clear_all_data())
    typer.echo("🧹 All library data cleared.")
