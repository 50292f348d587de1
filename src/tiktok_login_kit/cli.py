"""Command-line interface using Typer."""

import webbrowser
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tiktok_login_kit import __version__
from tiktok_login_kit.callback import wait_for_callback
from tiktok_login_kit.connector import Connector
from tiktok_login_kit.domain.enums import PrivacyLevel, PublishMode, PublishState
from tiktok_login_kit.domain.models import TokenInfo
from tiktok_login_kit.errors import TikTokError
from tiktok_login_kit.logging import setup_logging
from tiktok_login_kit.publishing import (
    ImagesFromUrls,
    PublishStatus,
    UploadRequest,
    VideoFromFile,
    VideoFromUrl,
)
from tiktok_login_kit.session import InMemorySessionStore

# Setup logging
setup_logging()

app = typer.Typer(
    name="tiktok-kit",
    help="TikTok Login Kit - OAuth, profile, videos and publishing from the terminal",
    add_completion=False,
)

console = Console()

# Shared options
TokenOption = typer.Option(
    "",
    "--access-token",
    "-a",
    envvar="TIKTOK_ACCESS_TOKEN",
    help="Access token (or TIKTOK_ACCESS_TOKEN)",
)
IniOption = typer.Option(None, "--ini", help="Read app credentials from an .ini file")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"TikTok Login Kit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """TikTok Login Kit - Authorize, read and publish on TikTok."""
    pass


def _connector(ini: Optional[Path] = None, access_token: str = "") -> Connector:
    connector = Connector.from_ini(ini) if ini else Connector.from_settings()
    if access_token:
        connector.set_token(access_token)
    return connector


@contextmanager
def _errors_to_exit() -> Iterator[None]:
    """Print client errors and exit non-zero."""
    try:
        yield
    except TikTokError as e:
        console.print(f"[bold red]Error ({e.kind}): {escape(e.message)}[/bold red]")
        if e.code or e.log_id:
            console.print(f"[dim]code={e.code} log_id={e.log_id}[/dim]")
        raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1)


def _print_tokens(token: TokenInfo) -> None:
    table = Table(title="TikTok Tokens")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Open ID", token.open_id or "-")
    table.add_row("Access Token", token.access_token)
    table.add_row("Refresh Token", token.refresh_token or "-")
    table.add_row("Expires In", f"{token.expires_in}s")
    table.add_row("Refresh Expires In", f"{token.refresh_expires_in}s")
    table.add_row("Scope", ", ".join(token.scope) or "-")
    console.print(table)


def _print_status(publish_id: str, status: PublishStatus) -> None:
    table = Table(title="Publish Status")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Publish ID", publish_id)
    table.add_row("Status", status.status)
    table.add_row("Post ID", status.public_post_id or "-")
    if not status.success:
        table.add_row("Error", f"{status.error_code}: {status.error_message}")
    console.print(table)


@app.command("auth-url")
def auth_url(
    scope: list[str] = typer.Option(["user.info.basic"], "--scope", "-s", help="Scope to request (repeatable)"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Print an authorization URL (the state is not kept; use `login` for the full flow)."""
    with _errors_to_exit(), _connector(ini) as connector:
        url = connector.build_authorization_url(InMemorySessionStore(), scope)
    console.print(url, soft_wrap=True)


@app.command()
def login(
    scope: list[str] = typer.Option(["user.info.basic"], "--scope", "-s", help="Scope to request (repeatable)"),
    timeout: int = typer.Option(300, "--timeout", help="Seconds to wait for the callback"),
    browser: bool = typer.Option(True, "--browser/--no-browser", help="Open the browser automatically"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Authorize with TikTok through a local callback server."""
    with _errors_to_exit(), _connector(ini) as connector:
        session = InMemorySessionStore()
        url = connector.build_authorization_url(session, scope)

        console.print("[bold blue]Opening browser for TikTok authorization...[/bold blue]")
        console.print(f"If the browser doesn't open, go to:\n{url}\n", soft_wrap=True)
        if browser:
            webbrowser.open(url)

        console.print(f"[dim]Waiting for callback on {connector.credentials.redirect_uri}...[/dim]")
        callback = wait_for_callback(connector.credentials.redirect_uri, timeout=timeout)
        token = connector.exchange_code(callback.code, callback.state, session)

    console.print("[bold green]✓ Authorized![/bold green]")
    _print_tokens(token)


@app.command()
def refresh(
    refresh_token: str = typer.Argument(..., help="Refresh token from a previous login"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Exchange a refresh token for a new access token."""
    with _errors_to_exit(), _connector(ini) as connector:
        token = connector.refresh(refresh_token)

    if token is None:
        console.print("[bold red]✗ Refresh rejected (expired or revoked refresh token)[/bold red]")
        raise typer.Exit(code=1)
    _print_tokens(token)


@app.command()
def revoke(
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Revoke an access token."""
    with _errors_to_exit(), _connector(ini, access_token) as connector:
        revoked = connector.revoke()

    if not revoked:
        console.print("[bold red]✗ Token could not be revoked[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]✓ Token revoked[/bold green]")


@app.command()
def me(
    field: list[str] = typer.Option([], "--field", "-f", help="User field to request (repeatable)"),
    handle: bool = typer.Option(False, "--handle", help="Resolve the @handle from the profile link"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Show the authenticated user's profile."""
    with _errors_to_exit(), _connector(ini, access_token) as connector:
        if field:
            user = connector.get_user_profile(field, resolve_handle=handle)
        else:
            user = connector.get_user_profile(resolve_handle=handle)

    lines = [
        f"[bold]{user.display_name or '-'}[/bold]" + (f" (@{user.handle})" if user.handle else ""),
        f"Open ID: {user.open_id or '-'}",
    ]
    if user.bio:
        lines.append(f"Bio: {user.bio}")
    if user.url:
        lines.append(f"Profile: {user.url}")
    if user.best_avatar:
        lines.append(f"Avatar: {user.best_avatar}")
    if user.followers or user.following or user.likes or user.num_videos:
        lines.append(
            f"Followers: {user.followers}  Following: {user.following}  "
            f"Likes: {user.likes}  Videos: {user.num_videos}"
        )
    console.print(Panel("\n".join(lines), title="TikTok User"))


@app.command()
def videos(
    max_pages: int = typer.Option(1, "--max-pages", "-p", help="Pages to fetch (0 for all)"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """List the authenticated user's videos."""
    table = Table(title="TikTok Videos")
    table.add_column("ID", style="cyan")
    table.add_column("Created")
    table.add_column("Title")
    table.add_column("Views", justify="right")
    table.add_column("Likes", justify="right")

    with _errors_to_exit(), _connector(ini, access_token) as connector:
        for video in connector.list_all_videos(max_pages=max_pages):
            created = video.created_at.strftime("%Y-%m-%d") if video.created_at else "-"
            title = video.title or video.video_description
            table.add_row(
                video.id,
                created,
                title[:50] + "..." if len(title) > 50 else title,
                str(video.view_count),
                str(video.like_count),
            )

    console.print(table)


@app.command()
def creator(
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Show what the creator is allowed to publish."""
    with _errors_to_exit(), _connector(ini, access_token) as connector:
        info = connector.query_capabilities()

    table = Table(title="Creator Capabilities")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Nickname", info.nickname)
    table.add_row("Username", info.username or "-")
    table.add_row("Privacy Options", ", ".join(sorted(info.privacy_options)) or "-")
    table.add_row("Comments", "✗ disabled" if info.comment_off else "✓")
    table.add_row("Duet", "✗ disabled" if info.duet_off else "✓")
    table.add_row("Stitch", "✗ disabled" if info.stitch_off else "✓")
    table.add_row("Max Duration", f"{info.max_video_duration_sec}s")
    console.print(table)


def _run_publish(
    request: UploadRequest,
    mode: PublishMode,
    wait: bool,
    access_token: str,
    ini: Optional[Path],
) -> None:
    with _errors_to_exit(), _connector(ini, access_token) as connector:
        attempt = connector.start_publish(request, mode)
        info = attempt.info

        if attempt.state == PublishState.FAILED:
            console.print(f"[bold red]✗ Publish rejected: {info.error_code} - {info.error_message}[/bold red]")
            raise typer.Exit(code=1)

        console.print(f"[green]Publish started: {info.publish_id}[/green]")
        if not wait:
            return

        console.print("[dim]Waiting for TikTok to process the post...[/dim]")
        status = connector.publisher.wait_for_attempt(attempt)

    _print_status(info.publish_id, status)
    if attempt.state != PublishState.COMPLETE:
        raise typer.Exit(code=1)
    console.print("[bold green]✓ Published![/bold green]")


@app.command("publish-url")
def publish_url(
    url: str = typer.Argument(..., help="Public, domain-verified video URL"),
    title: str = typer.Option("", "--title", "-t", help="Video caption"),
    privacy: PrivacyLevel = typer.Option(PrivacyLevel.PRIVATE, "--privacy", help="Privacy level"),
    mode: PublishMode = typer.Option(PublishMode.STRICT, "--mode", "-m", help="Capability check mode"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait until published"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Publish a video TikTok pulls from a URL."""
    with _errors_to_exit():
        request = VideoFromUrl(url=url, title=title, privacy_level=privacy)
    _run_publish(request, mode, wait, access_token, ini)


@app.command("publish-file")
def publish_file(
    path: Path = typer.Argument(..., help="Local video file"),
    title: str = typer.Option("", "--title", "-t", help="Video caption"),
    privacy: PrivacyLevel = typer.Option(PrivacyLevel.PRIVATE, "--privacy", help="Privacy level"),
    mode: PublishMode = typer.Option(PublishMode.STRICT, "--mode", "-m", help="Capability check mode"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait until published"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Upload and publish a local video file."""
    with _errors_to_exit():
        request = VideoFromFile(path=path, title=title, privacy_level=privacy)
    _run_publish(request, mode, wait, access_token, ini)


@app.command("publish-images")
def publish_images(
    urls: list[str] = typer.Argument(..., help="Public, domain-verified image URLs"),
    title: str = typer.Option("", "--title", "-t", help="Post description"),
    privacy: PrivacyLevel = typer.Option(PrivacyLevel.PRIVATE, "--privacy", help="Privacy level"),
    cover: int = typer.Option(0, "--cover", help="Index of the cover image"),
    music: bool = typer.Option(False, "--music/--no-music", help="Let TikTok add music"),
    mode: PublishMode = typer.Option(PublishMode.STRICT, "--mode", "-m", help="Capability check mode"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait until published"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Publish a photo post TikTok pulls from URLs."""
    with _errors_to_exit():
        request = ImagesFromUrls(
            urls=urls,
            title=title,
            privacy_level=privacy,
            photo_cover_index=cover,
            auto_add_music=music,
        )
    _run_publish(request, mode, wait, access_token, ini)


@app.command()
def status(
    publish_id: str = typer.Argument(..., help="Publish ID returned when publishing"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Poll until a final status"),
    access_token: str = TokenOption,
    ini: Optional[Path] = IniOption,
) -> None:
    """Check the status of a publish."""
    with _errors_to_exit(), _connector(ini, access_token) as connector:
        if wait:
            result = connector.wait_until_published(publish_id)
        else:
            result = connector.check_publish_status(publish_id)

    _print_status(publish_id, result)
    if not result.success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
