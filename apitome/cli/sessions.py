"""Sessions command for APItome - list, inspect and remove chat sessions."""

import json
from typing import List, Optional

import click
from tabulate import tabulate

from apitome.cli.common import configure_logging, db_option, fail, open_app, quiet_option
from apitome.migration import discard_legacy_collection
from apitome.models import ChatSession

FORMATS = click.Choice(["table", "json", "simple"])


def format_session_list(sessions: List[ChatSession], format: str) -> str:
    """Format a session list for display.

    Args:
        sessions: Sessions, most recently active first.
        format: Output format.

    Returns:
        Formatted session list.
    """
    if format == "json":
        return json.dumps([s.model_dump(mode="json", exclude={"messages"}) for s in sessions], indent=2)

    if not sessions:
        return "No sessions found."

    if format == "table":
        rows = [
            [
                s.session_id,
                s.name,
                len(s.urls),
                s.document_count,
                len(s.messages),
                s.last_activity.strftime("%Y-%m-%d %H:%M"),
            ]
            for s in sessions
        ]
        return tabulate(
            rows,
            headers=["Session", "Name", "URLs", "Documents", "Messages", "Last activity"],
            tablefmt="grid",
        )

    return "\n".join(f"{s.session_id}\t{s.name}" for s in sessions)


def format_session(session: ChatSession, format: str) -> str:
    """Format one session with its conversation."""
    if format == "json":
        return json.dumps(session.model_dump(mode="json"), indent=2)

    output = []
    output.append(f"{session.name} ({session.session_id})")
    output.append("=" * 40)
    output.append(f"Collection: {session.collection_id}")
    output.append(f"Documents: {session.document_count}")
    if session.pending_urls:
        output.append(f"Pending URLs: {session.pending_urls}")
    output.append(f"Created: {session.created_at:%Y-%m-%d %H:%M}")
    output.append(f"Last activity: {session.last_activity:%Y-%m-%d %H:%M}")

    if session.urls:
        output.append("")
        if format == "table":
            output.append(tabulate([[u] for u in session.urls], headers=["URL"], tablefmt="grid"))
        else:
            output.extend(f"  {u}" for u in session.urls)

    if session.messages:
        output.append("")
        for message in session.messages:
            output.append(f"[{message.role.value}] {message.text}")

    return "\n".join(output)


@click.group(name="apitome-sessions")
@db_option
@quiet_option
@click.pass_context
def main(ctx: click.Context, db: Optional[str], quiet: bool) -> None:
    """Manage chat sessions stored on this machine."""
    configure_logging(quiet=quiet)
    ctx.ensure_object(dict)
    ctx.obj["db"] = db


@main.command(name="list")
@click.option("--format", "-f", type=FORMATS, default="table", help="Output format")
@click.pass_context
def list_command(ctx: click.Context, format: str) -> None:
    """List sessions, most recently active first."""
    try:
        with open_app(ctx.obj["db"]) as app:
            click.echo(format_session_list(app.sessions.list_sorted(), format))
    except Exception as e:
        fail(e)


@main.command()
@click.argument("session_id")
@click.option("--format", "-f", type=FORMATS, default="simple", help="Output format")
@click.pass_context
def show(ctx: click.Context, session_id: str, format: str) -> None:
    """Show one session and its conversation."""
    try:
        with open_app(ctx.obj["db"]) as app:
            session = app.sessions.get(session_id)
            if session is None:
                fail(f"Session not found: {session_id}")
            click.echo(format_session(session, format))
    except Exception as e:
        fail(e)


@main.command()
@click.argument("session_id")
@click.pass_context
def delete(ctx: click.Context, session_id: str) -> None:
    """Delete one session."""
    try:
        with open_app(ctx.obj["db"]) as app:
            if not app.sessions.delete(session_id):
                fail(f"Session not found: {session_id}")
            click.echo(f"Deleted session {session_id}")
    except Exception as e:
        fail(e)


@main.command()
@click.option("--legacy", is_flag=True, help="Also discard an unreadable legacy collection record")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, legacy: bool, yes: bool) -> None:
    """Delete every session."""
    if not yes:
        click.confirm("Delete all sessions?", abort=True)
    try:
        with open_app(ctx.obj["db"]) as app:
            count = len(app.sessions.list_sessions())
            app.sessions.clear_all()
            click.echo(f"Deleted {count} session(s)")
            if legacy and discard_legacy_collection(app.sessions):
                click.echo("Discarded legacy collection record")
    except Exception as e:
        fail(e)


if __name__ == "__main__":
    main()
