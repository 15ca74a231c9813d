"""Ask command for APItome - question a session's documentation.

The answer is streamed to stdout as it arrives, followed by the confidence
and a table of the sources it was drawn from.
"""

import asyncio
import logging
import sys
from typing import List, Optional

import click
from tabulate import tabulate

from apitome.cli.common import (
    api_option,
    configure_logging,
    db_option,
    fail,
    open_app,
    quiet_option,
    verbose_option,
)
from apitome.errors import RateLimitActiveError, RateLimitedError
from apitome.models import Message, Source
from apitome.utils.naming import url_display_name

logger = logging.getLogger(__name__)


def format_sources(sources: List[Source]) -> str:
    """Render answer sources as a table.

    Args:
        sources: Sources from the answer metadata.

    Returns:
        A grid table with one row per source.
    """
    rows = [
        [i, url_display_name(source.url), source.section or "", source.url]
        for i, source in enumerate(sources, 1)
    ]
    return tabulate(rows, headers=["#", "Document", "Section", "URL"], tablefmt="grid")


def print_answer(reply: Message, streamed: str, show_sources: bool) -> None:
    # Error replies replace whatever was streamed
    if reply.text != streamed:
        if streamed:
            click.echo()
        click.echo(reply.text, nl=False)
    click.echo()

    if reply.confidence is not None:
        click.echo(f"\nConfidence: {reply.confidence:.0%}")
    if reply.lazy_loaded:
        click.echo("Some pages were fetched on demand to answer this question.")
    if show_sources and reply.sources:
        click.echo("\nSources:")
        click.echo(format_sources(reply.sources))
    if reply.suggested_urls:
        click.echo("\nSuggested URLs to add:")
        for url in reply.suggested_urls:
            click.echo(f"  {url}")


@click.command(name="apitome-ask")
@click.argument("session_id")
@click.argument("question")
@click.option("--no-sources", is_flag=True, help="Do not list the answer's sources")
@db_option
@api_option
@quiet_option
@verbose_option
def main(
    session_id: str,
    question: str,
    no_sources: bool,
    db: Optional[str],
    api: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """Ask a question about a session's documentation.

    Examples:

        apitome-ask stripe-api_session_1 "How do I create a refund?"

        # Answer only
        apitome-ask stripe-api_session_1 "List the webhook events" --no-sources
    """
    configure_logging(quiet, verbose)

    async def run() -> int:
        streamed: List[str] = []

        def on_token(token: str) -> None:
            streamed.append(token)
            click.echo(token, nl=False)

        async with open_app(db, api) as app:
            try:
                reply = await app.controller.ask(session_id, question, on_token=on_token)
            except RateLimitedError as e:
                app.rate_limiter.poll()
                click.echo(f"Error: {e.message}", err=True)
                if app.rate_limiter.is_active and not isinstance(e, RateLimitActiveError):
                    click.echo(f"Try again in {app.rate_limiter.time_remaining}.", err=True)
                return 1
        print_answer(reply, "".join(streamed), show_sources=not no_sources)
        return 0

    try:
        exit_code = asyncio.run(run())
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        fail(e)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
