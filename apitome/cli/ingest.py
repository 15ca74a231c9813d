"""Ingest commands for APItome - create collections and add URLs to them.

This module provides the CLI interface for submitting documentation URLs
to the backend, either as a new collection with its own chat session or as
additions to an existing session's collection.
"""

import asyncio
import logging
from typing import Optional, Tuple

import click

from apitome.cli.common import (
    api_option,
    configure_logging,
    db_option,
    fail,
    open_app,
    quiet_option,
    verbose_option,
)

logger = logging.getLogger(__name__)


@click.command(name="apitome-ingest")
@click.argument("urls", nargs=-1, required=True)
@click.option("--name", "-n", required=True, help="Display name for the collection")
@click.option("--label", "-l", default=None, help="Group the URLs under this label")
@db_option
@api_option
@quiet_option
@verbose_option
def main(
    urls: Tuple[str, ...],
    name: str,
    label: Optional[str],
    db: Optional[str],
    api: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """Ingest documentation URLs into a new collection.

    Creates a chat session bound to the collection and prints its id.

    Examples:

        # Ingest one documentation site
        apitome-ingest https://docs.stripe.com/api --name "Stripe API"

        # Group the URLs under a label
        apitome-ingest https://docs.github.com/rest --name GitHub --label rest
    """
    configure_logging(quiet, verbose)
    payload = {label: list(urls)} if label else list(urls)

    async def run() -> None:
        async with open_app(db, api) as app:
            logger.info(f"Ingesting {len(urls)} URL(s), this can take a few minutes...")
            session = await app.controller.start_collection(payload, name)
            logger.info(
                f"Created session '{session.name}' with {session.document_count} documents"
                + (f" ({session.pending_urls} URLs pending)" if session.pending_urls else "")
            )
            click.echo(session.session_id)

    try:
        asyncio.run(run())
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        fail(e)


@click.command(name="apitome-add-urls")
@click.argument("session_id")
@click.argument("urls", nargs=-1, required=True)
@db_option
@api_option
@quiet_option
@verbose_option
def add_urls(
    session_id: str,
    urls: Tuple[str, ...],
    db: Optional[str],
    api: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """Add documentation URLs to an existing session's collection.

    Examples:

        apitome-add-urls stripe-api_session_1 https://docs.stripe.com/payments
    """
    configure_logging(quiet, verbose)

    async def run() -> None:
        async with open_app(db, api) as app:
            session = await app.controller.add_urls(session_id, list(urls))
            click.echo(session.messages[-1].text if session.messages else session.session_id)

    try:
        asyncio.run(run())
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        fail(e)


if __name__ == "__main__":
    main()
