"""Helpers shared by the command-line entry points."""

import logging
import sys
from typing import NoReturn, Optional, Union

import click

from apitome.app import Application
from apitome.config import load_settings

db_option = click.option("--db", default=None, help="Store file path (auto-discovered if not specified)")
api_option = click.option("--api", default=None, help="Backend base URL")
quiet_option = click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors")
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Log debug output")


def configure_logging(quiet: bool = False, verbose: bool = False) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.WARNING)


def open_app(db: Optional[str] = None, api: Optional[str] = None) -> Application:
    """Open the application with command-line overrides applied.

    Tests can hand in settings or an HTTP client through the click context
    object (``{"settings": ..., "http_client": ...}``).
    """
    ctx = click.get_current_context(silent=True)
    obj = (ctx.find_root().obj if ctx else None) or {}

    settings = obj.get("settings") or load_settings()
    if db:
        settings.store_path = db
    if api:
        settings.api_base_url = api

    app = Application(settings, http_client=obj.get("http_client"))
    if app.migrated is not None:
        click.echo(f"Migrated legacy collection into session {app.migrated.session_id}", err=True)
    return app


def fail(error: Union[Exception, str]) -> NoReturn:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)
