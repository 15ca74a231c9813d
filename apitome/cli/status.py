"""Status command for APItome - backend health, sessions and rate limit.

This module provides the CLI interface for checking whether the backend is
reachable, how many sessions are stored locally, and whether a rate-limit
cooldown is in effect.
"""

import asyncio
import json
import math
from typing import Any, Dict, Optional

import click
from tabulate import tabulate
from tqdm import tqdm

from apitome.app import Application
from apitome.cli.common import api_option, configure_logging, db_option, fail, open_app
from apitome.rate_limiter import RateLimiter


async def collect_status(app: Application, check_backend: bool = True) -> Dict[str, Any]:
    """Gather the status report.

    Args:
        app: The opened application.
        check_backend: Probe the backend's health endpoint.

    Returns:
        Status dictionary.
    """
    app.rate_limiter.poll()
    status: Dict[str, Any] = {
        "api_base_url": app.settings.api_base_url,
        "store": app.store.db_path,
        "sessions": len(app.sessions.list_sessions()),
        "rate_limited": app.rate_limiter.is_active,
        "rate_limit_remaining": app.rate_limiter.time_remaining or None,
    }
    if check_backend:
        status["backend_healthy"] = await app.client.check_health()
    return status


def format_status(status: Dict[str, Any], format: str) -> str:
    """Format the status report for display.

    Args:
        status: Status dictionary.
        format: Output format.

    Returns:
        Formatted status string.
    """
    if format == "json":
        return json.dumps(status, indent=2)

    backend = status.get("backend_healthy")
    rows = [
        ["Backend", status["api_base_url"]],
        ["Backend healthy", "unknown" if backend is None else ("yes" if backend else "no")],
        ["Store", status["store"]],
        ["Sessions", status["sessions"]],
        [
            "Rate limit",
            f"active ({status['rate_limit_remaining']} remaining)" if status["rate_limited"] else "inactive",
        ],
    ]

    if format == "table":
        return tabulate(rows, tablefmt="grid")
    return "\n".join(f"{label}: {value}" for label, value in rows)


async def watch_rate_limit(rate_limiter: RateLimiter, interval: float = 1.0) -> None:
    """Show a countdown until the rate-limit window clears."""
    total = math.ceil(rate_limiter.remaining_ms() / 1000)
    if total <= 0:
        return

    with tqdm(total=total, desc="Rate limit", unit="s", bar_format="{desc}: {bar} {postfix}") as pbar:

        def on_tick(limiter: RateLimiter) -> None:
            remaining = math.ceil(limiter.remaining_ms() / 1000)
            pbar.n = min(total, total - remaining)
            pbar.set_postfix_str(limiter.time_remaining or "cleared")

        await rate_limiter.run(interval=interval, on_tick=on_tick)


@click.command(name="apitome-status")
@db_option
@api_option
@click.option("--watch", "-w", is_flag=True, help="Follow the rate-limit cooldown until it clears")
@click.option("--clear-limit", is_flag=True, help="End the rate-limit cooldown now")
@click.option("--offline", is_flag=True, help="Skip the backend health check")
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json", "simple"]),
    default="table",
    help="Output format",
)
def main(
    db: Optional[str],
    api: Optional[str],
    watch: bool,
    clear_limit: bool,
    offline: bool,
    format: str,
) -> None:
    """Show backend health, stored sessions and the rate-limit window.

    Examples:

        # Show status
        apitome-status

        # Wait out a cooldown
        apitome-status --watch
    """
    configure_logging(quiet=True)

    async def run() -> None:
        async with open_app(db, api) as app:
            if clear_limit:
                app.rate_limiter.clear()
            click.echo(format_status(await collect_status(app, not offline), format))
            if watch and app.rate_limiter.is_active:
                await watch_rate_limit(app.rate_limiter)
                click.echo("Rate limit cleared. You can ask questions again.")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped watching.", err=True)
    except Exception as e:
        fail(e)


if __name__ == "__main__":
    main()
