"""Welth CLI: run the server, set up the database, poke the API.

Usage:
    welth serve                                   # Run the API with uvicorn
    welth init-db                                 # Create tables (dev, no alembic)
    welth accounts list                           # Your accounts, newest first
    welth accounts create "Savings" 2500 --type SAVINGS --default
    welth dashboard                               # Recent transactions

API commands need a session token: --token or WELTH_SESSION_TOKEN.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

import click
import httpx

from welth import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"
USER_AGENT = f"welth-cli/{__version__}"


def _api_url() -> str:
    return os.environ.get("WELTH_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str]) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Welth backend."""
    if not token:
        click.secho(
            "Error: --token required (or set WELTH_SESSION_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return httpx.AsyncClient(
        base_url=_api_url(),
        headers={"Authorization": f"Bearer {token}", "User-Agent": USER_AGENT},
        timeout=30.0,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(r: httpx.Response) -> None:
    """Print the action error carried by a non-2xx response and exit."""
    try:
        detail = r.json().get("detail")
    except ValueError:
        detail = r.text
    if isinstance(detail, dict):
        message = f"{detail.get('kind', 'ERROR')}: {detail.get('message', '')}"
        if detail.get("kind") == "RATE_LIMITED":
            message += f" (retry in {detail.get('reset')}s)"
    else:
        message = str(detail)
    click.secho(f"Error ({r.status_code}) {message}", fg="red", err=True)
    sys.exit(1)


def _money(value: float) -> str:
    return f"{value:,.2f}"


token_option = click.option(
    "--token",
    envvar="WELTH_SESSION_TOKEN",
    help="Session token (or set WELTH_SESSION_TOKEN)",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="welth")
def main():
    """Welth: personal-finance backend."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: WELTH_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: WELTH_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from welth.config import settings

    uvicorn.run(
        "welth.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables in WELTH_DATABASE_URL."""
    from welth.db.engine import init_models

    asyncio.run(init_models())
    click.secho("Tables created.", fg="green")


# ---------------------------------------------------------------------------
# welth accounts
# ---------------------------------------------------------------------------


@main.group()
def accounts():
    """List and create accounts."""


@accounts.command("list")
@token_option
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_accounts(token: Optional[str], as_json: bool):
    """Show your accounts, newest first."""
    asyncio.run(_list_accounts_impl(token, as_json))


async def _list_accounts_impl(token: Optional[str], as_json: bool):
    async with _client(token) as c:
        r = await c.get("/api/accounts")
        if r.is_error:
            _fail(r)
        rows = r.json()

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No accounts yet.")
        return
    for a in rows:
        marker = click.style("*", fg="green") if a["is_default"] else " "
        click.echo(
            f"{marker} {a['id'][:8]}  {a['name']:20s}  {a['type']:8s}  "
            f"{_money(a['balance']):>14s}  {a['transaction_count']} txns"
        )


@accounts.command("create")
@click.argument("name")
@click.argument("balance")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(["CURRENT", "SAVINGS"]),
    default="CURRENT",
    show_default=True,
)
@click.option("--default", "is_default", is_flag=True, help="Make this the default account")
@token_option
def create_account(
    name: str,
    balance: str,
    account_type: str,
    is_default: bool,
    token: Optional[str],
):
    """Create an account with an opening BALANCE."""
    asyncio.run(_create_account_impl(name, balance, account_type, is_default, token))


async def _create_account_impl(name, balance, account_type, is_default, token):
    async with _client(token) as c:
        r = await c.post("/api/accounts", json={
            "name": name,
            "type": account_type,
            "balance": balance,
            "is_default": is_default,
        })
        if r.is_error:
            _fail(r)
        account = r.json()

    default = " (default)" if account["is_default"] else ""
    click.secho(
        f"Created {account['name']}{default}: {_money(account['balance'])}",
        fg="green",
    )


# ---------------------------------------------------------------------------
# welth dashboard
# ---------------------------------------------------------------------------


@main.command()
@token_option
@click.option("--limit", default=20, show_default=True, help="Rows to show")
def dashboard(token: Optional[str], limit: int):
    """Show your most recent transactions."""
    asyncio.run(_dashboard_impl(token, limit))


async def _dashboard_impl(token: Optional[str], limit: int):
    async with _client(token) as c:
        r = await c.get("/api/dashboard")
        if r.is_error:
            _fail(r)
        transactions = r.json()

    if not transactions:
        click.echo("No transactions yet.")
        return
    for t in transactions[:limit]:
        color = "green" if t["type"] == "INCOME" else "red"
        sign = "+" if t["type"] == "INCOME" else "-"
        amount = click.style(f"{sign}{_money(t['amount'])}", fg=color)
        click.echo(f"{t['date'][:10]}  {t['category']:15s}  {amount}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
