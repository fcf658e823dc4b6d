"""CLI tests: commands run against a mocked API transport.

Learn: `_client` is swapped for one backed by httpx.MockTransport, so
the commands' request building and output formatting are exercised
without a server.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from welth.cli import main as cli


@pytest.fixture
def api(monkeypatch):
    """Route CLI requests to a handler; returns the list of seen requests."""
    seen = []
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = responses[(request.method, request.url.path)]
        return httpx.Response(status, json=body)

    def fake_client(token):
        return httpx.AsyncClient(
            base_url="http://welth.test",
            headers={"Authorization": f"Bearer {token}", "User-Agent": cli.USER_AGENT},
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    return seen, responses


def test_accounts_list(api):
    seen, responses = api
    responses[("GET", "/api/accounts")] = (200, [
        {"id": "7f9c1e2a-0000", "name": "Savings", "type": "SAVINGS",
         "balance": 2500.0, "is_default": False, "transaction_count": 0},
        {"id": "1a2b3c4d-0000", "name": "Checking", "type": "CURRENT",
         "balance": 1234.56, "is_default": True, "transaction_count": 3},
    ])

    result = CliRunner().invoke(cli.main, ["accounts", "list", "--token", "tok"])
    assert result.exit_code == 0, result.output
    assert "Savings" in result.output
    assert "1,234.56" in result.output
    assert seen[0].headers["Authorization"] == "Bearer tok"


def test_accounts_create_sends_payload(api):
    seen, responses = api
    responses[("POST", "/api/accounts")] = (201, {
        "id": "1a2b", "name": "Savings", "type": "SAVINGS", "balance": 2500.0,
        "is_default": True,
    })

    result = CliRunner().invoke(
        cli.main,
        ["accounts", "create", "Savings", "2500", "--type", "SAVINGS", "--default"],
        env={"WELTH_SESSION_TOKEN": "tok"},
    )
    assert result.exit_code == 0, result.output
    assert "Created Savings (default): 2,500.00" in result.output
    assert json.loads(seen[0].content) == {
        "name": "Savings", "type": "SAVINGS", "balance": "2500", "is_default": True,
    }


def test_accounts_create_rate_limited(api):
    _, responses = api
    responses[("POST", "/api/accounts")] = (429, {"detail": {
        "kind": "RATE_LIMITED",
        "message": "Too many requests. Please try again later.",
        "remaining": 0,
        "reset": 1800,
    }})

    result = CliRunner().invoke(
        cli.main, ["accounts", "create", "X", "1", "--token", "tok"]
    )
    assert result.exit_code == 1
    assert "RATE_LIMITED" in result.output
    assert "retry in 1800s" in result.output


def test_dashboard_lists_transactions(api):
    _, responses = api
    responses[("GET", "/api/dashboard")] = (200, [
        {"type": "INCOME", "amount": 3000.0, "date": "2026-10-01T00:00:00", "category": "salary"},
        {"type": "EXPENSE", "amount": 42.5, "date": "2026-09-30T00:00:00", "category": "food"},
    ])

    result = CliRunner().invoke(cli.main, ["dashboard", "--token", "tok"])
    assert result.exit_code == 0, result.output
    assert "+3,000.00" in result.output
    assert "-42.50" in result.output


def test_api_commands_need_token(monkeypatch):
    monkeypatch.delenv("WELTH_SESSION_TOKEN", raising=False)
    result = CliRunner().invoke(cli.main, ["accounts", "list"])
    assert result.exit_code == 1
    assert "--token required" in result.output
