"""Tier 2 fixtures: local aiohttp server standing in for the issuance API."""

from __future__ import annotations

import pytest
from aiohttp import web

ISSUER_PORT = 9299


class IssuerState:
    """What the fake issuer received, and how it should answer next."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.status = 200
        self.body: dict | str = {"credentialId": "cred-0001"}

    def respond(self, status: int = 200, body: dict | str | None = None) -> None:
        self.status = status
        if body is not None:
            self.body = body


@pytest.fixture
async def issuer_server():
    """Local HTTP server at /credentials/issue.

    Returns (base_url, state). Every request is recorded in state.requests
    as {"path", "authorization", "json"}.
    """
    state = IssuerState()

    async def handle_issue(request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        state.requests.append({
            "path": request.path,
            "authorization": request.headers.get("Authorization", ""),
            "json": payload,
        })
        if isinstance(state.body, str):
            return web.Response(status=state.status, text=state.body)
        return web.json_response(state.body, status=state.status)

    app = web.Application()
    app.router.add_post("/credentials/issue", handle_issue)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", ISSUER_PORT)
    await site.start()
    yield f"http://127.0.0.1:{ISSUER_PORT}", state
    await runner.cleanup()
