#!/usr/bin/env python3
"""Call the route tool and read the health/metrics resources over Streamable HTTP.

Start the server first:

    valhalla-mcp --transport http --port 3000
"""

import asyncio
import json
from typing import Any, Tuple

import click
import httpx

PROTOCOL_VERSION = "2025-06-18"


async def shttp_post(
    client: httpx.AsyncClient, url: str, payload: dict, *, headers: dict | None = None
) -> Tuple[str | None, Any | None]:
    async with client.stream("POST", url, json=payload, headers=headers) as r:
        r.raise_for_status()
        sid = r.headers.get("Mcp-Session-Id") or r.headers.get("mcp-session-id")
        event_obj = None
        async for line in r.aiter_lines():
            if line.startswith("data:"):
                data = line[5:].strip()
                if data:
                    event_obj = json.loads(data)
                    break
        return sid, event_obj


def show(label: str, event: Any) -> None:
    result = (event or {}).get("result") or {}
    for block in result.get("content", []) + result.get("contents", []):
        text = block.get("text")
        if text is not None:
            print(f"{label}:", json.dumps(json.loads(text), indent=2))
            return
    print(f"{label}:", event)


async def run(base: str, origin: Tuple[float, float], destination: Tuple[float, float], mode: str) -> None:
    default_headers = {
        "Accept": "application/json, text/event-stream",
        "Content-Type": "application/json",
        "MCP-Protocol-Version": PROTOCOL_VERSION,
    }
    async with httpx.AsyncClient(timeout=60.0, follow_redirects=True, headers=default_headers) as client:
        init = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "route-client", "version": "0.1.0"},
            },
        }
        sid, _ = await shttp_post(client, base, init)
        print("session id:", sid)
        headers = {"Mcp-Session-Id": sid} if sid else {}
        await shttp_post(client, base, {"jsonrpc": "2.0", "method": "notifications/initialized"}, headers=headers)

        call = {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {
                "name": "route",
                "arguments": {
                    "origin": {"lat": origin[0], "lon": origin[1]},
                    "destination": {"lat": destination[0], "lon": destination[1]},
                    "mode": mode,
                },
            },
        }
        # The second call is served from the route cache.
        for attempt in ("route", "route (cached)"):
            _, ev = await shttp_post(client, base, call, headers=headers)
            show(attempt, ev)

        for request_id, uri in ((3, "health://status"), (4, "metrics://summary")):
            read = {"jsonrpc": "2.0", "id": request_id, "method": "resources/read", "params": {"uri": uri}}
            _, ev = await shttp_post(client, base, read, headers=headers)
            show(uri, ev)


@click.command()
@click.option("--base", default="http://127.0.0.1:3000/mcp/", help="Base URL of MCP endpoint (must end with /)")
@click.option("--origin", type=(float, float), default=(43.7384, 7.4246), help="Origin LAT LON")
@click.option("--destination", type=(float, float), default=(43.7396, 7.4263), help="Destination LAT LON")
@click.option("--mode", default="auto", help="Costing model (auto, bicycle, pedestrian, ...)")
def main(base: str, origin: Tuple[float, float], destination: Tuple[float, float], mode: str) -> None:
    asyncio.run(run(base, origin, destination, mode))


if __name__ == "__main__":
    main()
