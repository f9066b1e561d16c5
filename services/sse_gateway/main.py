from __future__ import annotations

import os
import json
from typing import Any, AsyncGenerator, Dict, Optional, List
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
STREAM = os.getenv("EVENTS_STREAM", "kipubank.events")
GROUP = os.getenv("SSE_GROUP", "sse_gateway")

try:
    import redis.asyncio as aioredis
except ImportError:  # pragma: no cover
    aioredis = None  # type: ignore

app = FastAPI(title="KipuBank SSE Gateway")


async def ensure_group(r):
    try:
        await r.xgroup_create(name=STREAM, groupname=GROUP, id="$", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def _split(param: Optional[str]) -> Optional[List[str]]:
    if not param:
        return None
    return [p.strip() for p in param.split(",") if p.strip()] or None


def _event_of(js: str) -> Optional[Dict[str, Any]]:
    """Return the event object of a stream entry, or None if it is malformed."""
    try:
        data = json.loads(js)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    ev = data.get("event")
    return ev if isinstance(ev, dict) else None


def _matches(ev: Dict[str, Any], types: Optional[List[str]], accounts: Optional[List[str]]) -> bool:
    ok_t = True if not types else ev.get("event_type") in types
    ok_a = True if not accounts else ev.get("account") in accounts
    return ok_t and ok_a


def _match_filters(js: str, types: Optional[List[str]], accounts: Optional[List[str]]) -> bool:
    ev = _event_of(js)
    return ev is not None and _matches(ev, types, accounts)


async def event_stream(types: Optional[List[str]], accounts: Optional[List[str]]) -> AsyncGenerator[bytes, None]:
    if aioredis is None:  # pragma: no cover
        yield b": redis async client missing\n\n"
        return
    r = aioredis.from_url(REDIS_URL, decode_responses=True)
    await ensure_group(r)
    consumer = os.getenv("SSE_CONSUMER", os.uname().nodename)
    try:
        while True:
            resp = await r.xreadgroup(GROUP, consumer, {STREAM: ">"}, count=100, block=15000)
            if resp:
                for _stream, entries in resp:
                    for msg_id, fields in entries:
                        js = fields.get("json", "")
                        ev = _event_of(js)
                        if ev is not None and _matches(ev, types, accounts):
                            name = ev.get("event_type") or "message"
                            yield f"event: {name}\ndata: {js}\n\n".encode()
                        await r.xack(STREAM, GROUP, msg_id)
            else:
                yield b": keep-alive\n\n"
    finally:
        await r.aclose()


@app.get("/events")
async def sse(request: Request, types: Optional[str] = None, accounts: Optional[str] = None):
    """Stream vault events, optionally filtered by comma-separated types/accounts."""
    generator = event_stream(_split(types), _split(accounts))
    return StreamingResponse(generator, media_type="text/event-stream")
