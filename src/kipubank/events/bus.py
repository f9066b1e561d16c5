from __future__ import annotations

import json
import os
import logging

try:
    import redis
except ImportError:  # pragma: no cover
    redis = None  # type: ignore

from .schema import EventEnvelope
from .metrics import get_events_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "kipubank.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "kipubank.dlq")

log = logging.getLogger("kipubank.events")


def _get_redis():
    if redis is None:
        raise RuntimeError("redis client not available")
    return redis.Redis.from_url(os.getenv("REDIS_URL", "redis://localhost:6379/0"), decode_responses=True)


def encode(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Publish an event to Redis Streams and log a single-line JSON for Loki.

    Events are only published after the ledger has committed, so a broker
    outage must not surface to the caller: failures fall back to the DLQ and
    then to the log line alone.
    """
    get_events_total().labels(env.event.event_type).inc()

    line = encode(env)
    try:
        r = _get_redis()
        r.xadd(STREAM_EVENTS, {"json": line})
    except Exception as e:
        log.debug("event stream unavailable (%s), trying DLQ", e)
        try:
            r = _get_redis()
            r.xadd(STREAM_DLQ, {"json": line})
        except Exception as dlq_err:
            log.debug("DLQ unavailable: %s", dlq_err)
    # Always log for Loki ingestion
    log.info(line)


def ensure_group(group: str) -> None:
    r = _get_redis()
    try:
        r.xgroup_create(name=STREAM_EVENTS, groupname=group, id="$", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def consume(group: str, consumer: str, block_ms: int = 15000):
    """Generator yielding (id, json_str) from Redis Stream consumer group.

    Yields None when a read times out. Caller is responsible for XACK.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {STREAM_EVENTS: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        # resp is list[(stream, [(id, {field:value}), ...])]
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, fields.get("json", ""))
