import logging
import time
from typing import Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

PENDING = "metrics:bulletins:pending"
READY = "metrics:bulletins:ready"
FAILED = "metrics:bulletins:failed"
PENDING_Z = "metrics:bulletins:pending_z"
TIMING = "metrics:bulletins:timing"
START = "metrics:bulletins:start"


def _client():
    """
    Redis client for issuance counters. Defaults to CELERY_BROKER_URL when METRICS_REDIS_URL is unset.
    """
    url = getattr(settings, "METRICS_REDIS_URL", None) or getattr(settings, "CELERY_BROKER_URL", "redis://localhost:6379/0")
    return redis.Redis.from_url(url)


def _safe_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _ensure_start(cli):
    if not cli.exists(START):
        cli.set(START, time.time())


def reset_metrics():
    cli = _client()
    pipe = cli.pipeline()
    pipe.delete(PENDING, READY, FAILED, PENDING_Z, TIMING)
    pipe.set(START, time.time())
    pipe.execute()


def mark_pending(bulletin_id: int):
    """
    Increase pending counters and timestamp the bulletin for stale detection.
    Counters are best effort: an unreachable Redis never blocks issuance.
    """
    try:
        cli = _client()
        _ensure_start(cli)
        pipe = cli.pipeline()
        pipe.incr(PENDING)
        pipe.zadd(PENDING_Z, {bulletin_id: time.time()})
        pipe.execute()
    except redis.RedisError as exc:
        logger.warning("Metrics unavailable (pending %s): %s", bulletin_id, exc)


def mark_ready(bulletin_id: int, duration_seconds: float):
    try:
        cli = _client()
        _ensure_start(cli)
        pipe = cli.pipeline()
        pipe.decr(PENDING)
        pipe.incr(READY)
        pipe.zrem(PENDING_Z, bulletin_id)
        pipe.hincrbyfloat(TIMING, "sum", max(duration_seconds, 0))
        pipe.hincrby(TIMING, "count", 1)
        pipe.execute()
    except redis.RedisError as exc:
        logger.warning("Metrics unavailable (ready %s): %s", bulletin_id, exc)


def mark_failed(bulletin_id: int):
    try:
        cli = _client()
        _ensure_start(cli)
        pipe = cli.pipeline()
        pipe.decr(PENDING)
        pipe.incr(FAILED)
        pipe.zrem(PENDING_Z, bulletin_id)
        pipe.execute()
    except redis.RedisError as exc:
        logger.warning("Metrics unavailable (failed %s): %s", bulletin_id, exc)


def get_metrics(timeout_seconds: int = 120) -> Optional[dict]:
    """
    Counters and timings from Redis. Returns None if Redis is unreachable.
    """
    try:
        cli = _client()
        now = time.time()
        pending = _safe_int(cli.get(PENDING))
        ready = _safe_int(cli.get(READY))
        failed = _safe_int(cli.get(FAILED))
        stale = cli.zcount(PENDING_Z, 0, now - timeout_seconds)
        start_val = cli.get(START)
        started_at = float(start_val) if start_val else None
        timing = cli.hgetall(TIMING)
    except redis.RedisError as exc:
        logger.warning("Metrics unavailable: %s", exc)
        return None
    total = float(timing.get(b"sum", 0) or 0)
    count = _safe_int(timing.get(b"count", 0) or 0)
    elapsed = round(now - started_at, 2) if started_at else None
    return {
        "pending": pending,
        "ready": ready,
        "failed": failed,
        "stale_pending": stale,
        "avg_seconds": round(total / count, 2) if count else None,
        "total_seconds": round(total, 2),
        "elapsed_seconds": elapsed,
        "bulletins_per_sec": round(ready / elapsed, 2) if elapsed and elapsed > 0 else None,
    }
