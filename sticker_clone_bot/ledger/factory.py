from __future__ import annotations

import redis.asyncio as redis


def build_redis(url: str, *, socket_timeout: float = 10.0) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        health_check_interval=30,
    )
