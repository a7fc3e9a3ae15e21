import json
import logging
from typing import Any

import redis
from fastapi.encoders import jsonable_encoder

from stockledger.core.config import settings


logger = logging.getLogger("stockledger.cache")

_client: redis.Redis | None = None

# Prefijo comun de las lecturas cacheadas del inventario; toda mutacion lo invalida
INVENTORY_PREFIX = "inventory:"


def get_redis() -> redis.Redis | None:
    global _client
    if not settings.cache_enabled:
        return None
    if _client is not None:
        return _client
    try:
        _client = redis.Redis.from_url(settings.resolved_redis_url, socket_connect_timeout=0.5)
        _client.ping()
        return _client
    except redis.RedisError:
        logger.warning("Redis no disponible, se continua sin cache")
        _client = None
        return None


def make_key(prefix: str, params: dict[str, Any]) -> str:
    parts = [prefix]
    for k in sorted(params.keys()):
        v = params[k]
        parts.append(f"{k}={v}")
    return "|".join(parts)


def cache_get(key: str) -> Any | None:
    client = get_redis()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except redis.RedisError:
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def cache_set(key: str, value: Any, ttl_seconds: int | None = None) -> None:
    client = get_redis()
    if client is None:
        return
    payload = json.dumps(jsonable_encoder(value))
    try:
        client.setex(key, ttl_seconds or settings.cache_ttl_seconds, payload)
    except redis.RedisError:
        logger.warning("No se pudo escribir la clave %s en cache", key)


def _generation_key(prefix: str) -> str:
    # Fuera del patron `prefix*` para que la invalidacion no lo borre
    return f"generation|{prefix}"


def cache_generation(prefix: str = INVENTORY_PREFIX) -> int:
    client = get_redis()
    if client is None:
        return 0
    try:
        raw = client.get(_generation_key(prefix))
    except redis.RedisError:
        return 0
    return int(raw) if raw else 0


def generation_key(prefix: str, name: str, params: dict[str, Any] | None = None) -> str:
    """Clave versionada por generacion.

    Se calcula antes de leer la base de datos: si una escritura invalida
    entre la lectura y el cache_set, el valor viejo queda bajo una
    generacion que ya no se consulta.
    """
    return make_key(f"{prefix}{name}", {**(params or {}), "gen": cache_generation(prefix)})


def cache_invalidate_prefix(prefix: str = INVENTORY_PREFIX) -> None:
    client = get_redis()
    if client is None:
        return
    pattern = f"{prefix}*"
    try:
        client.incr(_generation_key(prefix))
        for key in client.scan_iter(match=pattern, count=200):
            client.delete(key)
    except redis.RedisError:
        logger.warning("No se pudo invalidar el prefijo %s en cache", prefix)
