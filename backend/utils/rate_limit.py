from typing import Dict, Any
from fastapi import Request, HTTPException
import hashlib
import logging
import os
import time

from backend.auth.service import get_admin_from_token

logger = logging.getLogger(__name__)

def client_key(req: Request) -> str:
    # Jeton admin vérifié (hashé) sinon IP: un Bearer inventé ne crée pas de nouveau compteur
    auth = req.headers.get("Authorization", "")
    path = req.url.path
    token = auth[7:].strip() if auth.startswith("Bearer ") else ""
    if token and get_admin_from_token(token):
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"admin:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request):
        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = client_key(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        # Respecter le flag global
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        # fastapi-limiter initialisé dans le lifespan (Redis)
        from fastapi_limiter import FastAPILimiter
        if getattr(FastAPILimiter, "redis", None) is None:
            return
        from fastapi_limiter.depends import RateLimiter
        async def _identifier(req: Request) -> str:
            return client_key(req)
        try:
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible en cours de route: pas de 429, requête servie
            logger.warning("rate limit backend error path=%s", request.url.path, exc_info=True)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    from fastapi_limiter import FastAPILimiter
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    backend = "redis" if limiter_ready else None
    if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
        backend = "memory"

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }

    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if backend == "redis" and redis_url:
        from urllib.parse import urlparse
        p = urlparse(redis_url)
        info["redis"] = {
            "scheme": p.scheme,
            "host": p.hostname,
            "port": p.port,
        }

    return info
