"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Journalise les intégrations configurées (Stripe, PayPal, Resend, Discord) au démarrage.
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
"""
import os
import logging
import redis.asyncio as aioredis
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from backend import config


def _log_integrations(logger: logging.Logger) -> None:
    logger.info(
        "Integrations: supabase=%s stripe=%s stripe_webhook=%s paypal=%s(%s) resend=%s discord=%s",
        bool(config.SUPABASE_URL and config.SUPABASE_SERVICE_KEY),
        bool(config.STRIPE_SECRET_KEY),
        bool(config.STRIPE_WEBHOOK_SECRET),
        bool(config.PAYPAL_CLIENT_ID and config.PAYPAL_CLIENT_SECRET),
        config.PAYPAL_ENV,
        bool(config.RESEND_API_KEY and config.RESEND_FROM_EMAIL),
        bool(config.DISCORD_WEBHOOK_URL),
    )
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET manquant: tous les webhooks Stripe seront rejetés (400)")


async def _init_rate_limiter(app: FastAPI, logger: logging.Logger) -> None:
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return
    try:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            from fakeredis.aioredis import FakeRedis  # tests only
            r = FakeRedis(decode_responses=True)
        else:
            redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
            r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)

        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            app.state.rate_limit_enabled = False
            logger.warning("Rate limiting disabled due to init error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le rate limiting et gère les fallbacks.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    - Fermeture de la connexion Redis à l'arrêt.
    """
    logger = logging.getLogger("uvicorn.error")
    _log_integrations(logger)
    await _init_rate_limiter(app, logger)
    yield
    if getattr(FastAPILimiter, "redis", None) is not None:
        try:
            await FastAPILimiter.close()
        except Exception as e:
            logger.warning("Rate limiter close failed: %s", e)
