from typing import List

from fastapi import FastAPI
from backend.config import SUPABASE_URL, COOKIE_SECURE, SITE_URL

# API JSON + docs Swagger uniquement: aucune page HTML servie par le backend
BASE_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}
HSTS_VALUE = "max-age=63072000; includeSubDomains; preload"
SWAGGER_CDNS = ["https://cdn.jsdelivr.net", "https://unpkg.com"]


def build_csp() -> str:
    """connect-src: l'API elle-même, Supabase et le site vitrine."""
    connect: List[str] = ["'self'"]
    for origin in (SUPABASE_URL, SITE_URL):
        if origin:
            connect.append(origin.rstrip("/"))
    cdns = " ".join(SWAGGER_CDNS)
    return "; ".join([
        "default-src 'self'",
        "base-uri 'self'",
        "object-src 'none'",
        "frame-ancestors 'none'",
        "img-src 'self' data: https://fastapi.tiangolo.com",
        f"style-src 'self' 'unsafe-inline' {cdns}",
        f"script-src 'self' 'unsafe-inline' {cdns}",
        f"connect-src {' '.join(connect)}",
    ])


def register_security_middleware(app: FastAPI) -> None:
    """
    En-têtes de sécurité sur toutes les réponses.
    HSTS seulement si COOKIE_SECURE (déploiement HTTPS).
    """
    csp = build_csp()

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        for name, value in BASE_HEADERS.items():
            response.headers.setdefault(name, value)
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", HSTS_VALUE)
        response.headers["Content-Security-Policy"] = csp
        return response
