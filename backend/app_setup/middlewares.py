"""
Middlewares transverses de l'API commandes/paiements.

Ordre d'ajout (le dernier ajouté s'exécute en premier):
CORS/hosts/proxy, puis CSRF admin, puis no-cache, et enfin la redirection HTTPS.
Les webhooks prestataires n'ont ni cookie ni jeton CSRF: ils sont authentifiés par signature.
"""
import secrets

from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from backend.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS
from backend.utils.security import COOKIE_NAME as ADMIN_COOKIE_NAME

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_EXEMPT_PATHS = frozenset({
    "/api/v1/payments/webhook/stripe",
    "/api/v1/payments/webhook",
    "/api/v1/auth/admin/login",
})
MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")
NO_CACHE_PREFIXES = ("/admin", "/api/v1/orders")


def needs_csrf_check(request: Request) -> bool:
    """Mutation portée par le cookie admin seul (un Bearer n'est pas envoyé automatiquement par le navigateur)."""
    if request.method.upper() not in MUTATING_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
        return False
    return bool(request.cookies.get(ADMIN_COOKIE_NAME)) and not request.headers.get("Authorization")


def register_basic_middlewares(app: FastAPI) -> None:
    hosts = list(ALLOWED_HOSTS)
    if "*" in CORS_ORIGINS:
        hosts.append("*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        # credentials interdits avec l'origine joker
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=hosts)
    # X-Forwarded-* posés par le reverse proxy
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_csrf_middleware(app: FastAPI) -> None:
    """
    Double-submit cookie: l'en-tête X-CSRF-Token doit égaler le cookie csrf_token.
    Le cookie est déposé (lisible par le front) sur toute réponse s'il manque.
    """
    @app.middleware("http")
    async def csrf_protect(request: Request, call_next):
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)
        if needs_csrf_check(request):
            token = request.headers.get(CSRF_HEADER_NAME, "")
            if not csrf_cookie or not token or not secrets.compare_digest(token, csrf_cookie):
                return JSONResponse(status_code=403, content={"detail": "CSRF verification failed"})

        response = await call_next(request)
        if not csrf_cookie:
            response.set_cookie(
                key=CSRF_COOKIE_NAME,
                value=secrets.token_urlsafe(32),
                httponly=False,
                secure=COOKIE_SECURE,
                samesite="Lax",
                max_age=60 * 60,
                path="/",
            )
        return response


def register_no_cache_middleware(app: FastAPI) -> None:
    """Back-office et statut de commande: jamais servis depuis un cache."""
    @app.middleware("http")
    async def no_cache_for_protected(request: Request, call_next):
        response = await call_next(request)
        if request.method == "GET" and request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


def register_force_https_middleware(app: FastAPI) -> None:
    """Redirige en 301 vers https quand le proxy signale x-forwarded-proto=http."""
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if request.headers.get("x-forwarded-proto") == "http":
            return RedirectResponse(str(request.url.replace(scheme="https")), status_code=301)
        return await call_next(request)
