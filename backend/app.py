# module backend.app
import logging
import os

from fastapi import FastAPI

from backend.app_setup.exceptions import register_exception_handlers
from backend.app_setup.lifespan import lifespan as app_lifespan
from backend.app_setup.middlewares import (
    register_basic_middlewares,
    register_csrf_middleware,
    register_force_https_middleware,
    register_no_cache_middleware,
)
from backend.app_setup.routers import register_routers
from backend.app_setup.security import register_security_middleware

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """
    Crée et configure l'instance FastAPI de l'application.
    Étapes et ordre (important pour la sécurité et le comportement):
      1) register_basic_middlewares: CORS, TrustedHost, ProxyHeaders.
      2) register_security_middleware: en-têtes de sécurité + CSP.
      3) register_csrf_middleware: double-submit cookie pour l'admin via cookie.
      4) register_no_cache_middleware: pas de cache sous /admin et sur les statuts de commande.
      5) register_exception_handlers: erreurs métier -> JSON (404/409/400/502/503).
      6) register_routers: enregistre tous les routers (API, admin, health).
      7) register_force_https_middleware: ajouté en dernier pour s'exécuter en premier.
    """
    app = FastAPI(title="AfroBirthday Orders API", lifespan=app_lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_csrf_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    # Ajouter le middleware HTTPS en dernier pour qu'il s'exécute en premier
    register_force_https_middleware(app)
    return app

# App globale
app = create_app()
