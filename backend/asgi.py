"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: uvicorn workers) importe `backend.asgi:app`.
- Toute la configuration (routers, middlewares, handlers, lifespan) est centralisée
  dans backend.app; ce fichier ne fait qu'exposer l'instance `app`.
"""

from backend.app import app

__all__ = ["app"]
