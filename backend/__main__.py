"""
Point d'entrée principal pour le backend FastAPI.

Usage:
    python -m backend

Lance uvicorn sur backend.asgi:app et lit quelques variables d'environnement:
- HOST / PORT: adresse d'écoute (par défaut 0.0.0.0:8000)
- UVICORN_RELOAD: active le reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: niveau de logs uvicorn (ex: "info", "debug")
- WEB_CONCURRENCY: nombre de workers (ignoré avec reload)
"""
import os
import uvicorn

if __name__ == "__main__":
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    uvicorn.run(
        "backend.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=reload_flag,
        workers=None if reload_flag else int(os.environ.get("WEB_CONCURRENCY", 1)),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        proxy_headers=True,
    )
