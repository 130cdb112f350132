# backend.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, PayPal, Resend, Discord)
- Sécurité: identifiants admin, cookies, CORS/hosts
- Fournit les chemins de redirection post-paiement (succès, en attente, échec)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clé service-role
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# Back-office: identifiant + hash bcrypt du mot de passe (jamais en clair)
ADMIN_USERNAME = _clean_env(os.getenv("ADMIN_USERNAME") or "")
ADMIN_PASSWORD_HASH = _clean_env(os.getenv("ADMIN_PASSWORD_HASH") or "")
# Clé HS256 des jetons admin (vide => connexion admin refusée, 500)
ADMIN_TOKEN_SECRET = _clean_env(os.getenv("ADMIN_TOKEN_SECRET") or "")
ADMIN_TOKEN_TTL_SECONDS = int(os.getenv("ADMIN_TOKEN_TTL_SECONDS", str(24 * 60 * 60)))

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# URL publique du site (pages de retour après paiement)
SITE_URL = _clean_env(os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "http://localhost:3000").rstrip("/")
# URL publique de l'API (retour navigateur depuis Stripe/PayPal)
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")

# Pages de résultat du checkout (côté front)
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/success")
CHECKOUT_PENDING_PATH = os.getenv("CHECKOUT_PENDING_PATH", "/success?pending=1")
CHECKOUT_FAILURE_PATH = os.getenv("CHECKOUT_FAILURE_PATH", "/#order")

# Stripe: clé secrète et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_PRODUCT_NAME = os.getenv("STRIPE_PRODUCT_NAME", "Personalized Birthday Video")

# PayPal: identifiants REST et environnement (sandbox | live)
PAYPAL_CLIENT_ID = _clean_env(os.getenv("PAYPAL_CLIENT_ID") or "")
PAYPAL_CLIENT_SECRET = _clean_env(os.getenv("PAYPAL_CLIENT_SECRET") or "")
PAYPAL_ENV = "live" if _clean_env(os.getenv("PAYPAL_ENV") or "sandbox").lower() == "live" else "sandbox"

# Notifications: email transactionnel (Resend) et alerte interne (webhook Discord)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
RESEND_FROM_EMAIL = _clean_env(os.getenv("RESEND_FROM_EMAIL") or "")
DISCORD_WEBHOOK_URL = _clean_env(os.getenv("DISCORD_WEBHOOK_URL") or "")
NOTIFY_BRAND_NAME = os.getenv("NOTIFY_BRAND_NAME", "AfroBirthday")

# Timeout des appels HTTP sortants (PayPal, Resend, Discord)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
