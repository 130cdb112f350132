"""
Accès aux données pour la feature 'pricing' (table 'settings' clé/valeur).
Contrairement aux autres lectures best-effort, une erreur de lecture est propagée:
un montant facturé ne doit jamais être calculé sur une configuration illisible.
"""
from typing import Dict, Iterable
import logging
import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module backend.pricing.repository
def fetch_settings(keys: Iterable[str]) -> Dict[str, str]:
    """
    Retourne {key: value} pour les clés demandées (clés absentes => non présentes dans le dict).
    - Lève l'exception d'origine si Supabase est indisponible.
    """
    key_list = [str(k) for k in keys]
    if not key_list:
        return {}
    res = (
        supabase_client.get_service_supabase()
        .table("settings")
        .select("key, value")
        .in_("key", key_list)
        .execute()
    )
    return {str(row.get("key")): str(row.get("value")) for row in (res.data or []) if row.get("key")}

def upsert_settings(values: Dict[str, str]) -> None:
    """
    Écrit plusieurs paramètres (insert ou update sur la clé primaire 'key').
    """
    rows = [{"key": k, "value": v} for k, v in values.items()]
    if not rows:
        return
    try:
        supabase_client.get_service_supabase().table("settings").upsert(rows, on_conflict="key").execute()
    except Exception:
        logger.exception("pricing.repository.upsert_settings failed keys=%s", list(values.keys()))
        raise
