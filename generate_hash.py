"""
Génère la valeur de ADMIN_PASSWORD_HASH (bcrypt) pour le fichier .env.

Usage:
    python generate_hash.py            # saisie masquée
    python generate_hash.py "motdepasse"
"""
import getpass
import sys

from backend.auth.service import hash_password

if __name__ == "__main__":
    secret = sys.argv[1] if len(sys.argv) > 1 else getpass.getpass("Mot de passe admin: ")
    if not secret:
        sys.exit("Mot de passe vide")
    print(f"ADMIN_PASSWORD_HASH={hash_password(secret)}")
