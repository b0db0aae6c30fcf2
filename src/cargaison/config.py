"""
Configuration lue dans l'environnement, avec des valeurs par défaut
utilisables en développement.
"""

import os


def get_db_uri() -> str:
    return os.environ.get("CARGAISON_DB_URI", "sqlite:///cargaison.db")


def get_smtp_host_and_port() -> tuple[str, int]:
    host = os.environ.get("SMTP_HOST", "localhost")
    port = int(os.environ.get("SMTP_PORT", "587"))
    return host, port


def get_destinataire_stock() -> str:
    """Adresse prévenue quand une commande est soumise avec des quantités manquantes."""
    return os.environ.get("NOTIFICATION_STOCK_DESTINATAIRE", "stock@example.com")


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
