"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


class Command:
    """Classe de base pour toutes les commands."""
    pass


@dataclass(frozen=True)
class CréerCommande(Command):
    """
    Création d'une commande.

    `données` suit le format d'entrée des commandes (voir
    adapters/ingestion.py) : en-tête, `items` et `cargo`.
    """

    données: dict = field(hash=False)


@dataclass(frozen=True)
class AjouterLigne(Command):
    référence: str
    article_id: str
    depot_id: str
    quantité_kg: Any = 0
    prix_unitaire: Any = 0
    kg_par_carton: Any = None
    libellé_article: Optional[str] = None
    libellé_depot: Optional[str] = None


@dataclass(frozen=True)
class ModifierLigne(Command):
    """Les champs à None sont laissés inchangés."""

    référence: str
    index: int
    article_id: Optional[str] = None
    depot_id: Optional[str] = None
    quantité_kg: Any = None
    prix_unitaire: Any = None
    kg_par_carton: Any = None
    libellé_article: Optional[str] = None
    libellé_depot: Optional[str] = None


@dataclass(frozen=True)
class SupprimerLigne(Command):
    référence: str
    index: int


@dataclass(frozen=True)
class SoumettreCommande(Command):
    référence: str


@dataclass(frozen=True)
class ConfirmerSoumission(Command):
    """L'utilisateur accepte de soumettre malgré un stock insuffisant."""

    référence: str


@dataclass(frozen=True)
class AnnulerSoumission(Command):
    référence: str


@dataclass(frozen=True)
class EnregistrerAllocations(Command):
    """
    Enregistre l'instantané complet des cargos d'une commande.

    `cargos` suit le format d'entrée `cargo` (chaînes ou dictionnaires).
    """

    référence: str
    cargos: list = field(hash=False)


@dataclass(frozen=True)
class EnregistrerOptionsCargo(Command):
    référence: str
    no_conteneur: str = ""
    no_plomb: str = ""
    numéro_lot: str = ""
    date_production: str = "MAY 2025"
    date_expiration: str = "NOVEMBER 2026"


@dataclass(frozen=True)
class MarquerLivrée(Command):
    référence: str
