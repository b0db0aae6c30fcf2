"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).
"""

from dataclasses import dataclass
from decimal import Decimal


class Event:
    """Classe de base pour tous les events du domaine."""
    pass


@dataclass(frozen=True)
class CommandeCréée(Event):
    référence: str


@dataclass(frozen=True)
class CommandeSoumise(Event):
    """Une commande a été soumise, avec ou sans quantités manquantes."""

    référence: str
    statut: str
    prix_total: Decimal


@dataclass(frozen=True)
class QuantitéManquanteSignalée(Event):
    """Une ligne a été soumise alors que le stock ne la couvre pas."""

    référence: str
    article_id: str
    depot_id: str
    libellé_article: str
    libellé_depot: str
    quantité_manquante_kg: Decimal


@dataclass(frozen=True)
class AllocationsEnregistrées(Event):
    """
    Les cargos d'une commande ont été remplacés.

    `allocations` : tuples (conteneur, article, dépôt, kg, cartons).
    """

    référence: str
    allocations: tuple
