"""
Registre de stock en lecture seule.

Le stock n'appartient pas à ce domaine : il est fourni par
l'inventaire sous forme d'instantané et n'est jamais modifié ici.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from cargaison.domain.conversions import Nombre, en_décimal


@dataclass(frozen=True)
class EntréeStock:
    """Quantité commercialisable d'un article dans un dépôt."""

    article_id: str
    depot_id: str
    quantité_disponible_kg: Decimal

    @classmethod
    def créer(cls, article_id: str, depot_id: str, quantité: Nombre) -> EntréeStock:
        return cls(article_id, depot_id, en_décimal(quantité))


class RegistreStock:
    """Vue (article, dépôt) -> kg disponibles, construite sur un instantané."""

    def __init__(self, entrées: Iterable[EntréeStock] = ()):
        self._disponible: dict[tuple[str, str], Decimal] = {}
        for entrée in entrées:
            clé = (entrée.article_id, entrée.depot_id)
            self._disponible[clé] = self._disponible.get(clé, Decimal("0")) + entrée.quantité_disponible_kg

    def __len__(self) -> int:
        return len(self._disponible)

    def disponible(self, article_id: str, depot_id: str) -> Decimal:
        """Quantité disponible, 0 si le couple est absent de l'inventaire."""
        return self._disponible.get((article_id, depot_id), Decimal("0"))
