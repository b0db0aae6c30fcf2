"""
Adapter vers l'inventaire.

Le stock commercialisable est tenu par un autre système : on ne fait
que le lire, sous forme d'instantané, pour évaluer une commande.
"""

from __future__ import annotations

import abc

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargaison.adapters import orm
from cargaison.domain.stock import EntréeStock, RegistreStock


class AbstractStock(abc.ABC):
    """Interface abstraite de lecture du stock."""

    @abc.abstractmethod
    def instantané(self) -> RegistreStock:
        raise NotImplementedError


class SqlAlchemyStock(AbstractStock):
    """Lit la table `stocks` alimentée par l'inventaire."""

    def __init__(self, session: Session):
        self.session = session

    def instantané(self) -> RegistreStock:
        lignes = self.session.execute(
            select(
                orm.stocks.c.article_id,
                orm.stocks.c.depot_id,
                orm.stocks.c.quantite_commercialisable_kg,
            )
        )
        return RegistreStock(
            EntréeStock.créer(article_id, depot_id, quantité)
            for article_id, depot_id, quantité in lignes
        )
