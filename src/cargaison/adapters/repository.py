"""
Repository des commandes.

Les commandes sont retrouvées par leur référence métier. Le
repository garde la trace (`seen`) de toutes les commandes ajoutées
ou chargées, pour que le Unit of Work puisse collecter leurs
événements après le traitement d'une command.
"""

from __future__ import annotations

import abc

from sqlalchemy.orm import Session

from cargaison.domain import model


class AbstractRepository(abc.ABC):
    """
    `add` et `get` alimentent `seen` ; les sous-classes ne fournissent
    que l'accès aux données (`_add`, `_get`).
    """

    seen: set[model.Commande]

    def __init__(self) -> None:
        self.seen: set[model.Commande] = set()

    def add(self, commande: model.Commande) -> None:
        self._add(commande)
        self.seen.add(commande)

    def get(self, référence: str) -> model.Commande | None:
        """Commande de cette référence, ou None si elle n'existe pas."""
        commande = self._get(référence)
        if commande is not None:
            self.seen.add(commande)
        return commande

    @abc.abstractmethod
    def _add(self, commande: model.Commande) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, référence: str) -> model.Commande | None:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, commande: model.Commande) -> None:
        self.session.add(commande)

    def _get(self, référence: str) -> model.Commande | None:
        return (
            self.session.query(model.Commande)
            .filter_by(référence=référence)
            .one_or_none()
        )
