"""
Unit of Work des commandes.

Une transaction couvre une commande, la lecture du stock et les
options de cargo de la même session. Sans `commit()` explicite,
tout est annulé à la sortie du bloc `with uow:`.

Le UoW remonte aussi au message bus les événements émis par les
commandes chargées pendant la transaction.
"""

from __future__ import annotations

import abc
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from cargaison import config
from cargaison.adapters import options, repository, stock
from cargaison.domain import events

DEFAULT_ENGINE = create_engine(
    config.get_db_uri(),
    isolation_level="SERIALIZABLE",
)
DEFAULT_SESSION_FACTORY = sessionmaker(bind=DEFAULT_ENGINE)


class AbstractUnitOfWork(abc.ABC):
    """Accès transactionnel aux `commandes`, au `stock` et aux `options`."""

    commandes: repository.AbstractRepository
    stock: stock.AbstractStock
    options: options.AbstractOptions

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        # Après un commit, le rollback ne fait rien
        self.rollback()

    def commit(self) -> None:
        self._commit()

    def collect_new_events(self) -> Iterator[events.Event]:
        """Vide, dans l'ordre d'émission, les événements des commandes vues."""
        for commande in self.commandes.seen:
            while commande.événements:
                yield commande.événements.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Une session SQLAlchemy par bloc `with`, fermée à la sortie."""

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session: Session = self.session_factory()
        self.commandes = repository.SqlAlchemyRepository(self.session)
        self.stock = stock.SqlAlchemyStock(self.session)
        self.options = options.SqlAlchemyOptions(self.session)
        return super().__enter__()

    def __exit__(self, *args: object) -> None:
        try:
            super().__exit__(*args)
        finally:
            self.session.close()

    def _commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
