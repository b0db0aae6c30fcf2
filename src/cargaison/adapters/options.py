"""
Options par défaut des cargos, mémorisées par référence de commande.

Les valeurs saisies une fois (conteneur, plomb, lot, dates) sont
reproposées sur chaque nouvel article alloué de la même commande.
"""

from __future__ import annotations

import abc

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from cargaison.adapters import orm
from cargaison.domain.allocation import OptionsParDéfaut


class AbstractOptions(abc.ABC):

    @abc.abstractmethod
    def get(self, référence: str) -> OptionsParDéfaut:
        """Options de la commande, ou les valeurs par défaut si aucune n'est mémorisée."""
        raise NotImplementedError

    @abc.abstractmethod
    def save(self, référence: str, options: OptionsParDéfaut) -> None:
        raise NotImplementedError


class SqlAlchemyOptions(AbstractOptions):

    def __init__(self, session: Session):
        self.session = session

    def get(self, référence: str) -> OptionsParDéfaut:
        t = orm.options_cargo
        ligne = self.session.execute(
            select(
                t.c.no_conteneur, t.c.no_plomb, t.c.numero_lot,
                t.c.date_production, t.c.date_expiration,
            ).where(t.c.reference == référence)
        ).first()
        if ligne is None:
            return OptionsParDéfaut()
        return OptionsParDéfaut(
            no_conteneur=ligne.no_conteneur,
            no_plomb=ligne.no_plomb,
            numéro_lot=ligne.numero_lot,
            date_production=ligne.date_production,
            date_expiration=ligne.date_expiration,
        )

    def save(self, référence: str, options: OptionsParDéfaut) -> None:
        t = orm.options_cargo
        self.session.execute(delete(t).where(t.c.reference == référence))
        self.session.execute(
            insert(t).values(
                reference=référence,
                no_conteneur=options.no_conteneur,
                no_plomb=options.no_plomb,
                numero_lot=options.numéro_lot,
                date_production=options.date_production,
                date_expiration=options.date_expiration,
            )
        )
