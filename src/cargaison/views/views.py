"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture : elles ne modifient jamais
une commande. Les read models (allocations, quantités manquantes)
sont interrogés directement en SQL ; les chiffres des documents
sont calculés par le domaine pour rester identiques à l'écran
d'allocation.
"""

from __future__ import annotations

import dataclasses

from sqlalchemy import text

from cargaison.domain import allocation, documents, model
from cargaison.service_layer import handlers, unit_of_work


def _commande(référence: str, uow: unit_of_work.AbstractUnitOfWork) -> model.Commande:
    commande = uow.commandes.get(référence=référence)
    if commande is None:
        raise handlers.CommandeInconnue(f"Commande inconnue : {référence}")
    return commande


def allocations(référence: str, uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    """Lignes du read model des allocations d'une commande."""
    with uow:
        results = uow.session.execute(
            text(
                "SELECT no_conteneur, article_id, depot_id, quantite_kg, cartons"
                " FROM allocations_view WHERE reference = :reference ORDER BY id"
            ),
            dict(reference=référence),
        )
        return [dict(r._mapping) for r in results]


def quantités_manquantes(référence: str, uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    with uow:
        results = uow.session.execute(
            text(
                "SELECT article_id, depot_id, libelle_article, libelle_depot,"
                " quantite_manquante_kg FROM quantites_manquantes_view"
                " WHERE reference = :reference ORDER BY id"
            ),
            dict(reference=référence),
        )
        return [dict(r._mapping) for r in results]


def disponible(
    référence: str, article_id: str, depot_id: str, uow: unit_of_work.AbstractUnitOfWork
) -> dict:
    """Reliquat allouable d'une ligne de commande, tous cargos confondus."""
    with uow:
        commande = _commande(référence, uow)
        reste = allocation.disponible_à_allouer(
            commande.lignes, commande.cargos, article_id, depot_id
        )
        return {"kg": reste.kg, "cartons": reste.cartons}


def documents_expédition(référence: str, uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    """Chiffres par cargo repris par packing list, certificat et VGM."""
    with uow:
        commande = _commande(référence, uow)
        return [dataclasses.asdict(d) for d in documents.documents_commande(commande)]


def options_cargo(référence: str, uow: unit_of_work.AbstractUnitOfWork) -> dict:
    with uow:
        _commande(référence, uow)
        return dataclasses.asdict(uow.options.get(référence))


def brouillon_allocation(
    référence: str, uow: unit_of_work.AbstractUnitOfWork
) -> allocation.MoteurAllocation:
    """
    Ouvre une session d'édition des allocations.

    Le moteur travaille sur une copie détachée de la commande, avec
    les options par défaut mémorisées pour cette référence. Rien n'est
    enregistré tant que l'instantané n'est pas envoyé via
    EnregistrerAllocations.
    """
    with uow:
        commande = _commande(référence, uow)
        return allocation.MoteurAllocation(
            commande.copier(), options=uow.options.get(référence)
        )
