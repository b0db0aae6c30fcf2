"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers : réagissent à un fait passé (ne doivent pas échouer)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

from cargaison import config
from cargaison.adapters import ingestion
from cargaison.domain import allocation, commands, events, model, suffisance

if TYPE_CHECKING:
    from cargaison.adapters.notifications import AbstractNotifications
    from cargaison.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


# --- Exceptions ---


class CommandeInconnue(Exception):
    """Levée quand une référence de commande n'existe pas."""
    pass


class CommandeExistante(Exception):
    """Levée quand on crée une commande dont la référence existe déjà."""
    pass


def _charger(uow: AbstractUnitOfWork, référence: str) -> model.Commande:
    commande = uow.commandes.get(référence=référence)
    if commande is None:
        raise CommandeInconnue(f"Commande inconnue : {référence}")
    return commande


def _vérifier_allocations(commande: model.Commande) -> None:
    """Refuse tout état où une ligne serait sur-allouée."""
    erreurs = allocation.valider_avant_enregistrement(commande.lignes, commande.cargos)
    if erreurs:
        raise model.AllocationInvalide(erreurs)


def _problèmes_de_stock(
    commande: model.Commande, uow: AbstractUnitOfWork
) -> list[suffisance.ProblèmeStock]:
    return suffisance.collecter_problèmes(
        commande.lignes,
        uow.stock.instantané(),
        commande.quantités_initiales(),
    )


# --- Command Handlers ---


def créer_commande(
    cmd: commands.CréerCommande,
    uow: AbstractUnitOfWork,
) -> str:
    """
    Crée une commande à partir des données reçues.

    Les allocations éventuellement fournies sont validées comme à
    l'enregistrement : rien n'est créé si une ligne est sur-allouée.
    """
    commande = ingestion.commande_depuis_dict(cmd.données)
    if not commande.référence:
        raise ValueError("Une commande doit avoir une référence")
    moteur = allocation.MoteurAllocation(commande)
    erreurs = moteur.valider_avant_enregistrement()
    if erreurs:
        raise model.AllocationInvalide(erreurs)
    référence = commande.référence
    with uow:
        if uow.commandes.get(référence=référence) is not None:
            raise CommandeExistante(f"La commande {référence} existe déjà")
        commande.remplacer_cargos(moteur.instantané())
        commande.événements.append(events.CommandeCréée(référence=référence))
        uow.commandes.add(commande)
        uow.commit()
    return référence


def ajouter_ligne(
    cmd: commands.AjouterLigne,
    uow: AbstractUnitOfWork,
) -> int:
    """Ajoute une ligne ; lève LigneEnDouble si (article, dépôt) existe déjà."""
    with uow:
        commande = _charger(uow, cmd.référence)
        index = commande.ajouter_ligne(
            model.LigneDeCommande(
                article_id=cmd.article_id,
                depot_id=cmd.depot_id,
                quantité_kg=cmd.quantité_kg,
                prix_unitaire=cmd.prix_unitaire,
                kg_par_carton=cmd.kg_par_carton,
                libellé_article=cmd.libellé_article,
                libellé_depot=cmd.libellé_depot,
            )
        )
        uow.commit()
    return index


def modifier_ligne(
    cmd: commands.ModifierLigne,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Modifie une ligne existante.

    Une baisse de quantité sous le total déjà chargé dans les cargos
    est refusée (AllocationInvalide) : rien n'est enregistré.
    """
    with uow:
        commande = _charger(uow, cmd.référence)
        commande.modifier_ligne(
            cmd.index,
            article_id=cmd.article_id,
            depot_id=cmd.depot_id,
            quantité_kg=cmd.quantité_kg,
            prix_unitaire=cmd.prix_unitaire,
            kg_par_carton=cmd.kg_par_carton,
            libellé_article=cmd.libellé_article,
            libellé_depot=cmd.libellé_depot,
        )
        _vérifier_allocations(commande)
        uow.commit()


def supprimer_ligne(
    cmd: commands.SupprimerLigne,
    uow: AbstractUnitOfWork,
) -> None:
    """Supprime une ligne, sauf si des cargos en contiennent encore."""
    with uow:
        commande = _charger(uow, cmd.référence)
        commande.supprimer_ligne(cmd.index)
        _vérifier_allocations(commande)
        uow.commit()


def soumettre_commande(
    cmd: commands.SoumettreCommande,
    uow: AbstractUnitOfWork,
) -> list[suffisance.ProblèmeStock]:
    """
    Évalue le stock et soumet la commande.

    Retourne les problèmes de stock. Liste vide : la commande est
    soumise. Sinon elle attend ConfirmerSoumission ou AnnulerSoumission.
    """
    with uow:
        commande = _charger(uow, cmd.référence)
        problèmes = _problèmes_de_stock(commande, uow)
        commande.demander_soumission(problèmes)
        uow.commit()
    return problèmes


def confirmer_soumission(
    cmd: commands.ConfirmerSoumission,
    uow: AbstractUnitOfWork,
) -> list[suffisance.ProblèmeStock]:
    """
    Soumet la commande malgré le manque de stock.

    Le stock est réévalué : les quantités manquantes enregistrées
    sont celles du moment de la confirmation.
    """
    with uow:
        commande = _charger(uow, cmd.référence)
        problèmes = _problèmes_de_stock(commande, uow)
        commande.confirmer_soumission(problèmes)
        uow.commit()
    if problèmes:
        logger.warning(
            "Commande %s soumise avec %d ligne(s) en quantité manquante",
            cmd.référence, len(problèmes),
        )
    return problèmes


def annuler_soumission(
    cmd: commands.AnnulerSoumission,
    uow: AbstractUnitOfWork,
) -> None:
    with uow:
        commande = _charger(uow, cmd.référence)
        commande.annuler_soumission()
        uow.commit()


def enregistrer_allocations(
    cmd: commands.EnregistrerAllocations,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Enregistre l'instantané complet des cargos (tout ou rien).

    L'instantané est validé en entier ; s'il contient la moindre
    sur-allocation, AllocationInvalide est levée avec toutes les
    erreurs et aucun cargo n'est enregistré. Les articles vides
    (sans article, dépôt ou quantité) ne sont pas persistés.
    """
    cargos = ingestion.cargos_depuis_données(cmd.cargos)
    with uow:
        commande = _charger(uow, cmd.référence)
        moteur = allocation.MoteurAllocation(commande, cargos=cargos)
        erreurs = moteur.valider_avant_enregistrement()
        if erreurs:
            raise model.AllocationInvalide(erreurs)
        commande.remplacer_cargos(moteur.instantané())
        uow.commit()


def enregistrer_options_cargo(
    cmd: commands.EnregistrerOptionsCargo,
    uow: AbstractUnitOfWork,
) -> None:
    with uow:
        _charger(uow, cmd.référence)
        uow.options.save(
            cmd.référence,
            allocation.OptionsParDéfaut(
                no_conteneur=cmd.no_conteneur,
                no_plomb=cmd.no_plomb,
                numéro_lot=cmd.numéro_lot,
                date_production=cmd.date_production,
                date_expiration=cmd.date_expiration,
            ),
        )
        uow.commit()


def marquer_livrée(
    cmd: commands.MarquerLivrée,
    uow: AbstractUnitOfWork,
) -> None:
    with uow:
        commande = _charger(uow, cmd.référence)
        commande.marquer_livrée()
        uow.commit()


# --- Event Handlers ---


def publier_commande_soumise(
    event: events.CommandeSoumise,
) -> None:
    """Trace la soumission (statut et montant) pour le suivi commercial."""
    logger.info(
        "Commande soumise : %s (%s, total %s)",
        event.référence, event.statut, event.prix_total,
    )


def notifier_quantité_manquante(
    event: events.QuantitéManquanteSignalée,
    notifications: AbstractNotifications,
) -> None:
    """Prévient le responsable de stock d'une quantité manquante."""
    notifications.send(
        destination=config.get_destinataire_stock(),
        message=(
            f"Commande {event.référence} : {event.quantité_manquante_kg}kg manquants "
            f"pour {event.libellé_article} ({event.libellé_depot})"
        ),
    )


def ajouter_quantité_manquante_vue(
    event: events.QuantitéManquanteSignalée,
    uow: AbstractUnitOfWork,
) -> None:
    """Alimente le read model des quantités manquantes."""
    with uow:
        uow.session.execute(
            text(
                "INSERT INTO quantites_manquantes_view"
                " (reference, article_id, depot_id, libelle_article,"
                " libelle_depot, quantite_manquante_kg)"
                " VALUES (:reference, :article_id, :depot_id, :libelle_article,"
                " :libelle_depot, :quantite)"
            ),
            dict(
                reference=event.référence,
                article_id=event.article_id,
                depot_id=event.depot_id,
                libelle_article=event.libellé_article,
                libelle_depot=event.libellé_depot,
                quantite=str(event.quantité_manquante_kg),
            ),
        )
        uow.commit()


def mettre_à_jour_allocations_vue(
    event: events.AllocationsEnregistrées,
    uow: AbstractUnitOfWork,
) -> None:
    """Remplace les lignes du read model des allocations de la commande."""
    with uow:
        uow.session.execute(
            text("DELETE FROM allocations_view WHERE reference = :reference"),
            dict(reference=event.référence),
        )
        for no_conteneur, article_id, depot_id, quantité, cartons in event.allocations:
            uow.session.execute(
                text(
                    "INSERT INTO allocations_view"
                    " (reference, no_conteneur, article_id, depot_id, quantite_kg, cartons)"
                    " VALUES (:reference, :no_conteneur, :article_id, :depot_id,"
                    " :quantite, :cartons)"
                ),
                dict(
                    reference=event.référence,
                    no_conteneur=no_conteneur,
                    article_id=article_id,
                    depot_id=depot_id,
                    quantite=str(quantité),
                    cartons=cartons,
                ),
            )
        uow.commit()
