"""
Bootstrap : assemblage de l'application (Composition Root).

Construit le message bus avec toutes ses dépendances concrètes
(ou les fakes injectés par les tests). C'est le seul endroit qui
connaît les implémentations de chaque abstraction.
"""

from __future__ import annotations

from typing import Any

from cargaison.adapters import notifications, orm
from cargaison.domain import commands, events
from cargaison.service_layer import handlers, messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    notifications_adapter: notifications.AbstractNotifications | None = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """
    Construit et retourne un MessageBus configuré.

    Avec le UoW par défaut, les tables sont créées si besoin dans la
    base configurée (CARGAISON_DB_URI).
    """
    if start_orm:
        orm.start_mappers()

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork()
        orm.metadata.create_all(unit_of_work.DEFAULT_ENGINE)

    if notifications_adapter is None:
        notifications_adapter = notifications.EmailNotifications()

    dependencies: dict[str, Any] = {
        "notifications": notifications_adapter,
        **extra_dependencies,
    }

    return messagebus.MessageBus(
        uow=uow,
        event_handlers=EVENT_HANDLERS,
        command_handlers=COMMAND_HANDLERS,
        dependencies=dependencies,
    )


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list] = {
    events.CommandeCréée: [],
    events.CommandeSoumise: [handlers.publier_commande_soumise],
    events.QuantitéManquanteSignalée: [
        handlers.notifier_quantité_manquante,
        handlers.ajouter_quantité_manquante_vue,
    ],
    events.AllocationsEnregistrées: [handlers.mettre_à_jour_allocations_vue],
}

COMMAND_HANDLERS: dict[type[commands.Command], Any] = {
    commands.CréerCommande: handlers.créer_commande,
    commands.AjouterLigne: handlers.ajouter_ligne,
    commands.ModifierLigne: handlers.modifier_ligne,
    commands.SupprimerLigne: handlers.supprimer_ligne,
    commands.SoumettreCommande: handlers.soumettre_commande,
    commands.ConfirmerSoumission: handlers.confirmer_soumission,
    commands.AnnulerSoumission: handlers.annuler_soumission,
    commands.EnregistrerAllocations: handlers.enregistrer_allocations,
    commands.EnregistrerOptionsCargo: handlers.enregistrer_options_cargo,
    commands.MarquerLivrée: handlers.marquer_livrée,
}
