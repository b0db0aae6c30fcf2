"""
Message Bus.

Point central de dispatch des commands et events vers leurs handlers.

- Une command a exactement UN handler ; son erreur remonte à l'appelant
  (doublon, dépassement de quantité, allocation invalide...).
- Un event a de 0 à N handlers ; leurs erreurs sont loggées sans
  interrompre les autres (read models, notifications).

Les events émis pendant le traitement d'un message sont collectés
via le Unit of Work et traités à la suite, jusqu'à vider la file.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Union

from cargaison.domain import commands, events
from cargaison.service_layer import unit_of_work

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


class MessageBus:
    """
    Message Bus avec injection de dépendances par nom de paramètre.

    Un handler reçoit le message en premier argument ; ses autres
    paramètres sont résolus par nom : `uow`, puis les entrées de
    `dependencies` (ex. `notifications`).
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        event_handlers: dict[type[events.Event], list[Callable]],
        command_handlers: dict[type[commands.Command], Callable],
        dependencies: dict[str, Any] | None = None,
    ):
        self.uow = uow
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers
        self.dependencies = dependencies or {}
        self.queue: list[Message] = []
        self._paramètres: dict[Callable, list[str]] = {}

    def handle(self, message: Message) -> list[Any]:
        """
        Traite un message puis, en cascade, les events qu'il a produits.

        Retourne les résultats des commands traitées (une seule en
        pratique : celle passée en argument).
        """
        self.queue = [message]
        results: list[Any] = []
        while self.queue:
            message = self.queue.pop(0)
            if isinstance(message, events.Event):
                self._handle_event(message)
            elif isinstance(message, commands.Command):
                results.append(self._handle_command(message))
            else:
                raise ValueError(f"Message de type inconnu : {type(message)}")
        return results

    def _handle_event(self, event: events.Event) -> None:
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug("Event %s -> %s", type(event).__name__, handler.__name__)
                self._call_handler(handler, event)
                self.queue.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception("Erreur lors du traitement de l'event %s", event)

    def _handle_command(self, command: commands.Command) -> Any:
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command).__name__}")
        logger.debug("Command %s -> %s", type(command).__name__, handler.__name__)
        try:
            result = self._call_handler(handler, command)
        except Exception as e:
            logger.info("Command %s refusée : %s", type(command).__name__, e)
            raise
        self.queue.extend(self.uow.collect_new_events())
        return result

    def _injectables(self, handler: Callable) -> list[str]:
        """Noms des paramètres du handler après le message (signature mise en cache)."""
        if handler not in self._paramètres:
            noms = list(inspect.signature(handler).parameters)
            self._paramètres[handler] = noms[1:]
        return self._paramètres[handler]

    def _call_handler(self, handler: Callable, message: Message) -> Any:
        kwargs: dict[str, Any] = {}
        for nom in self._injectables(handler):
            if nom == "uow":
                kwargs[nom] = self.uow
            elif nom in self.dependencies:
                kwargs[nom] = self.dependencies[nom]
        return handler(message, **kwargs)
