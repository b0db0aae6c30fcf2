"""
Évaluation de la suffisance du stock avant soumission d'une commande.

Deux modes :
- création : la quantité demandée complète est comparée au stock
- édition : seul l'écart avec la quantité déjà soumise est évalué ;
  une baisse (ou une quantité inchangée) n'a jamais besoin de stock

Un problème de stock n'est pas une erreur bloquante : la commande
peut être soumise après confirmation explicite, avec un statut
"quantité manquante".
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from cargaison.domain.conversions import Nombre, en_décimal
from cargaison.domain.model import Clé, LigneDeCommande
from cargaison.domain.stock import RegistreStock

ZÉRO = Decimal("0")


class Sévérité(str, enum.Enum):
    SUFFISANT = "SUFFISANT"
    PARTIEL = "PARTIEL"
    INDISPONIBLE = "INDISPONIBLE"


@dataclass(frozen=True)
class Évaluation:
    sévérité: Sévérité
    évalué_kg: Decimal
    disponible_kg: Decimal
    manquant_kg: Decimal


@dataclass(frozen=True)
class ProblèmeStock:
    """Une ligne dont le stock ne couvre pas (entièrement) la demande."""

    article_id: str
    depot_id: str
    libellé_article: str
    libellé_depot: str
    demandé_kg: Decimal
    disponible_kg: Decimal
    manquant_kg: Decimal
    sévérité: Sévérité

    @property
    def message(self) -> str:
        if self.sévérité is Sévérité.INDISPONIBLE:
            return (
                f"{self.libellé_article} ({self.libellé_depot}) : aucun stock "
                f"disponible pour {self.demandé_kg}kg"
            )
        return (
            f"{self.libellé_article} ({self.libellé_depot}) : {self.disponible_kg}kg "
            f"disponibles pour {self.demandé_kg}kg demandés, "
            f"{self.manquant_kg}kg manquants"
        )


def classer(
    demandé_kg: Nombre,
    disponible_kg: Nombre,
    quantité_initiale_kg: Optional[Nombre] = None,
) -> Évaluation:
    """
    Classe une quantité demandée face au stock disponible.

    Avec `quantité_initiale_kg` (mode édition), seul l'écart
    demandé - initial est évalué et c'est lui qui est rapporté.
    """
    demandé = en_décimal(demandé_kg)
    disponible = max(ZÉRO, en_décimal(disponible_kg))
    if quantité_initiale_kg is not None:
        demandé = demandé - en_décimal(quantité_initiale_kg)

    if demandé <= 0 or disponible >= demandé:
        return Évaluation(Sévérité.SUFFISANT, demandé, disponible, ZÉRO)
    if disponible == 0:
        return Évaluation(Sévérité.INDISPONIBLE, demandé, disponible, demandé)
    return Évaluation(Sévérité.PARTIEL, demandé, disponible, demandé - disponible)


def collecter_problèmes(
    lignes: Iterable[LigneDeCommande],
    registre: RegistreStock,
    quantités_initiales: Optional[dict[Clé, Decimal]] = None,
) -> list[ProblèmeStock]:
    """
    Liste les lignes partiellement ou pas du tout couvertes par le stock.

    `quantités_initiales` à None : mode création. Sinon mode édition ;
    une ligne absente du dictionnaire (ajoutée depuis la dernière
    soumission) part d'une quantité initiale nulle.

    Une liste vide signifie que la commande peut être soumise directement.
    """
    problèmes = []
    for ligne in lignes:
        if not ligne.article_id or not ligne.depot_id:
            continue
        initiale = None
        if quantités_initiales is not None:
            initiale = quantités_initiales.get(ligne.clé, ZÉRO)
        évaluation = classer(
            ligne.quantité_kg,
            registre.disponible(ligne.article_id, ligne.depot_id),
            initiale,
        )
        if évaluation.sévérité is Sévérité.SUFFISANT:
            continue
        problèmes.append(
            ProblèmeStock(
                article_id=ligne.article_id,
                depot_id=ligne.depot_id,
                libellé_article=ligne.libellé_article_ou_id,
                libellé_depot=ligne.libellé_depot_ou_id,
                demandé_kg=évaluation.évalué_kg,
                disponible_kg=évaluation.disponible_kg,
                manquant_kg=évaluation.manquant_kg,
                sévérité=évaluation.sévérité,
            )
        )
    return problèmes
