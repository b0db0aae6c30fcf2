"""
Moteur de répartition des lignes de commande entre cargos.

Invariant central : pour chaque couple (article, dépôt) de la
commande, la somme des quantités allouées dans tous les cargos ne
dépasse jamais la quantité commandée.

Deux niveaux de contrôle :
- `MoteurAllocation.définir_quantité_allouée` : contrôle interactif,
  à chaque saisie, qui refuse la modification sans rien changer
- `valider_avant_enregistrement` : contrôle final sur l'instantané
  complet, exhaustif, qui bloque l'enregistrement

Seul le contrôle final fait foi : deux éditions concurrentes de cargos
différents peuvent chacune passer le contrôle interactif.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from cargaison.domain import conversions
from cargaison.domain.conversions import Nombre, en_kg
from cargaison.domain.model import (
    ArticleAlloué,
    Cargo,
    Clé,
    Commande,
    LigneDeCommande,
    LigneInconnue,
    QuantitéDépasseDisponible,
)

logger = logging.getLogger(__name__)

ZÉRO = Decimal("0")

MÉTADONNÉES = ("no_conteneur", "no_plomb", "numéro_lot", "date_production", "date_expiration")


@dataclass(frozen=True)
class Disponibilité:
    kg: Decimal
    cartons: int


@dataclass(frozen=True)
class RésuméCargo:
    total_kg: Decimal
    total_cartons: int
    nombre_lignes: int


@dataclass(frozen=True)
class OptionsParDéfaut:
    """Valeurs pré-remplies sur chaque nouvel article alloué d'une commande."""

    no_conteneur: str = ""
    no_plomb: str = ""
    numéro_lot: str = ""
    date_production: str = "MAY 2025"
    date_expiration: str = "NOVEMBER 2026"


@dataclass(frozen=True)
class ErreurSurAllocation:
    """Une clé (article, dépôt) dont le total alloué dépasse la quantité commandée."""

    article_id: str
    depot_id: str
    libellé_article: str
    libellé_depot: str
    quantité_commandée_kg: Decimal
    quantité_allouée_kg: Decimal
    excédent_kg: Decimal

    @property
    def message(self) -> str:
        return (
            f"{self.libellé_article} ({self.libellé_depot}) : allocation "
            f"({self.quantité_allouée_kg}kg) > quantité commandée "
            f"({self.quantité_commandée_kg}kg), excédent {self.excédent_kg}kg"
        )


# --- Fonctions sur un instantané (lignes + cargos) ---


def _est_persisté(article: ArticleAlloué) -> bool:
    # Seuls les articles qui seront enregistrés comptent dans les totaux
    return article.est_affecté and article.quantité_allouée_kg > 0


def total_alloué(cargos: Iterable[Cargo], article_id: str, depot_id: str) -> Decimal:
    """Somme des kg alloués à ce couple dans tous les cargos."""
    return sum(
        (
            article.quantité_allouée_kg
            for cargo in cargos
            for article in cargo.articles
            if _est_persisté(article) and article.clé == (article_id, depot_id)
        ),
        ZÉRO,
    )


def _ligne(lignes: Sequence[LigneDeCommande], clé: Clé) -> Optional[LigneDeCommande]:
    return next((l for l in lignes if l.clé == clé), None)


def disponible_à_allouer(
    lignes: Sequence[LigneDeCommande],
    cargos: Iterable[Cargo],
    article_id: Optional[str],
    depot_id: Optional[str],
) -> Disponibilité:
    """
    Reliquat d'une ligne de commande : quantité commandée moins tout ce
    qui est déjà alloué, article en cours d'édition compris.

    Les cartons disponibles sont arrondis à l'inférieur.
    """
    ligne = _ligne(lignes, (article_id, depot_id))
    if ligne is None:
        return Disponibilité(ZÉRO, 0)
    reste = max(ZÉRO, ligne.quantité_kg - total_alloué(cargos, article_id, depot_id))
    return Disponibilité(reste, conversions.cartons_disponibles(reste, ligne.kg_carton))


def résumé_cargo(cargo: Cargo) -> RésuméCargo:
    return RésuméCargo(
        total_kg=sum((a.quantité_allouée_kg for a in cargo.articles), ZÉRO),
        total_cartons=sum(a.quantité_carton for a in cargo.articles),
        nombre_lignes=len(cargo.articles),
    )


def valider_avant_enregistrement(
    lignes: Sequence[LigneDeCommande], cargos: Sequence[Cargo]
) -> list[ErreurSurAllocation]:
    """
    Recalcule le total alloué de chaque clé sur l'instantané complet
    et retourne toutes les sur-allocations (pas seulement la première).

    Les articles alloués à une clé absente de la commande sont aussi
    rapportés, avec une quantité commandée nulle.
    """
    totaux: dict[Clé, Decimal] = {}
    for cargo in cargos:
        for article in cargo.articles:
            if _est_persisté(article):
                totaux[article.clé] = totaux.get(article.clé, ZÉRO) + article.quantité_allouée_kg

    erreurs = []
    for ligne in lignes:
        alloué = totaux.pop(ligne.clé, ZÉRO)
        if alloué > ligne.quantité_kg:
            erreurs.append(
                ErreurSurAllocation(
                    article_id=ligne.article_id,
                    depot_id=ligne.depot_id,
                    libellé_article=ligne.libellé_article_ou_id,
                    libellé_depot=ligne.libellé_depot_ou_id,
                    quantité_commandée_kg=ligne.quantité_kg,
                    quantité_allouée_kg=alloué,
                    excédent_kg=alloué - ligne.quantité_kg,
                )
            )
    for (article_id, depot_id), alloué in totaux.items():
        if alloué > 0:
            erreurs.append(
                ErreurSurAllocation(
                    article_id=article_id,
                    depot_id=depot_id,
                    libellé_article=f"Article {article_id}",
                    libellé_depot=f"Dépôt {depot_id}",
                    quantité_commandée_kg=ZÉRO,
                    quantité_allouée_kg=alloué,
                    excédent_kg=alloué,
                )
            )
    return erreurs


def articles_à_persister(cargos: Iterable[Cargo]) -> list[Cargo]:
    """
    Copie des cargos sans les lignes vides : un article sans article,
    sans dépôt ou sans quantité n'est jamais enregistré.
    """
    return [
        cargo.copier(
            articles=[
                a.copier() for a in cargo.articles
                if _est_persisté(a)
            ]
        )
        for cargo in cargos
    ]


# --- Session d'édition ---


class MoteurAllocation:
    """
    Session d'édition des allocations d'une commande.

    Le moteur travaille sur une copie des cargos : abandonner la
    session ne laisse aucune trace. `instantané()` produit l'état à
    enregistrer, qui doit encore passer `valider_avant_enregistrement`.

    Toute modification de quantité passe par `définir_quantité_allouée`,
    qui recalcule aussi le nombre de cartons de l'article.
    """

    def __init__(
        self,
        commande: Commande,
        options: Optional[OptionsParDéfaut] = None,
        cargos: Optional[Sequence[Cargo]] = None,
    ):
        self.commande = commande
        self.options = options or OptionsParDéfaut()
        source = commande.cargos if cargos is None else cargos
        self.cargos: list[Cargo] = [cargo.copier() for cargo in source]
        # Les cartons reçus ne font pas foi : ils sont dérivés des kg
        for cargo in self.cargos:
            for article in cargo.articles:
                article.quantité_carton = conversions.cartons_pour_kg(
                    article.quantité_allouée_kg,
                    self._kg_carton(article.article_id, article.depot_id),
                )

    @property
    def lignes(self) -> list[LigneDeCommande]:
        return self.commande.lignes

    def _kg_carton(self, article_id: Optional[str], depot_id: Optional[str]) -> Decimal:
        ligne = _ligne(self.lignes, (article_id, depot_id))
        if ligne is None:
            return conversions.KG_PAR_CARTON_DÉFAUT
        return ligne.kg_carton

    def disponible_à_allouer(self, article_id: Optional[str], depot_id: Optional[str]) -> Disponibilité:
        return disponible_à_allouer(self.lignes, self.cargos, article_id, depot_id)

    def définir_quantité_allouée(self, index_cargo: int, index_article: int, quantité_kg: Nombre) -> None:
        """
        Fixe la quantité d'un article alloué.

        Lève QuantitéDépasseDisponible, sans rien modifier, si la
        nouvelle quantité dépasse le reliquat de sa ligne de commande.
        """
        article = self.cargos[index_cargo].articles[index_article]
        quantité = en_kg(quantité_kg)
        disponible = self.disponible_à_allouer(article.article_id, article.depot_id)
        if quantité > disponible.kg:
            logger.debug(
                "Allocation refusée %s/%s : %s > %s",
                article.article_id, article.depot_id, quantité, disponible.kg,
            )
            raise QuantitéDépasseDisponible(
                article.article_id, article.depot_id, disponible.kg, disponible.cartons
            )
        article.quantité_allouée_kg = quantité
        article.quantité_carton = conversions.cartons_pour_kg(
            quantité, self._kg_carton(article.article_id, article.depot_id)
        )

    def affecter_ligne(
        self, index_cargo: int, index_article: int, article_id: str, depot_id: str
    ) -> None:
        """
        Choisit la ligne de commande (article, dépôt) d'un article alloué.

        La quantité déjà saisie est contrôlée contre le reliquat de la
        nouvelle ligne : changer de ligne ne contourne pas le contrôle.
        """
        if _ligne(self.lignes, (article_id, depot_id)) is None:
            raise LigneInconnue(
                f"Aucune ligne {article_id}/{depot_id} sur la commande {self.commande.référence}"
            )
        article = self.cargos[index_cargo].articles[index_article]
        if article.clé != (article_id, depot_id) and article.quantité_allouée_kg > 0:
            disponible = self.disponible_à_allouer(article_id, depot_id)
            if article.quantité_allouée_kg > disponible.kg:
                raise QuantitéDépasseDisponible(
                    article_id, depot_id, disponible.kg, disponible.cartons
                )
        article.article_id = article_id
        article.depot_id = depot_id
        article.quantité_carton = conversions.cartons_pour_kg(
            article.quantité_allouée_kg, self._kg_carton(article_id, depot_id)
        )

    def modifier_métadonnées(self, index_cargo: int, index_article: int, **champs: str) -> None:
        """Met à jour conteneur, plomb, lot ou dates d'un article alloué."""
        inconnus = set(champs) - set(MÉTADONNÉES)
        if inconnus:
            raise ValueError(f"Champs non modifiables : {sorted(inconnus)}")
        article = self.cargos[index_cargo].articles[index_article]
        for nom, valeur in champs.items():
            setattr(article, nom, valeur)

    def ajouter_article(
        self, index_cargo: int, défauts: Optional[OptionsParDéfaut] = None
    ) -> ArticleAlloué:
        """Ajoute un article vide (quantité nulle) pré-rempli avec les options par défaut."""
        défauts = défauts or self.options
        article = ArticleAlloué(
            no_conteneur=défauts.no_conteneur,
            no_plomb=défauts.no_plomb,
            numéro_lot=défauts.numéro_lot,
            date_production=défauts.date_production,
            date_expiration=défauts.date_expiration,
        )
        self.cargos[index_cargo].articles.append(article)
        return article

    def supprimer_article(self, index_cargo: int, index_article: int) -> ArticleAlloué:
        return self.cargos[index_cargo].articles.pop(index_article)

    def ajouter_cargo(self, cargo: Optional[Cargo] = None) -> int:
        self.cargos.append(cargo or Cargo())
        return len(self.cargos) - 1

    def résumé_cargo(self, index_cargo: int) -> RésuméCargo:
        return résumé_cargo(self.cargos[index_cargo])

    def valider_avant_enregistrement(self) -> list[ErreurSurAllocation]:
        return valider_avant_enregistrement(self.lignes, self.cargos)

    def instantané(self) -> list[Cargo]:
        return articles_à_persister(self.cargos)
