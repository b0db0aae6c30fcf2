"""
Chiffres de chargement transmis aux générateurs de documents.

Packing list, certificat d'origine et VGM reprennent ces chiffres tels
quels : ils ne doivent jamais recalculer leurs propres totaux.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from cargaison.domain import conversions
from cargaison.domain.allocation import résumé_cargo
from cargaison.domain.model import Cargo, Commande


@dataclass(frozen=True)
class LigneDocument:
    article_id: str
    depot_id: str
    libellé_article: str
    no_conteneur: str
    no_plomb: str
    numéro_lot: str
    date_production: str
    date_expiration: str
    cartons: int
    poids_net_kg: Decimal
    poids_brut_kg: Decimal


@dataclass(frozen=True)
class DocumentCargo:
    nom: str
    no_conteneur: str
    no_plomb: str
    poids_net_total_kg: Decimal
    cartons_total: int
    poids_brut_total_kg: Decimal
    poids_vgm_kg: Decimal
    lignes: tuple[LigneDocument, ...]


def poids_carton_vide(cargo: Cargo, commande: Commande) -> Decimal:
    """Poids d'un carton vide : celui du cargo, sinon celui de la commande, sinon 0."""
    if cargo.poids_carton is not None:
        return cargo.poids_carton
    if commande.poids_carton is not None:
        return commande.poids_carton
    return Decimal("0")


def document_cargo(cargo: Cargo, commande: Commande) -> DocumentCargo:
    carton_vide = poids_carton_vide(cargo, commande)
    lignes = []
    for article in cargo.articles:
        ligne = commande.ligne(article.article_id, article.depot_id)
        lignes.append(
            LigneDocument(
                article_id=article.article_id,
                depot_id=article.depot_id,
                libellé_article=ligne.libellé_article_ou_id if ligne else f"Article {article.article_id}",
                no_conteneur=article.no_conteneur or cargo.no_conteneur,
                no_plomb=article.no_plomb or cargo.no_plomb,
                numéro_lot=article.numéro_lot,
                date_production=article.date_production,
                date_expiration=article.date_expiration,
                cartons=article.quantité_carton,
                poids_net_kg=article.quantité_allouée_kg,
                poids_brut_kg=conversions.poids_brut(
                    article.quantité_allouée_kg, article.quantité_carton, carton_vide
                ),
            )
        )

    résumé = résumé_cargo(cargo)
    brut = conversions.poids_brut(résumé.total_kg, résumé.total_cartons, carton_vide)
    return DocumentCargo(
        nom=cargo.nom,
        no_conteneur=cargo.no_conteneur,
        no_plomb=cargo.no_plomb,
        poids_net_total_kg=résumé.total_kg,
        cartons_total=résumé.total_cartons,
        poids_brut_total_kg=brut,
        poids_vgm_kg=conversions.poids_vgm(brut, cargo.tare_conteneur),
        lignes=tuple(lignes),
    )


def documents_commande(commande: Commande, index_cargo: Optional[int] = None) -> list[DocumentCargo]:
    cargos = commande.cargos if index_cargo is None else [commande.cargos[index_cargo]]
    return [document_cargo(cargo, commande) for cargo in cargos]
