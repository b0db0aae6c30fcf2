"""
Normalisation des données de commande reçues de l'extérieur.

Les commandes arrivent sous deux formes : le format courant
(`articleId`, `allocatedItems`...) et l'ancien format de l'application
(`article`, `itemsAlloues`, `quantiteAllouee`...), où un identifiant
peut être une chaîne ou un objet `{"_id": ...}` et où un cargo peut
n'être qu'une chaîne (son nom).

Tout est ramené ici aux objets du domaine : le reste du code ne
teste jamais la forme des données.
"""

from __future__ import annotations

from typing import Any, Optional

from cargaison.domain import model


def _premier(données: dict, *noms: str, défaut: Any = None) -> Any:
    """Valeur du premier nom présent (et non None) dans `données`."""
    for nom in noms:
        if "." in nom:
            parent, enfant = nom.split(".", 1)
            valeur = (données.get(parent) or {}).get(enfant)
        else:
            valeur = données.get(nom)
        if valeur is not None:
            return valeur
    return défaut


def identifiant(valeur: Any) -> Optional[str]:
    """Identifiant d'une référence donnée en chaîne ou en objet `{"_id": ...}`."""
    if isinstance(valeur, dict):
        valeur = valeur.get("_id") or valeur.get("id")
    if valeur is None or valeur == "":
        return None
    return str(valeur)


def libellé(valeur: Any, *noms: str) -> Optional[str]:
    if not isinstance(valeur, dict):
        return None
    return _premier(valeur, *noms)


def ligne_depuis_dict(données: dict) -> model.LigneDeCommande:
    article = _premier(données, "articleId", "article")
    depot = _premier(données, "depotId", "depot")
    return model.LigneDeCommande(
        article_id=identifiant(article),
        depot_id=identifiant(depot),
        quantité_kg=_premier(données, "orderedQuantityKg", "quantiteKg", défaut=0),
        prix_unitaire=_premier(données, "unitPrice", "prixUnitaire", défaut=0),
        kg_par_carton=_premier(données, "kgPerCarton", "kgParCarton")
        or libellé(article, "kgParCarton"),
        libellé_article=_premier(données, "articleLabel")
        or libellé(article, "reference", "intitule"),
        libellé_depot=_premier(données, "depotLabel")
        or libellé(depot, "intitule", "nom"),
    )


def article_alloué_depuis_dict(données: dict) -> model.ArticleAlloué:
    return model.ArticleAlloué(
        article_id=identifiant(_premier(données, "articleId", "article")),
        depot_id=identifiant(_premier(données, "depotId", "depot")),
        quantité_allouée_kg=_premier(
            données, "allocatedQuantityKg", "quantiteAllouee", défaut=0
        ),
        no_conteneur=_premier(données, "containerNumberOverride", "containerNo", défaut=""),
        no_plomb=_premier(données, "sealNumberOverride", "sealNo", défaut=""),
        numéro_lot=_premier(données, "batchNumber", "lot.batchNumber", défaut=""),
        date_production=_premier(données, "productionDate", "dateProduction", défaut=""),
        date_expiration=_premier(données, "expiryDate", "dateExpiration", défaut=""),
    )


def cargo_depuis_données(données: Any) -> model.Cargo:
    """Un cargo donné par son seul nom (ancien format) ou par un dictionnaire."""
    if isinstance(données, str):
        return model.Cargo(nom=données)
    if not isinstance(données, dict):
        raise TypeError(f"Cargo illisible : {données!r}")
    return model.Cargo(
        nom=_premier(données, "carrierName", "nom", défaut=""),
        no_conteneur=_premier(données, "containerNumber", "noDeConteneur", défaut=""),
        no_plomb=_premier(données, "sealNumber", "noPlomb", défaut=""),
        poids_carton=_premier(données, "cartonWeightKg", "poidsCarton"),
        tare_conteneur=_premier(données, "containerTareKg", "containerTare"),
        articles=[
            article_alloué_depuis_dict(a)
            for a in _premier(données, "allocatedItems", "itemsAlloues", défaut=[])
        ],
    )


def cargos_depuis_données(données: Any) -> list[model.Cargo]:
    """Liste de cargos ; une chaîne seule ou un dictionnaire seul sont acceptés."""
    if données is None or données == "":
        return []
    if isinstance(données, (str, dict)):
        données = [données]
    return [cargo_depuis_données(c) for c in données]


def commande_depuis_dict(données: dict) -> model.Commande:
    """
    Construit une Commande complète.

    Les lignes passent par `ajouter_ligne` : un doublon
    (article, dépôt) lève LigneEnDouble dès l'import.
    """
    commande = model.Commande(
        référence=_premier(données, "reference"),
        devise=_premier(données, "currency", défaut="EUR"),
        type_commande=_premier(données, "orderType", "typeCommande", défaut="EXPORT"),
        client=identifiant(_premier(données, "client")) or "",
        numéro_booking=_premier(données, "bookingNumber", "numeroBooking", défaut=""),
        destination=_premier(données, "destination", défaut=""),
        poids_carton=_premier(données, "cartonWeightKg", "poidsCarton") or None,
        montant_payé=_premier(données, "amountPaid", "montantPaye", défaut=0),
        cargos=cargos_depuis_données(_premier(données, "cargo")),
    )
    for item in _premier(données, "items", défaut=[]):
        commande.ajouter_ligne(ligne_depuis_dict(item))
    return commande
