"""
Conversions d'unités kg ↔ cartons.

Toutes les quantités du domaine sont des kilogrammes en Decimal.
Les documents d'expédition (packing list, certificat, VGM) dépendent
tous de ces fonctions : elles doivent donner exactement le même
résultat partout.

Politique d'arrondi :
- cartons nécessaires : toujours arrondi au supérieur (un carton
  entamé occupe une ligne de colisage complète)
- cartons disponibles : toujours arrondi à l'inférieur (on n'annonce
  jamais plus de cartons qu'il n'en tient réellement)
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

KG_PAR_CARTON_DÉFAUT = Decimal("20")

# Échelle des colonnes Kg en base
PRÉCISION_KG = Decimal("0.001")

Nombre = Union[int, float, str, Decimal]


def en_décimal(valeur: Optional[Nombre]) -> Decimal:
    """
    Convertit une saisie en Decimal.

    Les floats passent par str() pour éviter 20.01 -> 20.0100000000000015.
    None et la chaîne vide valent 0, comme un champ de formulaire vide.
    """
    if valeur is None or valeur == "":
        return Decimal("0")
    if isinstance(valeur, float):
        valeur = str(valeur)
    try:
        décimal = valeur if isinstance(valeur, Decimal) else Decimal(valeur)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Quantité invalide : {valeur!r}") from None
    if not décimal.is_finite():
        raise ValueError(f"Quantité invalide : {valeur!r}")
    return décimal


def en_kg(valeur: Optional[Nombre]) -> Decimal:
    """
    Quantité en kg telle qu'elle sera enregistrée.

    Refuse les valeurs négatives et celles qui ont plus de
    décimales que la base n'en conserve (au gramme près).
    """
    quantité = en_décimal(valeur)
    if quantité < 0:
        raise ValueError(f"Quantité négative : {quantité}")
    try:
        au_gramme = quantité.quantize(PRÉCISION_KG)
    except InvalidOperation:
        raise ValueError(f"Quantité hors limites : {quantité}") from None
    if quantité != au_gramme:
        raise ValueError(f"Quantité trop précise (au gramme près) : {quantité}")
    return quantité


def kg_par_carton(valeur: Optional[Nombre] = None) -> Decimal:
    """Constante de colisage d'un article, 20 kg si non renseignée."""
    if valeur is None or valeur == "":
        return KG_PAR_CARTON_DÉFAUT
    constante = en_décimal(valeur)
    if constante <= 0:
        return KG_PAR_CARTON_DÉFAUT
    return constante


def cartons_pour_kg(quantité_kg: Nombre, kg_carton: Optional[Nombre] = None) -> int:
    """Nombre de cartons nécessaires : ceil(kg / kg_par_carton), jamais négatif."""
    quantité = en_décimal(quantité_kg)
    if quantité <= 0:
        return 0
    return math.ceil(quantité / kg_par_carton(kg_carton))


def cartons_disponibles(quantité_kg: Nombre, kg_carton: Optional[Nombre] = None) -> int:
    """Nombre de cartons pleins que représente une capacité : floor(kg / kg_par_carton)."""
    quantité = en_décimal(quantité_kg)
    if quantité <= 0:
        return 0
    return math.floor(quantité / kg_par_carton(kg_carton))


def kg_pour_cartons(cartons: Nombre, kg_carton: Optional[Nombre] = None) -> Decimal:
    return en_décimal(cartons) * kg_par_carton(kg_carton)


def poids_brut(
    poids_net_kg: Nombre, nombre_cartons: int, poids_carton_vide_kg: Optional[Nombre]
) -> Decimal:
    """Poids brut = poids net + nombre de cartons × poids d'un carton vide."""
    return en_décimal(poids_net_kg) + nombre_cartons * en_décimal(poids_carton_vide_kg)


def poids_vgm(poids_brut_kg: Nombre, tare_conteneur_kg: Optional[Nombre]) -> Decimal:
    """Masse brute vérifiée (VGM) = poids brut + tare du conteneur."""
    return en_décimal(poids_brut_kg) + en_décimal(tare_conteneur_kg)
