"""
Contrôle des doublons de lignes de commande.

Une commande ne doit jamais contenir deux lignes portant le même
couple (article, dépôt). Le contrôle est fait à chaque changement
d'article ou de dépôt, avant que la modification ne soit appliquée.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence


class _Ligne(Protocol):
    article_id: Optional[str]
    depot_id: Optional[str]


def ligne_en_double(
    lignes: Sequence[_Ligne],
    article_id: Optional[str],
    depot_id: Optional[str],
    sauf_index: Optional[int] = None,
) -> Optional[tuple[int, _Ligne]]:
    """
    Retourne (index, ligne) de la ligne existante ayant ce couple
    (article, dépôt), en ignorant la ligne `sauf_index`.

    Une clé incomplète (article ou dépôt non choisi) ne peut pas
    être un doublon.
    """
    if not article_id or not depot_id:
        return None
    for index, ligne in enumerate(lignes):
        if index == sauf_index:
            continue
        if ligne.article_id == article_id and ligne.depot_id == depot_id:
            return index, ligne
    return None


def ferait_doublon(
    lignes: Sequence[_Ligne],
    article_id: Optional[str],
    depot_id: Optional[str],
    sauf_index: Optional[int] = None,
) -> bool:
    return ligne_en_double(lignes, article_id, depot_id, sauf_index) is not None
