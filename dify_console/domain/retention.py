"""Politique de rétention des versions DSL.

Fonction pure: seule la récence par numéro de version compte, jamais l'horodatage.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def deletion_candidates(versions_desc: Sequence[T], keep: int) -> list[T]:
    """Retourne les versions à supprimer pour n'en garder que `keep`.

    Args:
        versions_desc: historique trié par numéro de version décroissant.
        keep: nombre de versions les plus récentes à conserver (>= 0).

    Returns:
        list: les éléments aux positions [keep, N); vide si N <= keep.

    Raises:
        ValueError: si keep est négatif.
    """
    if keep < 0:
        raise ValueError("keep doit être >= 0")
    return list(versions_desc[keep:])
