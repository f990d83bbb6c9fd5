"""Utilitaires de date/heure (UTC).

SQLite restitue des datetimes naïfs: toute comparaison passe par `ensure_utc`.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Retourne l'instant courant en UTC (aware)."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Rend un datetime aware en UTC; un datetime naïf est supposé déjà en UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def from_unix(value: object) -> datetime | None:
    """Convertit un timestamp Unix (int/float/str numérique) en datetime UTC, sinon None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, int | float):
        return None
    try:
        return datetime.fromtimestamp(value, UTC)
    except (OverflowError, OSError, ValueError):
        return None
