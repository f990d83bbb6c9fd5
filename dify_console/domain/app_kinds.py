"""Familles d'applications Dify.

Une application locale porte des champs communs plus une configuration propre à sa famille
(`kind_config`). Ce module fait la correspondance mode distant → famille et liste les clés de
configuration recopiées pour chaque famille.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class AppKind(str, Enum):
    """Famille d'application locale."""

    CHAT_ASSISTANT = "chat_assistant"
    WORKFLOW = "workflow"
    CHATFLOW = "chatflow"


MODE_TO_KIND: dict[str, AppKind] = {
    "chat": AppKind.CHAT_ASSISTANT,
    "agent-chat": AppKind.CHAT_ASSISTANT,
    "advanced-chat": AppKind.CHAT_ASSISTANT,
    "completion": AppKind.CHAT_ASSISTANT,
    "workflow": AppKind.WORKFLOW,
    "chatflow": AppKind.CHATFLOW,
}

KIND_CONFIG_KEYS: dict[AppKind, tuple[str, ...]] = {
    AppKind.CHAT_ASSISTANT: ("model_config", "retrieval_setting", "prompt_template"),
    AppKind.WORKFLOW: ("workflow_config", "input_schema", "output_schema"),
    AppKind.CHATFLOW: ("workflow_config", "model_config", "conversation_config"),
}


def kind_for_mode(mode: str | None) -> AppKind | None:
    """Retourne la famille associée au mode distant, None si non supporté."""
    if mode is None:
        return None
    return MODE_TO_KIND.get(mode)


def extract_kind_config(kind: AppKind, app_data: dict[str, Any]) -> dict[str, Any]:
    """Extrait la configuration propre à la famille depuis les données distantes.

    Seules les clés présentes et non nulles sont conservées.
    """
    return {
        key: app_data[key]
        for key in KIND_CONFIG_KEYS[kind]
        if app_data.get(key) is not None
    }
