"""Registros do domínio Trello usados pelo agregador.

Os construtores ``from_dict`` aceitam o JSON já decodificado da API e aplicam
defaults para campos ausentes ou malformados: arrays ausentes viram listas
vazias e nomes ausentes viram string vazia. Nada aqui levanta erro de domínio.
"""

from dataclasses import dataclass, field
from typing import Any

UNKNOWN_BOARD_NAME = "(unknown)"
SEPARATOR_ROLE = "separator"


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _dicts(raw: Any) -> list[dict]:
    """Filtra uma coleção bruta mantendo apenas os itens dict."""
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


@dataclass(frozen=True)
class TimeEstimate:
    """Estimativa de duração de um card (faixa + segundos representativos)."""

    range: str
    median: str
    seconds: int


@dataclass(frozen=True)
class Board:
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_BOARD_NAME

    @classmethod
    def from_dict(cls, raw: Any) -> "Board":
        if not isinstance(raw, dict):
            return cls()
        return cls(name=_str(raw.get("name")))


@dataclass(frozen=True)
class TrelloList:
    id: str
    name: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "TrelloList":
        return cls(id=_str(raw.get("id")), name=_str(raw.get("name")))


@dataclass(frozen=True)
class Label:
    id: str
    name: str = ""
    color: str = ""

    @property
    def display_name(self) -> str:
        """Nome do label, com fallback para a cor e depois 'unlabeled'."""
        return self.name or self.color or "unlabeled"

    @classmethod
    def from_dict(cls, raw: dict) -> "Label":
        return cls(id=_str(raw.get("id")), name=_str(raw.get("name")), color=_str(raw.get("color")))


@dataclass(frozen=True)
class Member:
    id: str
    full_name: str = ""
    username: str = ""

    @property
    def display_name(self) -> str:
        """Nome completo, com fallback para username e depois para o id."""
        return self.full_name or self.username or self.id

    @classmethod
    def from_dict(cls, raw: dict) -> "Member":
        return cls(
            id=_str(raw.get("id")),
            full_name=_str(raw.get("fullName")),
            username=_str(raw.get("username")),
        )


@dataclass(frozen=True)
class CustomFieldItem:
    id_value: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> "CustomFieldItem":
        if not isinstance(raw, dict):
            return cls()
        return cls(id_value=_str(raw.get("idValue")))


@dataclass(frozen=True)
class Card:
    id: str
    id_list: str = ""
    id_labels: list[str] = field(default_factory=list)
    id_members: list[str] = field(default_factory=list)
    closed: bool = False
    card_role: str | None = None
    custom_field_items: list[CustomFieldItem] = field(default_factory=list)

    @property
    def is_separator(self) -> bool:
        return self.card_role == SEPARATOR_ROLE

    @classmethod
    def from_dict(cls, raw: dict) -> "Card":
        items = raw.get("customFieldItems")
        role = raw.get("cardRole")
        return cls(
            id=_str(raw.get("id")),
            id_list=_str(raw.get("idList")),
            id_labels=_str_list(raw.get("idLabels")),
            id_members=_str_list(raw.get("idMembers")),
            closed=bool(raw.get("closed")),
            card_role=str(role) if role is not None else None,
            custom_field_items=[CustomFieldItem.from_dict(i) for i in items] if isinstance(items, list) else [],
        )


@dataclass(frozen=True)
# Agrupa uma leitura completa do quadro; reconstruída a cada requisição
class BoardSnapshot:
    board: Board
    lists: list[TrelloList]
    labels: list[Label]
    members: list[Member]
    cards: list[Card]

    @classmethod
    def from_raw(cls, board: Any, lists: Any, labels: Any, members: Any, cards: Any) -> "BoardSnapshot":
        """Constrói o snapshot a partir das cinco coleções JSON da API."""
        return cls(
            board=Board.from_dict(board),
            lists=[TrelloList.from_dict(r) for r in _dicts(lists)],
            labels=[Label.from_dict(r) for r in _dicts(labels)],
            members=[Member.from_dict(r) for r in _dicts(members)],
            cards=[Card.from_dict(r) for r in _dicts(cards)],
        )
