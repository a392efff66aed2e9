"""Pacote trello: cliente da API REST e registros do domínio."""

from .client import TrelloAPIError, TrelloClient
from .models import Board, BoardSnapshot, Card, CustomFieldItem, Label, Member, TimeEstimate, TrelloList

__all__ = [
    "TrelloAPIError",
    "TrelloClient",
    "Board",
    "BoardSnapshot",
    "Card",
    "CustomFieldItem",
    "Label",
    "Member",
    "TimeEstimate",
    "TrelloList",
]
