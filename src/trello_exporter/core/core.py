"""Core do exporter: busca, agregação e formatação por requisição.

Cada chamada recomputa o snapshot do quadro do zero; não há cache nem
estado compartilhado além das regras estáticas.
"""

import logging

from ..config.settings import AggregationRules
from ..exporter.exposition import format_metrics
from ..monitoring.aggregator import aggregate
from ..trello.client import TrelloClient
from ..trello.models import BoardSnapshot

logger = logging.getLogger(__name__)


def collect_families(snapshot: BoardSnapshot, rules: AggregationRules) -> dict:
    """Agrega um ``BoardSnapshot`` em famílias de métricas."""
    return aggregate(
        snapshot.board,
        snapshot.lists,
        snapshot.labels,
        snapshot.members,
        snapshot.cards,
        rules,
    )


# Função principal do módulo; executa o pipeline completo de uma requisição
def build_metrics(client: TrelloClient, board_id: str, rules: AggregationRules) -> str:
    """Busca o quadro, agrega e devolve o texto de exposição.

    Falhas do upstream (``TrelloAPIError``) são propagadas sem retry.
    """
    import time

    started = time.monotonic()
    snapshot = client.fetch_board_snapshot(board_id)
    body = format_metrics(collect_families(snapshot, rules))
    logger.debug("Métricas geradas em %.3fs (%d bytes)", time.monotonic() - started, len(body))
    return body


class MetricsBuilder:
    """Callable sem argumentos que amarra cliente, quadro e regras.

    É o que o servidor HTTP invoca a cada ``GET /metrics``.
    """

    def __init__(self, client: TrelloClient, board_id: str, rules: AggregationRules):
        self.client = client
        self.board_id = board_id
        self.rules = rules

    def __call__(self) -> str:
        return build_metrics(self.client, self.board_id, self.rules)
