"""Agregação do snapshot do quadro em famílias de métricas.

Recebe as coleções já decodificadas (quadro, listas, labels, membros e cards),
aplica os filtros uma única vez e produz um dict ordenado
``nome -> GaugeMetricFamily``. Não faz I/O e não levanta erros de domínio.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable

from prometheus_client.core import GaugeMetricFamily

from ..config.settings import AggregationRules
from ..trello.models import Board, Card, Label, Member, TimeEstimate, TrelloList

logger = logging.getLogger(__name__)

# ========================
# 0. Famílias expostas (a ordem define a ordem de saída)
# ========================

BOARDS_TOTAL = "trello_boards_total"
CARDS_IN_LIST_TOTAL = "trello_cards_in_list_total"
LABELED_CARDS_ON_BOARD = "trello_labeled_cards_on_board"
CARDS_PER_BOARD_MEMBER = "trello_cards_per_board_member"
LISTS_PER_BOARD = "trello_lists_per_board"
TIME_IN_LIST_TOTAL = "trello_time_in_list_total"
CARDS_BY_PRIORITY_TOTAL = "trello_cards_by_priority_total"
CARDS_BY_TIME_TOTAL = "trello_cards_by_time_total"

METRIC_FAMILIES = {
    BOARDS_TOTAL: ("Total number of Trello boards", ()),
    CARDS_IN_LIST_TOTAL: ("Number of cards per list", ("board", "list")),
    LABELED_CARDS_ON_BOARD: ("Number of cards per board and label", ("board", "label")),
    CARDS_PER_BOARD_MEMBER: ("Number of cards per board and member", ("board", "member")),
    LISTS_PER_BOARD: ("Number of lists per board", ("board",)),
    TIME_IN_LIST_TOTAL: ("Total estimated time in each list (in seconds)", ("board", "list")),
    CARDS_BY_PRIORITY_TOTAL: ("Number of cards by priority (excluding done cards)", ("board", "priority")),
    CARDS_BY_TIME_TOTAL: ("Number of cards by time (excluding done cards)", ("board", "time")),
}


@dataclass(frozen=True)
# Card que sobreviveu aos filtros, já com os campos personalizados resolvidos
class ClassifiedCard:
    card: Card
    time: TimeEstimate | None
    priority: str | None


# ========================
# 1. Filtros e classificação
# ========================


def filter_lists(lists: Iterable[TrelloList], rules: AggregationRules) -> list[TrelloList]:
    """Remove as listas configuradas como ignoradas."""
    return [lst for lst in lists if lst.id not in rules.ignored_list_ids]


def is_card_excluded(card: Card, rules: AggregationRules) -> bool:
    """Indica se o card deve ser descartado antes de qualquer agrupamento."""
    if not card.id_list:
        return True
    if card.id_list in rules.ignored_list_ids:
        return True
    if any(label_id in rules.ignored_label_ids for label_id in card.id_labels):
        return True
    return card.is_separator


def resolve_custom_fields(card: Card, rules: AggregationRules) -> tuple[TimeEstimate | None, str | None]:
    """Resolve estimativa de tempo e prioridade a partir dos campos personalizados.

    Percorre os itens na ordem recebida; para cada tabela o último item
    reconhecido sobrescreve os anteriores. Ids desconhecidos são ignorados.
    """
    time: TimeEstimate | None = None
    priority: str | None = None
    for item in card.custom_field_items:
        if not item.id_value:
            continue
        if item.id_value in rules.time_estimates:
            time = rules.time_estimates[item.id_value]
        if item.id_value in rules.priorities:
            priority = rules.priorities[item.id_value]
    return time, priority


def classify_cards(cards: Iterable[Card], rules: AggregationRules) -> list[ClassifiedCard]:
    """Aplica o filtro de cards e resolve os campos personalizados dos restantes."""
    out = []
    dropped = 0
    for card in cards:
        if is_card_excluded(card, rules):
            dropped += 1
            continue
        time, priority = resolve_custom_fields(card, rules)
        out.append(ClassifiedCard(card=card, time=time, priority=priority))
    logger.debug("Cards filtrados: %d mantidos, %d descartados", len(out), dropped)
    return out


# ========================
# 2. Agregação (API pública)
# ========================


def _new_families() -> dict[str, GaugeMetricFamily]:
    return {
        name: GaugeMetricFamily(name, help_text, labels=list(labelnames))
        for name, (help_text, labelnames) in METRIC_FAMILIES.items()
    }


def aggregate(
    board: Board,
    lists: Iterable[TrelloList],
    labels: Iterable[Label],
    members: Iterable[Member],
    cards: Iterable[Card],
    rules: AggregationRules,
) -> dict[str, GaugeMetricFamily]:
    """Calcula todas as famílias de métricas para um snapshot do quadro.

    Retorna um dict cuja ordem de inserção é a ordem de ``METRIC_FAMILIES``.
    Listas, prioridades e faixas de tempo são sempre enumeradas (mesmo com
    contagem 0); labels e membros só aparecem com contagem > 0.
    """
    families = _new_families()
    board_name = board.display_name

    kept_lists = filter_lists(lists, rules)
    classified = classify_cards(cards, rules)
    open_cards = [c for c in classified if not c.card.closed]

    families[BOARDS_TOTAL].add_metric([], 1)
    families[LISTS_PER_BOARD].add_metric([board_name], len(kept_lists))

    cards_by_list: Counter = Counter(c.card.id_list for c in open_cards)
    for lst in kept_lists:
        families[CARDS_IN_LIST_TOTAL].add_metric([board_name, lst.name], cards_by_list[lst.id])

    # done lists só são excluídas da contagem por prioridade
    cards_by_priority: Counter = Counter(
        c.priority for c in open_cards if c.priority is not None and c.card.id_list not in rules.done_list_ids
    )
    for priority in rules.priorities.values():
        families[CARDS_BY_PRIORITY_TOTAL].add_metric([board_name, priority], cards_by_priority[priority])

    cards_by_time: Counter = Counter(c.time.range for c in open_cards if c.time is not None)
    for estimate in rules.time_estimates.values():
        families[CARDS_BY_TIME_TOTAL].add_metric([board_name, estimate.range], cards_by_time[estimate.range])

    seconds_by_list: defaultdict = defaultdict(int)
    for c in open_cards:
        if c.time is not None:
            seconds_by_list[c.card.id_list] += c.time.seconds
    for lst in kept_lists:
        families[TIME_IN_LIST_TOTAL].add_metric([board_name, lst.name], seconds_by_list[lst.id])

    cards_by_label: Counter = Counter(label_id for c in open_cards for label_id in c.card.id_labels)
    for label in labels:
        count = cards_by_label[label.id]
        if count > 0:
            families[LABELED_CARDS_ON_BOARD].add_metric([board_name, label.display_name], count)

    cards_by_member: Counter = Counter(member_id for c in open_cards for member_id in c.card.id_members)
    for member in members:
        count = cards_by_member[member.id]
        if count > 0:
            families[CARDS_PER_BOARD_MEMBER].add_metric([board_name, member.display_name], count)

    logger.debug(
        "Agregação concluída para %r: %d listas, %d cards abertos",
        board_name,
        len(kept_lists),
        len(open_cards),
    )
    return families
