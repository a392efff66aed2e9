"""Pacote monitoring: agregação do snapshot do quadro em famílias de métricas."""

from .aggregator import METRIC_FAMILIES, aggregate

__all__ = ["METRIC_FAMILIES", "aggregate"]
