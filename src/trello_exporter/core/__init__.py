"""Pacote core: orquestração de cada requisição e parsing de argumentos.

Re-exports para importações curtas como ``from trello_exporter.core import build_metrics``.
"""

from .core import MetricsBuilder, build_metrics, collect_families

__all__ = ["MetricsBuilder", "build_metrics", "collect_families"]
