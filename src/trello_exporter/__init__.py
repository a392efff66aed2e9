"""Exporter Prometheus para um quadro do Trello.

Busca quadro, listas, labels, membros e cards na API do Trello a cada scrape,
agrega contagens e somas por categoria e expõe o resultado em ``/metrics``.
"""

__version__ = "0.1.0"
