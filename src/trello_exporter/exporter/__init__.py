"""Pacote exporter: exposição das métricas no formato texto do Prometheus.

Fornece o formatter de exposição e o servidor HTTP (/metrics, /health).
"""

from .exposition import CONTENT_TYPE, escape_label_value, format_metrics

__all__ = ["CONTENT_TYPE", "escape_label_value", "format_metrics"]
