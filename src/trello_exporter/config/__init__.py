"""Pacote config: carregamento e validação das configurações do exporter."""

from .settings import AggregationRules, build_rules, load_settings, validate_settings

__all__ = ["AggregationRules", "build_rules", "load_settings", "validate_settings"]
