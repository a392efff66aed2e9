"""Parser de argumentos da linha de comando.

Este módulo fornece um parser simples que expõe:
- endereço e porta do servidor HTTP (--host / --port)
- modo único (--once): imprime as métricas no stdout e sai
- verbosidade (-v) e nível de logging (--log-level)

Valores da CLI têm precedência sobre variáveis de ambiente / .env; quando um
argumento não é informado o valor fica ``None`` e o de ``load_settings`` vale.
"""

import argparse
from typing import Sequence

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# Função principal do módulo; cria e retorna o ArgumentParser configurado
def configure_argparser() -> argparse.ArgumentParser:
    """Cria e retorna ArgumentParser configurado para o exporter."""
    parser = argparse.ArgumentParser(
        prog="trello-exporter",
        description="Exporter Prometheus para um quadro do Trello",
    )
    parser.add_argument("--host", type=str, default=None, help="Endereço de bind (substitui HOST)")
    parser.add_argument("-p", "--port", type=int, default=None, help="Porta HTTP (substitui PORT)")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Gera as métricas uma vez, imprime no stdout e sai",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Aumenta a verbosidade (-v = DEBUG)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        default=None,
        help="Nível de logging (DEBUG/INFO/WARNING/ERROR). Substitui LOG_LEVEL",
    )
    return parser


# Auxilia main; criado para analisar argv e validar argumentos
def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Analisa argv e retorna Namespace validado."""
    ns = configure_argparser().parse_args(argv)
    validate_args(ns)
    return ns


# Auxilia parse_args; criado para garantir valores corretos
def validate_args(args: argparse.Namespace) -> None:
    """Valida e normaliza argumentos."""
    port = getattr(args, "port", None)
    if port is not None:
        try:
            port = int(port)
        except (TypeError, ValueError) as exc:
            raise ValueError("porta deve ser um inteiro") from exc
        if not 0 <= port <= 65535:
            raise ValueError("porta deve estar entre 0 e 65535")
        args.port = port

    level = getattr(args, "log_level", None)
    if level:
        level = str(level).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"nível de log inválido: {level}")
        args.log_level = level


def apply_cli_overrides(args: argparse.Namespace, settings: dict) -> dict:
    """Aplica à configuração os valores informados explicitamente na CLI."""
    if getattr(args, "host", None):
        settings["host"] = args.host
    if getattr(args, "port", None) is not None:
        settings["port"] = args.port
    settings["log_level"] = get_log_level(args, settings.get("log_level", "INFO"))
    return settings


def get_log_level(args: argparse.Namespace, default: str = "INFO") -> str:
    """Retorna o nível de log: --log-level > -v > padrão."""
    if getattr(args, "log_level", None):
        return str(args.log_level).upper()
    if (getattr(args, "verbose", 0) or 0) >= 1:
        return "DEBUG"
    return str(default or "INFO").upper()
