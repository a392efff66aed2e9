"""Ponto de entrada do exporter de métricas do Trello.

Este módulo realiza a inicialização da aplicação: parsing de argumentos CLI,
carregamento e validação das configurações, configuração de logging e
inicialização do servidor HTTP. A lógica de cada requisição fica em `core`
para facilitar testes e reutilização.
"""

import json as _json
import logging as _logging
import sys

from .config.settings import load_settings, validate_settings
from .core.args import apply_cli_overrides, parse_args
from .core.core import MetricsBuilder
from .exporter.main_http import run_http_server
from .trello.client import TrelloClient

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    """Inicializa a aplicação e serve /metrics (ou imprime uma vez com --once).

    Args:
        argv: Lista de argumentos (usada em testes). Quando ``None`` a função
            utiliza os argumentos de linha de comando do processo.

    Returns:
        Código de saída do processo.

    """
    args = parse_args(argv)
    settings = apply_cli_overrides(args, load_settings())
    _setup_logging(settings.get("log_level", "INFO"), settings.get("log_format", "text"))

    settings = validate_settings(settings)
    trello = settings["trello"]
    client = TrelloClient(trello["key"], trello["token"], timeout=trello["timeout"])
    build = MetricsBuilder(client, trello["board_id"], settings["rules"])

    try:
        # Render inicial: falha cedo com credenciais ou quadro inválidos
        body = build()
        if args.once:
            sys.stdout.write(body)
            sys.stdout.flush()
            return 0
        _logging.getLogger(__name__).info("Render inicial OK (%d linhas)", body.count("\n"))

        run_http_server(
            build,
            addr=settings["host"],
            port=settings["port"],
            api_token=settings.get("api_token", ""),
        )
    finally:
        client.close()
    return 0


def _setup_logging(level_name: str, log_format: str = "text") -> None:
    """Configura o logger root (texto legível ou JSON por linha).

    ``log_format == "json"`` troca o formatter do handler de stderr por
    ``_JSONFormatter`` para ingestão por coletores de log.
    """
    level = getattr(_logging, str(level_name).upper(), _logging.INFO)
    _logging.basicConfig(level=level, format=_LOG_FORMAT)
    root = _logging.getLogger()
    root.setLevel(level)
    if str(log_format).lower() == "json":
        for handler in root.handlers:
            handler.setFormatter(_get_json_formatter())


def _get_json_formatter():
    class _JSONFormatter(_logging.Formatter):
        def format(self, record):
            try:
                ts = self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ")
            except Exception:
                ts = ""
            obj = {
                "ts": ts,
                "level": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info:
                obj["exc"] = self.formatException(record.exc_info)
            return _json.dumps(obj, ensure_ascii=False)

    return _JSONFormatter()


if __name__ == "__main__":
    sys.exit(main())
