"""Configurações do exporter de métricas do Trello.

Este módulo centraliza credenciais, porta HTTP, nível de logs e as tabelas
estáticas usadas na agregação (estimativas de tempo, prioridades e conjuntos
de listas/labels ignorados). Carrega valores a partir dos ``DEFAULT_*`` e
permite overrides via arquivo ``.env`` ou variáveis de ambiente.

As funções públicas principais são:

- ``load_settings()`` -> dicionário com as chaves "trello", "host", "port",
  "api_token", "log_level", "log_format" e "rules".
- ``validate_settings()`` -> valida credenciais e porta.
- ``build_rules()`` -> ``AggregationRules`` imutável para o agregador.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from ..trello.models import TimeEstimate

logger = logging.getLogger(__name__)

# ========================
# Constantes e padrões globais
# ========================

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"  # nosec B104
DEFAULT_TIMEOUT_SECONDS = 30.0

# idValue do campo personalizado "tempo" -> estimativa
DEFAULT_TIME_ESTIMATES = {
    "6317987e46e82a010a822ec0": TimeEstimate(range="<5 min", median="3 minutes", seconds=180),
    "6317987e46e82a010a822ec1": TimeEstimate(range="5 min - 15 min", median="10 minutes", seconds=600),
    "6317987e46e82a010a822ec2": TimeEstimate(range="15 min - 30 min", median="23 minutes", seconds=1380),
    "6317987e46e82a010a822ec3": TimeEstimate(range="30 min - 1 hour", median="45 minutes", seconds=2700),
    "6317987e46e82a010a822ec4": TimeEstimate(range="1 hour - 3 hours", median="2 hours", seconds=7200),
    "6317987e46e82a010a822ec5": TimeEstimate(range="3+ hours", median="4 hours", seconds=14400),
}

# idValue do campo personalizado "prioridade" -> nível (ordem = ordem de exposição)
DEFAULT_PRIORITIES = {
    "63237551f4e1250062d584d7": "Highest",
    "63237551f4e1250062d584d8": "High",
    "63237551f4e1250062d584d9": "Medium",
    "63237551f4e1250062d584da": "Low",
    "63237551f4e1250062d584db": "Lowest",
}

DEFAULT_LIST_IDS = {
    "Inbox": "67f45c29f80d25da0f543428",
    "Ref": "640fbcf689fe9b86e3721b60",
    "Decomp": "67291a8ff4e1941fe4df8c71",
    "Ready": "62ba39f3660d8d5b9ec940fe",
    "Today": "6601f48e27469813be23ba2e",
    "Blocked": "62ba548b2155ca280fefba5b",
    "Progress": "62ba39f599d17e0e24c5a212",
    "Work": "65b184b75a5f898ab7010288",
    "Done": "62ba39f7fc9ece2c518208a7",
}

DEFAULT_LABEL_IDS = {
    "Divider": "681a3bbe267f382f9ed138e8",
}

DEFAULT_IGNORED_LIST_IDS = (DEFAULT_LIST_IDS["Ref"], DEFAULT_LIST_IDS["Decomp"])
DEFAULT_DONE_LIST_IDS = (DEFAULT_LIST_IDS["Done"],)
DEFAULT_IGNORED_LABEL_IDS = (DEFAULT_LABEL_IDS["Divider"],)


@dataclass(frozen=True)
# Regras estáticas de agregação; criadas uma vez no startup e compartilhadas entre requisições
class AggregationRules:
    """Tabelas de decodificação e conjuntos de exclusão usados pelo agregador.

    Nunca são alteradas depois do startup, portanto podem ser compartilhadas
    entre requisições concorrentes sem lock.
    """

    time_estimates: Mapping[str, TimeEstimate]
    priorities: Mapping[str, str]
    ignored_list_ids: frozenset
    done_list_ids: frozenset
    ignored_label_ids: frozenset


# ========================
# 1. Carregamento das configurações
# ========================


# Função principal do módulo; carrega todas as configurações do ambiente
def load_settings() -> dict:
    """Carrega configurações combinando DEFAULTS + .env + ambiente.

    As variáveis em ambiente sobrescrevem valores do arquivo `.env`.
    """
    project_root = Path(__file__).resolve().parents[3]
    env_path = Path(os.getenv("TRELLO_EXPORTER_ENV_FILE", project_root / ".env"))

    env_items = _merge_env_items(env_path)

    settings = {
        "trello": {
            "key": env_items.get("TRELLO_KEY", "").strip(),
            "token": env_items.get("TRELLO_TOKEN", "").strip(),
            "board_id": env_items.get("TRELLO_BOARD_ID", "").strip(),
            "timeout": _read_float(env_items, "TRELLO_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        },
        "host": env_items.get("HOST") or DEFAULT_HOST,
        "port": _read_int(env_items, "PORT", DEFAULT_PORT),
        "api_token": env_items.get("API_TOKEN", ""),
        "log_level": (env_items.get("LOG_LEVEL") or "INFO").upper(),
        "log_format": (env_items.get("LOG_FORMAT") or "text").lower(),
    }
    settings["rules"] = build_rules(env_items)
    return settings


# ========================
# 2. Funções auxiliares para ambiente e overrides
# ========================


# Auxilia load_settings; criado para centralizar leitura do .env
def _read_env_file(path: Path | str) -> dict:
    """Lê um arquivo `.env` e devolve um dicionário chave->valor.

    Linhas vazias e comentários (começando com '#') são ignorados.
    """
    result: dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return result
    try:
        with p.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip()
                if key.startswith("export "):
                    key = key[len("export ") :].strip()
                val = val.strip().strip('"').strip("'")
                result[key] = val
    except OSError as exc:
        logger.debug("Falha ao ler .env em %s: %s", p, exc)
        return {}
    return result


# Auxilia load_settings; criado para unir variáveis do ambiente e .env
def _merge_env_items(env_path: Path) -> dict:
    """Retorna um mapeamento combinado de `.env` e env vars do processo.

    As variáveis do processo sobrescrevem o arquivo `.env`.
    """
    env_items = _read_env_file(env_path)
    if env_items == {} and env_path.exists():
        logger.warning("Erro ou ficheiro .env vazio em %s", env_path)
    env_items.update(os.environ)
    return env_items


def _read_int(env_items: dict, key: str, default: int) -> int:
    raw = env_items.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        logger.warning("Valor inválido para %s: %s; usando %s", key, raw, default)
        return default


def _read_float(env_items: dict, key: str, default: float) -> float:
    raw = env_items.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        logger.warning("Valor inválido para %s: %s; usando %s", key, raw, default)
        return default
    if value <= 0:
        logger.warning("%s deve ser > 0 (recebido %s); usando %s", key, raw, default)
        return default
    return value


# Auxilia build_rules; converte "id1, id2" em frozenset
def _parse_id_set(raw: str | None, default: tuple) -> frozenset:
    """Converte uma lista separada por vírgulas em frozenset de ids.

    Ausente -> ``default``. String vazia desativa o conjunto.
    """
    if raw is None:
        return frozenset(default)
    return frozenset(part.strip() for part in str(raw).split(",") if part.strip())


def build_rules(env_items: dict | None = None) -> AggregationRules:
    """Monta as regras de agregação aplicando overrides dos conjuntos de ids.

    Aceita ``TRELLO_IGNORED_LIST_IDS``, ``TRELLO_DONE_LIST_IDS`` e
    ``TRELLO_IGNORED_LABEL_IDS``. As tabelas de tempo e prioridade são fixas.
    """
    env_items = env_items or {}
    return AggregationRules(
        time_estimates=MappingProxyType(dict(DEFAULT_TIME_ESTIMATES)),
        priorities=MappingProxyType(dict(DEFAULT_PRIORITIES)),
        ignored_list_ids=_parse_id_set(env_items.get("TRELLO_IGNORED_LIST_IDS"), DEFAULT_IGNORED_LIST_IDS),
        done_list_ids=_parse_id_set(env_items.get("TRELLO_DONE_LIST_IDS"), DEFAULT_DONE_LIST_IDS),
        ignored_label_ids=_parse_id_set(env_items.get("TRELLO_IGNORED_LABEL_IDS"), DEFAULT_IGNORED_LABEL_IDS),
    )


# ========================
# 3. Validação
# ========================


# Função principal de validação; garante credenciais e porta corretas
def validate_settings(settings: dict) -> dict:
    """Valida o dicionário de configurações.

    Levanta ``ValueError`` quando faltam credenciais do Trello ou a porta é
    inválida. Um ``api_token`` vazio apenas gera aviso.
    """
    if not isinstance(settings, dict):
        raise TypeError("settings deve ser um dict")

    trello = settings.get("trello")
    if not isinstance(trello, dict):
        trello = {}
    missing = [
        env_name
        for env_name, key in (("TRELLO_KEY", "key"), ("TRELLO_TOKEN", "token"), ("TRELLO_BOARD_ID", "board_id"))
        if not trello.get(key)
    ]
    if missing:
        raise ValueError(f"Missing env: {', '.join(missing)} (TRELLO_KEY, TRELLO_TOKEN, TRELLO_BOARD_ID are required)")

    port = settings.get("port", DEFAULT_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ValueError(f"porta inválida: {port!r}")

    if not settings.get("api_token"):
        logger.warning("API is unauthenticated, use API_TOKEN env variable to set a token for authentication.")

    settings.setdefault("log_level", "INFO")
    settings.setdefault("rules", build_rules())
    logger.debug("Configurações validadas")
    return settings
