"""Serialização das famílias de métricas no formato texto do Prometheus.

Para cada família (na ordem do dict) emite ``# TYPE``, ``# HELP`` e uma linha
por amostra, na ordem em que o agregador as produziu.
"""

import math
from typing import Any, Mapping

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def escape_label_value(value: Any) -> str:
    r"""Escapa um valor de label: ``\`` -> ``\\``, ``"`` -> ``\"``, newline -> ``\n``.

    A barra invertida é tratada primeiro; nenhum outro caractere é alterado.
    """
    if value is None:
        value = ""
    return str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_value(value: Any) -> str:
    """Representação decimal natural do valor (inteiros sem parte fracionária).

    Retorna string do número (ex: '1', '0', '3.14', 'NaN', '+Inf').
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    fv = float(value)
    if math.isnan(fv):
        return "NaN"
    if math.isinf(fv):
        return "+Inf" if fv > 0 else "-Inf"
    if fv.is_integer():
        return str(int(fv))
    return repr(fv)


def _format_labels(labels: Mapping[str, Any]) -> str:
    return ", ".join(f'{k}="{escape_label_value(v)}"' for k, v in (labels or {}).items())


def format_metrics(families: Mapping[str, Any]) -> str:
    """Gera o texto de exposição completo para o mapeamento de famílias.

    Cada família precisa expor ``documentation`` e ``samples`` (como
    ``prometheus_client.core.GaugeMetricFamily``); o nome usado nas linhas é
    a chave do mapeamento.
    """
    lines: list[str] = []
    for name, family in families.items():
        lines.append(f"# TYPE {name} gauge")
        lines.append(f"# HELP {name} {family.documentation}")
        for sample in family.samples:
            lines.append(f"{name}{{{_format_labels(sample.labels)}}} {format_value(sample.value)}")
    return "".join(f"{line}\n" for line in lines)
