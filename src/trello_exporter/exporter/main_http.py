"""Entrypoint HTTP: expõe endpoints /health e /metrics para o Prometheus.

``/metrics`` recomputa o snapshot do quadro a cada scrape e, quando
``API_TOKEN`` está configurado, exige ``Authorization: Bearer <token>``.
"""

import hmac
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable
from urllib.parse import urlsplit

from .exposition import CONTENT_TYPE

logger = logging.getLogger(__name__)

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class MetricsHTTPServer(ThreadingHTTPServer):
    """Servidor com uma thread por requisição que carrega o builder de métricas e o token.

    Um scrape lento (upstream até ``TRELLO_TIMEOUT_SECONDS``) não bloqueia /health.
    """

    daemon_threads = True

    def __init__(self, server_address, build_metrics: Callable[[], str], api_token: str = ""):
        super().__init__(server_address, MetricsHandler)
        self.build_metrics = build_metrics
        self.api_token = api_token or ""


def check_auth(authorization: str | None, api_token: str) -> bool:
    """Valida o header Authorization contra o token configurado.

    Sem token configurado o acesso é livre. A comparação é timing-safe.
    """
    if not api_token:
        return True
    if not authorization or not authorization.startswith("Bearer "):
        return False
    token = authorization[len("Bearer ") :]
    return hmac.compare_digest(token.encode("utf-8"), api_token.encode("utf-8"))


class MetricsHandler(BaseHTTPRequestHandler):
    """HTTP handler para endpoints /health e /metrics."""

    server: MetricsHTTPServer

    def do_GET(self):
        """Manipula requisições GET para /health, /metrics e outros endpoints.

        A resposta é montada por completo antes de qualquer escrita no socket;
        assim o 500 só é enviado quando nada foi escrito ainda.
        """
        path = urlsplit(self.path).path
        try:
            status, body, content_type, headers = self._route(path)
        except Exception as exc:
            logger.exception("Falha ao processar %s: %s", path, exc)
            status, body, content_type, headers = (
                500,
                f"Internal Server Error\n{exc}\n".encode("utf-8"),
                "text/plain; charset=utf-8",
                None,
            )
        try:
            self._send(status, body, content_type, headers)
        except (BrokenPipeError, ConnectionResetError) as exc:
            # cliente desistiu (ex.: timeout do scrape); não há mais o que responder
            logger.warning("Cliente desconectou antes da resposta de %s: %s", path, exc)

    def _route(self, path: str) -> tuple[int, bytes, str | None, dict | None]:
        if path == "/metrics":
            return self._handle_metrics()
        if path == "/health":
            return 200, b"ok\n", "text/plain", None
        return 404, b"Not Found\n", "text/plain; charset=utf-8", None

    def _handle_metrics(self) -> tuple[int, bytes, str | None, dict | None]:
        if not check_auth(self.headers.get("Authorization"), self.server.api_token):
            return 401, b"", None, None
        body = self.server.build_metrics()
        return 200, body.encode("utf-8"), CONTENT_TYPE, _NO_CACHE_HEADERS

    def _send(self, status: int, body: bytes, content_type: str | None, extra_headers: dict | None = None):
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for k, v in (extra_headers or {}).items():
            self.send_header(k, v)
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        """Encaminha o access log do http.server para o logger em DEBUG."""
        logger.debug("%s - %s", self.address_string(), format % args)


def create_server(addr: str, port: int, build_metrics: Callable[[], str], api_token: str = "") -> MetricsHTTPServer:
    """Cria o servidor sem iniciá-lo (porta 0 escolhe uma porta livre)."""
    return MetricsHTTPServer((addr, port), build_metrics, api_token)


def run_http_server(build_metrics: Callable[[], str], addr: str = "0.0.0.0", port: int = 3000, api_token: str = ""):  # nosec B104
    """Inicia o servidor HTTP e bloqueia até KeyboardInterrupt.

    Observação:
        Sem ``api_token`` o endpoint /metrics fica aberto. Proteja o acesso com
        token, firewall ou redes privadas quando necessário.
    """
    server = create_server(addr, port, build_metrics, api_token)
    host, bound_port = server.server_address[:2]
    logger.info("Trello Prometheus metrics server listening on http://%s:%d", host, bound_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Recebido KeyboardInterrupt, encerrando servidor...")
    finally:
        server.server_close()
