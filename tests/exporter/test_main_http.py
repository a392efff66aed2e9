import logging
import threading
from types import SimpleNamespace

import pytest
import requests

from trello_exporter.exporter import main_http
from trello_exporter.trello.client import TrelloAPIError

BODY = "# TYPE trello_boards_total gauge\n# HELP trello_boards_total Total number of Trello boards\ntrello_boards_total{} 1\n"


@pytest.fixture
def serve():
    """Sobe um servidor em porta efêmera e devolve a URL base."""
    servers = []

    def _start(build=lambda: BODY, api_token=""):
        server = main_http.create_server("127.0.0.1", 0, build, api_token)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread))
        host, port = server.server_address[:2]
        return f"http://{host}:{port}"

    yield _start
    for server, thread in servers:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def test_check_auth():
    """Sem token tudo passa; com token exige 'Bearer <token>' exato."""
    assert main_http.check_auth(None, "")
    assert main_http.check_auth("Bearer qualquer", "")
    assert main_http.check_auth("Bearer s3cret", "s3cret")
    assert not main_http.check_auth("Bearer errado", "s3cret")
    assert not main_http.check_auth("s3cret", "s3cret")
    assert not main_http.check_auth("Basic s3cret", "s3cret")
    assert not main_http.check_auth(None, "s3cret")


def test_metrics_endpoint_returns_exposition(serve):
    """GET /metrics devolve o texto com content-type e headers sem cache."""
    base = serve()
    resp = requests.get(f"{base}/metrics", timeout=5)
    assert resp.status_code == 200
    assert resp.text == BODY
    assert resp.headers["Content-Type"] == "text/plain; version=0.0.4; charset=utf-8"
    assert resp.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
    assert resp.headers["Pragma"] == "no-cache"
    assert resp.headers["Expires"] == "0"


def test_metrics_recomputed_per_request(serve):
    """Cada scrape chama o builder de novo (sem cache)."""
    calls = []

    def build():
        calls.append(1)
        return f"x {len(calls)}\n"

    base = serve(build)
    assert requests.get(f"{base}/metrics", timeout=5).text == "x 1\n"
    assert requests.get(f"{base}/metrics?foo=bar", timeout=5).text == "x 2\n"
    assert len(calls) == 2


def test_metrics_requires_bearer_token(serve):
    """Com API_TOKEN configurado, /metrics responde 401 sem o token correto."""
    base = serve(api_token="s3cret")
    assert requests.get(f"{base}/metrics", timeout=5).status_code == 401
    bad = requests.get(f"{base}/metrics", headers={"Authorization": "Bearer nope"}, timeout=5)
    assert bad.status_code == 401
    assert bad.text == ""
    ok = requests.get(f"{base}/metrics", headers={"Authorization": "Bearer s3cret"}, timeout=5)
    assert ok.status_code == 200
    assert ok.text == BODY


def test_health_is_open_even_with_token(serve):
    """/health responde ok sem autenticação."""
    base = serve(api_token="s3cret")
    resp = requests.get(f"{base}/health", timeout=5)
    assert resp.status_code == 200
    assert resp.text == "ok\n"


def test_unknown_path_is_404(serve):
    """Rotas desconhecidas respondem 404."""
    base = serve()
    resp = requests.get(f"{base}/nope", timeout=5)
    assert resp.status_code == 404
    assert resp.text == "Not Found\n"


def test_upstream_failure_is_500(serve, caplog):
    """Falha no upstream vira 500 com a mensagem e é registrada no log."""
    caplog.set_level(logging.ERROR)

    def build():
        raise TrelloAPIError("Trello GET /boards/b failed: 401 Unauthorized invalid key", status=401)

    base = serve(build)
    resp = requests.get(f"{base}/metrics", timeout=5)
    assert resp.status_code == 500
    assert resp.text == "Internal Server Error\nTrello GET /boards/b failed: 401 Unauthorized invalid key\n"
    assert any("Falha ao processar /metrics" in r.getMessage() for r in caplog.records)


def test_health_answers_while_metrics_build_is_slow(serve):
    """Um scrape lento não bloqueia /health (uma thread por requisição)."""
    started = threading.Event()
    release = threading.Event()

    def slow_build():
        started.set()
        release.wait(timeout=10)
        return BODY

    base = serve(slow_build)
    result = {}
    scrape = threading.Thread(
        target=lambda: result.update(resp=requests.get(f"{base}/metrics", timeout=15)), daemon=True
    )
    scrape.start()
    try:
        assert started.wait(timeout=5)
        health = requests.get(f"{base}/health", timeout=2)
        assert health.status_code == 200
        assert health.text == "ok\n"
    finally:
        release.set()
        scrape.join(timeout=15)
    assert result["resp"].status_code == 200
    assert result["resp"].text == BODY


class _BrokenWriter:
    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")


def _offline_handler(path, build=lambda: BODY, api_token=""):
    """Handler sem socket: registra status enviados e falha ao escrever o corpo."""
    handler = main_http.MetricsHandler.__new__(main_http.MetricsHandler)
    handler.path = path
    handler.headers = {}
    handler.server = SimpleNamespace(build_metrics=build, api_token=api_token)
    handler.wfile = _BrokenWriter()
    handler.statuses = []
    handler.send_response = lambda status, message=None: handler.statuses.append(status)
    handler.send_header = lambda k, v: None
    handler.end_headers = lambda: None
    return handler


def test_client_disconnect_does_not_send_second_status(caplog):
    """Falha de escrita após o status não gera um 500 no mesmo socket."""
    caplog.set_level(logging.WARNING)
    for path in ("/health", "/metrics", "/nope"):
        handler = _offline_handler(path)
        handler.do_GET()
        assert len(handler.statuses) == 1
        assert 500 not in handler.statuses
    assert any("Cliente desconectou" in r.getMessage() for r in caplog.records)
    assert not any(r.levelno >= logging.ERROR for r in caplog.records)


def test_build_error_sends_single_500():
    """Erro ao montar as métricas gera exatamente um status 500."""

    def build():
        raise TrelloAPIError("down")

    handler = _offline_handler("/metrics", build=build)
    handler.do_GET()
    assert handler.statuses == [500]
