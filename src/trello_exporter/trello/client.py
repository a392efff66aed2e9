"""Cliente HTTP mínimo para a API REST do Trello.

Funções principais:
- TrelloClient.get: executa um GET autenticado e devolve o JSON decodificado
- TrelloClient.fetch_board_snapshot: busca quadro, listas, labels, membros e
  cards em paralelo e devolve um ``BoardSnapshot``

Não há retries: qualquer falha (rede, status não-2xx, JSON inválido) é
propagada como ``TrelloAPIError`` e derruba a requisição inteira.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import requests  # type: ignore[import-untyped]

from .models import BoardSnapshot

logger = logging.getLogger(__name__)

TRELLO_API = "https://api.trello.com/1"
CARDS_LIMIT = 1000


class TrelloAPIError(RuntimeError):
    """Falha ao consultar a API do Trello."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TrelloClient:
    """Cliente síncrono baseado em ``requests.Session``."""

    def __init__(
        self,
        key: str,
        token: str,
        timeout: float = 30.0,
        base_url: str = TRELLO_API,
        session: requests.Session | None = None,
    ):
        self.key = key
        self.token = token
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()

    def _query(self, params: dict | None) -> dict:
        query = {"key": self.key, "token": self.token}
        for k, v in (params or {}).items():
            if v is not None:
                query[k] = str(v)
        return query

    def get(self, path: str, params: dict | None = None):
        """Executa ``GET <base_url><path>`` e devolve o corpo JSON.

        Levanta ``TrelloAPIError`` para erros de rede, respostas não-2xx e
        corpos que não são JSON válido.
        """
        url = f"{self.base_url}{path}"
        logger.debug("Trello GET %s", path)
        try:
            resp = self.session.get(url, params=self._query(params), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TrelloAPIError(f"Trello GET {path} failed: {exc}") from exc

        if not resp.ok:
            try:
                text = resp.text
            except Exception:
                text = ""
            raise TrelloAPIError(
                f"Trello GET {path} failed: {resp.status_code} {resp.reason} {text}".rstrip(),
                status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise TrelloAPIError(f"Trello GET {path} returned invalid JSON: {exc}", status=resp.status_code) from exc

    def fetch_board_snapshot(self, board_id: str) -> BoardSnapshot:
        """Busca as cinco coleções do quadro em paralelo.

        As chamadas são disparadas juntas e aguardadas antes da agregação;
        se qualquer uma falhar, a exceção é propagada (sem resultado parcial).
        """
        board_requests = (
            (f"/boards/{board_id}", {"fields": "name"}),
            (f"/boards/{board_id}/lists", {"fields": "name"}),
            (f"/boards/{board_id}/labels", {"fields": "name,color"}),
            (f"/boards/{board_id}/members", {"fields": "fullName,username"}),
            (f"/boards/{board_id}/cards", {"customFieldItems": "true", "limit": CARDS_LIMIT}),
        )
        # As cinco threads compartilham self.session. requests não documenta Session
        # como thread-safe; o uso aqui se limita a GETs sem alterar headers da sessão,
        # e o pool de conexões do urllib3 é thread-safe.
        with ThreadPoolExecutor(max_workers=len(board_requests), thread_name_prefix="trello") as pool:
            futures = [pool.submit(self.get, path, params) for path, params in board_requests]
            board, lists, labels, members, cards = (f.result() for f in futures)

        snapshot = BoardSnapshot.from_raw(board, lists, labels, members, cards)
        logger.debug(
            "Snapshot do quadro %s: %d listas, %d labels, %d membros, %d cards",
            board_id,
            len(snapshot.lists),
            len(snapshot.labels),
            len(snapshot.members),
            len(snapshot.cards),
        )
        return snapshot

    def close(self) -> None:
        self.session.close()
