"""In-memory fakes for testing.

``FakeRefoodApi`` behaves like the remote Refood backend for the endpoints
the reservation core uses and is mounted through ``httpx.MockTransport``.
``FakeRedis`` stands in for the redis client behind ``StateManager``.
No network, no side effects.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

API_PREFIX = "/api/v1"
API_URL = "http://refood.test" + API_PREFIX

ORIGIN_CENTER_ID = 1
SOCIAL_CENTER_ID = 2
RECYCLING_CENTER_ID = 3

# State changes the fake backend accepts on each dedicated endpoint
ALLOWED_SOURCES = {
    "accetta": ({"Prenotato"}, "Confermato"),
    "rifiuta": ({"Prenotato"}, "Rifiutato"),
    "transito": ({"Confermato"}, "InTransito"),
    "consegna": ({"InTransito", "Confermato"}, "Consegnato"),
    "annulla": ({"Prenotato"}, "Annullato"),
}

ACTIVE = {"Prenotato", "Confermato", "InTransito"}

# Legacy spellings the backend still stores on older rows
LEGACY_STATES = {
    "Richiesta": "Prenotato",
    "InAttesa": "Prenotato",
    "Confermata": "Confermato",
    "Consegnata": "Consegnato",
}


def _canonical(stato: str) -> str:
    return LEGACY_STATES.get(stato, stato)


@dataclass
class ForcedFailure:
    method: str
    pattern: re.Pattern
    status_code: int
    body: Any
    times: int | None = None
    # Apply the mutation before answering with the error
    commit: bool = False
    exception: Exception | None = None


@dataclass
class RecordedCall:
    method: str
    path: str
    params: dict[str, str]
    body: Any


@dataclass
class FakeRefoodApi:
    """Remote backend keeping reservations, lots and centers in dicts."""

    reservations: dict[int, dict[str, Any]] = field(default_factory=dict)
    lots: dict[int, dict[str, Any]] = field(default_factory=dict)
    centers: dict[int, dict[str, Any]] = field(default_factory=dict)
    user_centers: list[dict[str, Any]] = field(default_factory=list)
    user_centers_status: int = 200
    unread: int = 0
    count_endpoint_status: int = 200
    generic_update_allowed: bool = True
    echo_reservation: bool = True
    calls: list[RecordedCall] = field(default_factory=list)
    failures: list[ForcedFailure] = field(default_factory=list)
    _next_id: int = 100

    # Setup helpers

    def add_center(self, center_id: int, nome: str, tipo: str) -> None:
        self.centers[center_id] = {"id": center_id, "nome": nome, "tipo": tipo}

    def add_lot(self, lot_id: int, **fields: Any) -> dict[str, Any]:
        lot = {
            "id": lot_id,
            "prodotto": "Pane",
            "quantita": 10,
            "unita_misura": "kg",
            "data_scadenza": "2099-12-31",
            "stato": "Verde",
            "centro_origine_id": 1,
            "centro_origine_nome": "Supermercato Centrale",
        }
        lot.update(fields)
        self.lots[lot_id] = lot
        return lot

    def add_reservation(
        self, reservation_id: int, lot_id: int, stato: str, **fields: Any
    ) -> dict[str, Any]:
        lot = self.lots.get(lot_id, {})
        raw = {
            "id": reservation_id,
            "lotto_id": lot_id,
            "centro_ricevente_id": 2,
            "centro_ricevente_nome": "Centro Sociale Aurora",
            "stato": stato,
            "data_prenotazione": "2026-10-01T09:00:00Z",
            "prodotto": lot.get("prodotto"),
            "quantita": lot.get("quantita"),
            "unita_misura": lot.get("unita_misura"),
            "data_scadenza": lot.get("data_scadenza"),
            "centro_origine_id": lot.get("centro_origine_id"),
            "centro_origine_nome": lot.get("centro_origine_nome"),
        }
        raw.update(fields)
        self.reservations[reservation_id] = raw
        return raw

    def fail(
        self,
        method: str,
        path_pattern: str,
        status_code: int = 500,
        body: Any = None,
        times: int | None = None,
        commit: bool = False,
    ) -> None:
        """Answer matching requests with an error response."""
        self.failures.append(
            ForcedFailure(
                method=method,
                pattern=re.compile(path_pattern),
                status_code=status_code,
                body=body if body is not None else {"message": f"Errore {status_code}"},
                times=times,
                commit=commit,
            )
        )

    def respond_with(
        self,
        method: str,
        path_pattern: str,
        status_code: int,
        body: Any,
        commit: bool = False,
    ) -> None:
        """Answer matching requests with a canned response."""
        self.fail(method, path_pattern, status_code, body, commit=commit)

    def raise_on(self, method: str, path_pattern: str, exception: Exception) -> None:
        """Raise a transport exception for matching requests."""
        self.failures.append(
            ForcedFailure(
                method=method,
                pattern=re.compile(path_pattern),
                status_code=0,
                body=None,
                exception=exception,
            )
        )

    # Inspection helpers

    def calls_to(self, method: str, path_pattern: str) -> list[RecordedCall]:
        pattern = re.compile(path_pattern)
        return [c for c in self.calls if c.method == method and pattern.fullmatch(c.path)]

    def notifications(self) -> list[RecordedCall]:
        return [
            c
            for c in self.calls
            if c.method == "POST" and c.path.startswith("/notifiche/") and c.body
        ]

    # Transport

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport(), base_url=base_url)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        body = json.loads(request.content) if request.content else None
        params = dict(request.url.params)
        self.calls.append(RecordedCall(request.method, path, params, body))

        if request.headers.get("Authorization", "") != "Bearer test-token":
            return httpx.Response(401, json={"message": "Token non valido"})

        failure = self._match_failure(request.method, path)
        if failure is not None:
            if failure.exception is not None:
                raise failure.exception
            if failure.commit:
                self._route(request.method, path, params, body)
            return httpx.Response(failure.status_code, json=failure.body)

        return self._route(request.method, path, params, body)

    def _match_failure(self, method: str, path: str) -> ForcedFailure | None:
        for failure in self.failures:
            if failure.method != method or not failure.pattern.fullmatch(path):
                continue
            if failure.times is not None:
                if failure.times <= 0:
                    continue
                failure.times -= 1
            return failure
        return None

    def _route(
        self, method: str, path: str, params: dict[str, str], body: Any
    ) -> httpx.Response:
        if method == "GET" and path == "/prenotazioni":
            return self._list(params)
        if method == "POST" and path == "/prenotazioni":
            return self._create(body or {})

        match = re.fullmatch(r"/prenotazioni/(\d+)(?:/(\w+))?", path)
        if match:
            reservation_id = int(match.group(1))
            action = match.group(2)
            if reservation_id not in self.reservations:
                return httpx.Response(404, json={"message": "Prenotazione non trovata"})
            if method == "GET" and action is None:
                return httpx.Response(
                    200, json={"prenotazione": self.reservations[reservation_id]}
                )
            if method == "DELETE" and action is None:
                del self.reservations[reservation_id]
                return httpx.Response(200, json={"message": "Prenotazione eliminata"})
            if method == "PUT" and action is None:
                return self._generic_update(reservation_id, body or {})
            if method == "PUT" and action in ALLOWED_SOURCES:
                return self._dedicated_update(reservation_id, action, body or {})

        match = re.fullmatch(r"/lotti/(\d+)", path)
        if match and method == "GET":
            lot = self.lots.get(int(match.group(1)))
            if lot is None:
                return httpx.Response(404, json={"message": "Lotto non trovato"})
            return httpx.Response(200, json={"data": lot})

        match = re.fullmatch(r"/centri/(\d+)", path)
        if match and method == "GET":
            center = self.centers.get(int(match.group(1)))
            if center is None:
                return httpx.Response(404, json={"message": "Centro non trovato"})
            return httpx.Response(200, json={"data": center})

        if method == "GET" and path == "/users/centri":
            if self.user_centers_status != 200:
                return httpx.Response(
                    self.user_centers_status, json={"message": "Accesso negato"}
                )
            return httpx.Response(200, json={"centri": self.user_centers})

        if method == "GET" and path == "/notifiche/conteggio":
            if self.count_endpoint_status != 200:
                return httpx.Response(self.count_endpoint_status, json={"message": "Errore"})
            return httpx.Response(200, json={"count": self.unread})
        if method == "GET" and path == "/notifiche":
            return httpx.Response(
                200, json={"data": [], "pagination": {"total": self.unread}}
            )
        if method == "POST" and path.startswith("/notifiche/"):
            return httpx.Response(201, json={"message": "Notifica inviata"})

        return httpx.Response(404, json={"message": f"Endpoint non trovato: {path}"})

    def _list(self, params: dict[str, str]) -> httpx.Response:
        rows = list(self.reservations.values())
        if "lotto_id" in params:
            rows = [r for r in rows if str(r["lotto_id"]) == params["lotto_id"]]
        if "stato" in params:
            rows = [r for r in rows if r["stato"] == params["stato"]]
        return httpx.Response(
            200,
            json={"data": rows, "pagination": {"total": len(rows), "page": 1}},
        )

    def _create(self, body: dict[str, Any]) -> httpx.Response:
        lot_id = body["lotto_id"]
        if any(
            r["lotto_id"] == lot_id and _canonical(r["stato"]) in ACTIVE
            for r in self.reservations.values()
        ):
            return httpx.Response(409, json={"message": "Lotto già prenotato"})

        self._next_id += 1
        raw = self.add_reservation(
            self._next_id,
            lot_id,
            "Prenotato",
            centro_ricevente_id=body["centro_ricevente_id"],
            data_ritiro=body.get("data_ritiro"),
            note=body.get("note"),
        )
        if not self.echo_reservation:
            return httpx.Response(201, json={"message": "Prenotazione creata"})
        return httpx.Response(201, json={"message": "Prenotazione creata", "prenotazione": raw})

    def _dedicated_update(
        self, reservation_id: int, action: str, body: dict[str, Any]
    ) -> httpx.Response:
        sources, target = ALLOWED_SOURCES[action]
        raw = self.reservations[reservation_id]
        if _canonical(raw["stato"]) not in sources:
            return httpx.Response(
                400,
                json={"message": f"Impossibile cambiare stato da {raw['stato']} a {target}"},
            )
        raw["stato"] = target
        if body.get("data_prevista_ritiro"):
            raw["data_ritiro"] = body["data_prevista_ritiro"]
        return httpx.Response(200, json={"message": "Aggiornata", "prenotazione": raw})

    def _generic_update(self, reservation_id: int, body: dict[str, Any]) -> httpx.Response:
        if not self.generic_update_allowed:
            return httpx.Response(400, json={"message": "Aggiornamento non consentito"})
        raw = self.reservations[reservation_id]
        raw["stato"] = body["stato"]
        return httpx.Response(200, json={"message": "Aggiornata", "prenotazione": raw})


class FakeRedis:
    """Async stand-in for the redis client, storing strings in a dict."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def set(self, key: str, value: Any, ex: int | None = None) -> None:
        self.store[key] = str(value)
        self.expiry[key] = ex

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)

    async def exists(self, key: str) -> int:
        return int(key in self.store)

    async def aclose(self) -> None:
        pass
