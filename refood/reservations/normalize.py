"""Normalization of the remote service's inconsistent payloads.

The remote API joins related rows into flat objects and nests results
under different keys depending on the endpoint (``data``,
``prenotazione``, ``prenotazioni``). Everything entering the core passes
through these functions so downstream code only sees canonical models.
"""

from datetime import date, datetime
from typing import Any

from refood.errors import ReservationValidationError
from refood.models.center import Center, CenterKind, parse_center_kind
from refood.models.lot import Lot, derive_lot_status, parse_lot_status
from refood.models.reservation import (
    Reservation,
    ReservationPage,
    ReservationState,
    normalize_state,
)
from refood.utils.logging import get_logger

logger = get_logger(__name__)


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = _as_datetime(value)
    return parsed.date() if parsed else None


def response_message(body: Any, default: str) -> str:
    """Server-provided message, or the default."""
    if isinstance(body, dict):
        message = _first(body, "message", "messaggio")
        if isinstance(message, str):
            return message
    return default


def extract_reservation_payload(body: Any) -> dict[str, Any] | None:
    """Find the reservation object inside a response body."""
    if not isinstance(body, dict):
        return None

    for key in ("prenotazione", "data"):
        nested = body.get(key)
        if isinstance(nested, dict):
            return nested
        if isinstance(nested, list) and len(nested) == 1 and isinstance(nested[0], dict):
            return nested[0]

    listed = body.get("prenotazioni")
    if isinstance(listed, list) and len(listed) == 1 and isinstance(listed[0], dict):
        return listed[0]

    if "id" in body and ("stato" in body or "lotto_id" in body):
        return body
    return None


def extract_reservation_list(body: Any) -> list[dict[str, Any]]:
    """Find the list of reservation objects inside a response body."""
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        for key in ("data", "prenotazioni"):
            value = body.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def normalize_lot(raw: dict[str, Any], near_expiry_days: int = 2) -> Lot:
    """Build a Lot from any of the remote lot shapes."""
    expiry_date = _as_date(raw.get("data_scadenza"))
    status = parse_lot_status(raw.get("stato")) or derive_lot_status(
        expiry_date, near_expiry_days
    )
    available = raw.get("disponibile")

    return Lot(
        id=_as_int(raw.get("id")) or 0,
        name=_first(raw, "prodotto", "nome") or "Senza nome",
        quantity=_as_float(raw.get("quantita")),
        unit=_first(raw, "unita_misura") or "pz",
        expiry_date=expiry_date,
        origin_center_id=_as_int(_first(raw, "centro_origine_id", "centro_id")),
        origin_center_name=_first(raw, "centro_origine_nome", "centro_nome"),
        status=status,
        available=available is not False,
    )


def normalize_center(raw: dict[str, Any]) -> Center:
    """Build a Center from the remote center row."""
    return Center(
        id=_as_int(raw.get("id")) or 0,
        name=_first(raw, "nome", "name") or "",
        address=_first(raw, "indirizzo", "address"),
        kind=parse_center_kind(_first(raw, "tipo", "tipo_descrizione")),
    )


def _embedded_lot(raw: dict[str, Any], near_expiry_days: int) -> Lot | None:
    nested = raw.get("lotto")
    if isinstance(nested, dict):
        merged = {"id": raw.get("lotto_id"), **nested}
        return normalize_lot(merged, near_expiry_days)

    if raw.get("prodotto"):
        return normalize_lot(
            {
                "id": raw.get("lotto_id"),
                "prodotto": raw.get("prodotto"),
                "quantita": raw.get("quantita"),
                "unita_misura": raw.get("unita_misura"),
                "data_scadenza": raw.get("data_scadenza"),
                "stato": raw.get("stato_lotto"),
                "centro_origine_id": raw.get("centro_origine_id"),
                "centro_origine_nome": raw.get("centro_origine_nome"),
            },
            near_expiry_days,
        )
    return None


def normalize_reservation(
    raw: dict[str, Any],
    near_expiry_days: int = 2,
    default_state: ReservationState | None = None,
) -> Reservation:
    """Build a Reservation from any of the remote reservation shapes.

    ``default_state`` is used when the payload carries no ``stato`` at all,
    e.g. a write endpoint echoing only the changed fields. Only the fields
    found in the payload end up in ``model_fields_set``, so a partial echo
    can be merged onto a known reservation without clobbering it.

    Raises:
        ReservationValidationError: the state is missing or unknown
    """
    lot = _embedded_lot(raw, near_expiry_days)
    raw_state = raw.get("stato")
    if raw_state in (None, "") and default_state is not None:
        raw_state = default_state

    origin_center_id = _as_int(raw.get("centro_origine_id"))
    if origin_center_id is None and lot is not None:
        origin_center_id = lot.origin_center_id

    kind_value = _first(raw, "centro_ricevente_tipo", "tipo_centro_ricevente")
    receiving_kind = parse_center_kind(kind_value) if kind_value else None

    fields = {
        "id": _as_int(raw.get("id")),
        "lot_id": _as_int(raw.get("lotto_id")) or (lot.id if lot else None) or None,
        "origin_center_id": origin_center_id,
        "receiving_center_id": _as_int(_first(raw, "centro_ricevente_id", "centro_id")),
        "state": normalize_state(raw_state),
        "created_at": _as_datetime(
            _first(raw, "data_prenotazione", "created_at", "creato_il")
        ),
        "updated_at": _as_datetime(_first(raw, "updated_at", "aggiornato_il")),
        "pickup_date": _as_date(
            _first(raw, "data_ritiro", "data_ritiro_prevista", "data_prevista_ritiro")
        ),
        "notes": _first(raw, "note"),
        "lot": lot,
        "origin_center_name": _first(raw, "centro_origine_nome")
        or (lot.origin_center_name if lot else None),
        "receiving_center_name": _first(raw, "centro_ricevente_nome", "centro_nome"),
        "receiving_center_kind": (
            receiving_kind if receiving_kind not in (None, CenterKind.UNKNOWN) else None
        ),
    }
    return Reservation(**{name: value for name, value in fields.items() if value is not None})


def normalize_page(body: Any, near_expiry_days: int = 2) -> ReservationPage:
    """
    Build a page of reservations from a list response.

    Rows whose state cannot be read are left out of the page and logged,
    so one foreign row does not hide the rest of the list.
    """
    pagination = body.get("pagination") if isinstance(body, dict) else None
    reservations = []
    for raw in extract_reservation_list(body):
        try:
            reservations.append(normalize_reservation(raw, near_expiry_days))
        except ReservationValidationError as e:
            logger.warning(
                "reservation_row_skipped",
                reservation_id=raw.get("id"),
                lot_id=raw.get("lotto_id"),
                state=raw.get("stato"),
                error=e.message,
            )
    return ReservationPage(
        reservations=reservations,
        pagination=pagination if isinstance(pagination, dict) else None,
    )
