"""Tests for remote payload normalization."""

from datetime import date

from refood.models.center import CenterKind
from refood.models.lot import LotStatus
from refood.models.reservation import ReservationState
from refood.reservations.normalize import (
    extract_reservation_list,
    extract_reservation_payload,
    normalize_center,
    normalize_lot,
    normalize_page,
    normalize_reservation,
    response_message,
)

RAW = {
    "id": 5,
    "lotto_id": 10,
    "stato": "Richiesta",
    "centro_ricevente_id": 2,
    "centro_ricevente_nome": "Centro Sociale Aurora",
    "data_prenotazione": "2026-10-01T09:00:00Z",
    "data_ritiro": "2026-10-05",
    "prodotto": "Mele",
    "quantita": "12.5",
    "unita_misura": "kg",
    "data_scadenza": "2099-01-01",
    "centro_origine_id": 1,
    "centro_origine_nome": "Supermercato Centrale",
}


def test_payload_found_in_every_envelope() -> None:
    """Test that the reservation is found whatever key the server nests it under."""
    assert extract_reservation_payload({"prenotazione": RAW}) == RAW
    assert extract_reservation_payload({"data": RAW}) == RAW
    assert extract_reservation_payload({"data": [RAW]}) == RAW
    assert extract_reservation_payload({"prenotazioni": [RAW]}) == RAW
    assert extract_reservation_payload(RAW) == RAW
    assert extract_reservation_payload({"message": "ok"}) is None
    assert extract_reservation_payload(None) is None


def test_list_found_in_every_envelope() -> None:
    assert extract_reservation_list({"data": [RAW]}) == [RAW]
    assert extract_reservation_list({"prenotazioni": [RAW]}) == [RAW]
    assert extract_reservation_list([RAW, "junk"]) == [RAW]
    assert extract_reservation_list({"message": "vuoto"}) == []


def test_flattened_reservation() -> None:
    reservation = normalize_reservation(RAW)

    assert reservation.state == ReservationState.REQUESTED
    assert reservation.lot_id == 10
    assert reservation.receiving_center_id == 2
    assert reservation.origin_center_id == 1
    assert reservation.pickup_date == date(2026, 10, 5)
    assert reservation.created_at is not None
    assert reservation.lot is not None
    assert reservation.lot.name == "Mele"
    assert reservation.lot.quantity == 12.5
    assert reservation.origin_center_name == "Supermercato Centrale"
    assert reservation.receiving_center_name == "Centro Sociale Aurora"


def test_nested_lot_reservation() -> None:
    raw = {
        "id": 6,
        "stato": "Confermata",
        "centro_id": 3,
        "data_ritiro_prevista": "2026-11-01",
        "lotto": {
            "id": 11,
            "nome": "Latte",
            "centro_origine_id": 4,
            "stato": "Arancione",
        },
    }

    reservation = normalize_reservation(raw)

    assert reservation.state == ReservationState.CONFIRMED
    assert reservation.lot_id == 11
    assert reservation.receiving_center_id == 3
    assert reservation.origin_center_id == 4
    assert reservation.lot.status == LotStatus.NEAR_EXPIRY
    assert reservation.pickup_date == date(2026, 11, 1)


def test_missing_state_uses_default() -> None:
    reservation = normalize_reservation(
        {"id": 7, "lotto_id": 10}, default_state=ReservationState.IN_TRANSIT
    )

    assert reservation.state == ReservationState.IN_TRANSIT


def test_partial_payload_sets_only_present_fields() -> None:
    reservation = normalize_reservation(
        {"stato": "Confermato"}, default_state=ReservationState.CONFIRMED
    )

    assert reservation.model_fields_set == {"state"}
    assert reservation.id == 0
    assert reservation.lot_id == 0


def test_embedded_lot_supplies_lot_id() -> None:
    reservation = normalize_reservation({"id": 8, "stato": "Prenotato", "lotto": {"id": 12}})

    assert reservation.lot_id == 12
    assert "lot_id" in reservation.model_fields_set


def test_lot_defaults() -> None:
    lot = normalize_lot({"id": 3, "data_scadenza": "2000-01-01"})

    assert lot.name == "Senza nome"
    assert lot.unit == "pz"
    assert lot.status == LotStatus.EXPIRED
    assert lot.is_open_for_reservation is False


def test_center_kind_from_type() -> None:
    center = normalize_center({"id": 2, "nome": "Aurora", "tipo": "Centro Sociale"})

    assert center.kind == CenterKind.SOCIAL
    assert center.is_social


def test_page_keeps_pagination() -> None:
    page = normalize_page({"data": [RAW], "pagination": {"total": 1}})

    assert len(page.reservations) == 1
    assert page.pagination == {"total": 1}


def test_page_skips_rows_with_unknown_state() -> None:
    """Test that one unreadable row does not hide the rest of the page."""
    foreign = {**RAW, "id": 6, "stato": "Smarrito"}

    page = normalize_page({"data": [RAW, foreign], "pagination": {"total": 2}})

    assert [r.id for r in page.reservations] == [5]
    assert page.pagination == {"total": 2}


def test_response_message() -> None:
    assert response_message({"messaggio": "Fatto"}, "default") == "Fatto"
    assert response_message({"message": "Done"}, "default") == "Done"
    assert response_message(None, "default") == "default"
