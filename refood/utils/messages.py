"""Centralized notification wording for every reservation event."""

from dataclasses import dataclass

from refood.models.notification import TransitionKind


@dataclass(frozen=True)
class SideTemplate:
    """Title and opening sentence for one side of a reservation."""

    title: str
    intro: str


@dataclass(frozen=True)
class EventTemplate:
    """Wording for the origin side and the receiving side of an event."""

    origin: SideTemplate | None
    receiving: SideTemplate | None
    note_label: str = "Note"


class MessageTemplates:
    """Notification templates per transition kind."""

    EVENTS: dict[TransitionKind, EventTemplate] = {
        TransitionKind.REQUESTED: EventTemplate(
            origin=None,
            receiving=SideTemplate(
                "Prenotazione inviata con successo",
                'La prenotazione del lotto "{lot}" è stata inviata ed è in attesa di conferma.',
            ),
        ),
        TransitionKind.CONFIRMED: EventTemplate(
            origin=SideTemplate(
                "Prenotazione: confermata",
                'La prenotazione del lotto "{lot}" è stata confermata.',
            ),
            receiving=SideTemplate(
                "Prenotazione: confermata",
                'La tua prenotazione del lotto "{lot}" è stata confermata.',
            ),
        ),
        TransitionKind.IN_TRANSIT: EventTemplate(
            origin=SideTemplate(
                "Lotto in transito",
                'Il lotto "{lot}" è in transito verso il centro ricevente.',
            ),
            receiving=SideTemplate(
                "Lotto in transito",
                'Il lotto "{lot}" è in transito verso il tuo centro.',
            ),
        ),
        TransitionKind.DELIVERED: EventTemplate(
            origin=SideTemplate(
                "Lotto consegnato",
                'Il lotto "{lot}" è stato consegnato al centro ricevente.',
            ),
            receiving=SideTemplate(
                "Lotto ricevuto",
                'Il lotto "{lot}" è stato ricevuto dal tuo centro.',
            ),
        ),
        TransitionKind.REJECTED: EventTemplate(
            origin=SideTemplate(
                "Prenotazione: rifiutata",
                'La prenotazione del lotto "{lot}" è stata rifiutata.',
            ),
            receiving=SideTemplate(
                "Prenotazione: rifiutata",
                'La tua prenotazione del lotto "{lot}" è stata rifiutata.',
            ),
            note_label="Motivo",
        ),
        TransitionKind.CANCELLED: EventTemplate(
            origin=SideTemplate(
                "Prenotazione annullata",
                'La prenotazione del lotto "{lot}" è stata annullata.',
            ),
            receiving=SideTemplate(
                "Prenotazione annullata",
                'La tua prenotazione del lotto "{lot}" è stata annullata.',
            ),
            note_label="Motivo",
        ),
        TransitionKind.DELETED: EventTemplate(
            origin=SideTemplate(
                "Prenotazione eliminata",
                'La prenotazione del lotto "{lot}" è stata eliminata.',
            ),
            receiving=SideTemplate(
                "Prenotazione eliminata",
                'La tua prenotazione del lotto "{lot}" è stata eliminata.',
            ),
        ),
        TransitionKind.FALLBACK_AUDIT: EventTemplate(
            origin=SideTemplate(
                "Prenotazione: verifica stato",
                'La conferma della prenotazione del lotto "{lot}" è stata '
                "registrata tramite un percorso alternativo.",
            ),
            receiving=None,
        ),
        TransitionKind.STATUS_NOTICE: EventTemplate(
            origin=SideTemplate(
                "Aggiornamento prenotazione",
                'La prenotazione del lotto "{lot}" è passata allo stato {state}.',
            ),
            receiving=SideTemplate(
                "Aggiornamento prenotazione",
                'La prenotazione del lotto "{lot}" è passata allo stato {state}.',
            ),
        ),
    }

    # Messages returned to the caller on success, per target state value
    RESULTS = {
        "Prenotato": "Prenotazione effettuata con successo",
        "Confermato": "Prenotazione confermata con successo",
        "InTransito": "Prenotazione segnata come in transito",
        "Consegnato": "Consegna registrata con successo",
        "Rifiutato": "Prenotazione rifiutata",
        "Annullato": "Prenotazione annullata con successo",
        "Eliminato": "Prenotazione eliminata con successo",
    }

    UNEXPECTED_ERROR = "Si è verificato un errore imprevisto. Riprova più tardi."

    DETAIL_LABELS = {
        "lot": "Lotto",
        "quantity": "Quantità",
        "expiry": "Scadenza",
        "origin": "Centro origine",
        "receiving": "Centro ricevente",
    }

    @classmethod
    def for_event(cls, kind: TransitionKind) -> EventTemplate:
        return cls.EVENTS[kind]
