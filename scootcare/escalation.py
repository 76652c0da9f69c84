from __future__ import annotations
from typing import List, Optional

from .config import ESCALATION_NOTICE
from .errors import NotFoundError, PermissionDeniedError, SessionClosedError, UpstreamError, ValidationError
from .logger import get_logger
from .models import Attachment, Message, Role, SessionStatus, SupportTicket, TicketStatus, User
from .sanitize import sanitize_user_text
from .sessions import SessionRepository

log = get_logger("scootcare.escalation")

TABLE = "support_queries"

class EscalationCoordinator:
    """Turns conversations into support tickets and runs the ticket chat thread."""

    def __init__(self, backend, sessions: SessionRepository):
        self.backend = backend
        self.sessions = sessions

    # --- Escalation ---
    def escalate(self, session_id: str, summary: str, attachment: Optional[Attachment] = None,
                 trigger_message_id: Optional[str] = None) -> SupportTicket:
        """Mark the session escalated and persist a ticket that points back at it.

        A session that already has an open ticket gets that ticket back, so a
        retried request does not produce a second one. A trigger message, when
        given, must be a bot message of this session. If the ticket cannot be
        stored the session status is put back before the error is raised.
        """
        summary = (summary or "").strip()
        if not summary:
            raise ValidationError("summary must not be empty")
        session = self.sessions.get(session_id)
        if session.is_closed:
            raise SessionClosedError(f"session {session_id} is resolved")
        if trigger_message_id is not None:
            _check_trigger(session, trigger_message_id)

        existing = self.open_ticket_for(session.id)
        if existing:
            log.info("ESCALATION_REUSED ticket=%s session=%s trigger=%s", existing.id, session.id, trigger_message_id)
            return existing

        previous = session.status
        self.sessions.mutate(session.id, lambda s: s.escalate())
        ticket = SupportTicket(owner_id=session.owner_id, session_id=session.id, summary=summary,
                               attachment=attachment, trigger_message_id=trigger_message_id)
        try:
            ticket = SupportTicket.from_row(self.backend.insert(TABLE, ticket.to_row()))
        except UpstreamError:
            log.error("Ticket persistence failed for session %s; restoring status %s", session.id, previous.value)
            self._restore_status(session.id, previous)
            raise
        log.info("ESCALATION_CREATED ticket=%s session=%s owner=%s", ticket.id, session.id, session.owner_id)

        notice = Message.create(Role.BOT, ESCALATION_NOTICE.format(ticket_id=ticket.id))
        self.sessions.mutate(session.id, lambda s: s.append(notice))
        return ticket

    def _restore_status(self, session_id: str, status: SessionStatus) -> None:
        def restore(s):
            if s.status == SessionStatus.ESCALATED:
                s.status = status
        self.sessions.mutate(session_id, restore)

    def submit(self, owner_id: str, summary: str, attachment: Optional[Attachment] = None) -> SupportTicket:
        """Ticket raised straight from the support page, with no conversation behind it."""
        summary = (summary or "").strip()
        if not summary:
            raise ValidationError("summary must not be empty")
        ticket = SupportTicket(owner_id=owner_id, summary=summary, attachment=attachment)
        ticket = SupportTicket.from_row(self.backend.insert(TABLE, ticket.to_row()))
        log.info("TICKET_SUBMITTED ticket=%s owner=%s", ticket.id, owner_id)
        return ticket

    # --- Ticket queries and admin updates ---
    def get(self, ticket_id: str) -> SupportTicket:
        row = self.backend.get(TABLE, ticket_id)
        if row is None:
            raise NotFoundError(f"ticket {ticket_id} not found")
        return SupportTicket.from_row(row)

    def open_ticket_for(self, session_id: str) -> Optional[SupportTicket]:
        rows = self.backend.select(TABLE, {"session_id": session_id, "status": TicketStatus.OPEN.value},
                                   order_by="created_at", limit=1)
        return SupportTicket.from_row(rows[0]) if rows else None

    def list_tickets(self, owner_id: Optional[str] = None, status: Optional[str] = None) -> List[SupportTicket]:
        filters = {}
        if owner_id:
            filters["owner_id"] = owner_id
        if status:
            filters["status"] = _ticket_status(status).value
        rows = self.backend.select(TABLE, filters, order_by="created_at", desc=True)
        return [SupportTicket.from_row(r) for r in rows]

    def set_status(self, ticket_id: str, status: str) -> SupportTicket:
        new_status = _ticket_status(status)
        row = self.backend.update(TABLE, ticket_id, {"status": new_status.value})
        log.info("TICKET_STATUS ticket=%s status=%s", ticket_id, new_status.value)
        ticket = SupportTicket.from_row(row)
        if new_status == TicketStatus.RESOLVED and ticket.session_id:
            # the conversation ends with its ticket; the next message opens a new one
            self.sessions.mutate(ticket.session_id, lambda s: s.close())
            log.info("Session %s resolved with ticket %s", ticket.session_id, ticket_id)
        return ticket

    # --- Ticket chat thread ---
    def authorize(self, ticket: SupportTicket, actor: User) -> None:
        if not (actor.is_admin or actor.id == ticket.owner_id):
            raise PermissionDeniedError("This ticket belongs to another customer.")

    def thread(self, ticket_id: str, actor: User):
        ticket = self.get(ticket_id)
        self.authorize(ticket, actor)
        if not ticket.session_id:
            raise NotFoundError(f"ticket {ticket_id} has no chat thread")
        return self.sessions.get(ticket.session_id)

    def post(self, ticket_id: str, actor: User, text: str, attachment: Optional[Attachment] = None) -> Message:
        """Append to the ticket's conversation: admins speak as the agent, the owner as the user."""
        ticket = self.get(ticket_id)
        self.authorize(ticket, actor)
        if not ticket.session_id:
            raise NotFoundError(f"ticket {ticket_id} has no chat thread")
        clean = sanitize_user_text(text or "")
        if not clean and attachment is None:
            raise ValidationError("message must contain text or an attachment")
        role = Role.USER if actor.id == ticket.owner_id else Role.AGENT
        message = Message.create(role, clean, attachment)
        self.sessions.mutate(ticket.session_id, lambda s: s.append(message))
        log.info("THREAD_MESSAGE ticket=%s role=%s", ticket_id, role.value)
        return message


def _ticket_status(value: str) -> TicketStatus:
    try:
        return TicketStatus((value or "").lower())
    except ValueError as exc:
        raise ValidationError("status must be one of open, resolved") from exc

def _check_trigger(session, message_id: str) -> None:
    message = next((m for m in session.messages if m.id == message_id), None)
    if message is None:
        raise NotFoundError(f"message {message_id} is not part of session {session.id}")
    if message.role != Role.BOT:
        raise ValidationError("escalation can only be triggered from a bot message")
