from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from .config import FILE_ONLY_REPLY
from .errors import PermissionDeniedError, SessionClosedError, ValidationError
from .knowledge import KnowledgeStore
from .logger import get_logger
from .models import Attachment, ConversationSession, Message, Role, SessionStatus, User
from .responders import ResponderDispatch, TurnContext, TurnResult
from .sanitize import sanitize_user_text
from .sessions import SessionRepository

log = get_logger("scootcare.chat")

@dataclass
class ChatTurn:
    session: ConversationSession
    user_message: Message
    reply: Optional[Message] = None
    result: Optional[TurnResult] = None


class ChatService:
    """One customer turn: pick the session, answer from the knowledge base, store both messages."""

    def __init__(self, knowledge: KnowledgeStore, dispatch: ResponderDispatch, sessions: SessionRepository):
        self.knowledge = knowledge
        self.dispatch = dispatch
        self.sessions = sessions

    def session_for(self, user: User, session_id: Optional[str] = None, write: bool = False) -> ConversationSession:
        """Owner's session by id, else their latest one (or a new one).

        Admins may read any session but only write through a ticket thread.
        """
        if not session_id:
            return self.sessions.latest_or_start(user.id)
        session = self.sessions.get(session_id)
        if session.owner_id != user.id and (write or not user.is_admin):
            raise PermissionDeniedError("This conversation belongs to another customer.")
        return session

    def send(self, user: User, text: str, session_id: Optional[str] = None,
             attachment: Optional[Attachment] = None) -> ChatTurn:
        clean = sanitize_user_text(text or "")
        if not clean and attachment is None:
            raise ValidationError("Empty message.")
        session = self.session_for(user, session_id, write=True)
        if session.is_closed:
            raise SessionClosedError(f"session {session.id} is resolved")

        user_message = Message.create(Role.USER, clean, attachment)
        result = None
        if session.status == SessionStatus.ESCALATED:
            # a human agent owns the conversation now
            reply = None
        elif not clean:
            reply = Message.create(Role.BOT, FILE_ONLY_REPLY)
        else:
            result = self.dispatch.answer(clean, self.knowledge.list(), TurnContext(user_id=user.id))
            reply = Message.create(Role.BOT, result.text)

        def record(s: ConversationSession):
            s.append(user_message)
            if reply is not None:
                s.append(reply)

        session, _ = self.sessions.mutate(session.id, record)
        log.info("Turn stored session=%s user=%s matched=%s", session.id, user.id,
                 result.matched if result else None)
        return ChatTurn(session=session, user_message=user_message, reply=reply, result=result)

    def new_session(self, user: User) -> ConversationSession:
        return self.sessions.start(user.id)

    def close_session(self, user: User, session_id: str) -> ConversationSession:
        self.session_for(user, session_id)
        session, _ = self.sessions.mutate(session_id, lambda s: s.close())
        log.info("Session %s resolved by %s", session_id, user.id)
        return session

    def history(self, user: User) -> List[ConversationSession]:
        return self.sessions.list_for(user.id)
