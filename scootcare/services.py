from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .chat import ChatService
from .escalation import EscalationCoordinator
from .knowledge import KnowledgeStore
from .responders import ResponderDispatch, ResolverRegistry, default_registry
from .sessions import SessionRepository
from .uploads import AttachmentUploader

@dataclass
class Services:
    backend: object
    knowledge: KnowledgeStore
    sessions: SessionRepository
    dispatch: ResponderDispatch
    escalation: EscalationCoordinator
    chat: ChatService
    uploads: AttachmentUploader

def build_services(backend=None, registry: Optional[ResolverRegistry] = None) -> Services:
    if backend is None:
        from .db import get_backend
        backend = get_backend()
    knowledge = KnowledgeStore(backend)
    sessions = SessionRepository(backend)
    dispatch = ResponderDispatch(registry or default_registry(backend))
    return Services(
        backend=backend,
        knowledge=knowledge,
        sessions=sessions,
        dispatch=dispatch,
        escalation=EscalationCoordinator(backend, sessions),
        chat=ChatService(knowledge, dispatch, sessions),
        uploads=AttachmentUploader(backend),
    )
