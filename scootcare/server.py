from __future__ import annotations
from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import asyncio
import uuid

from .auth import current_user, require_admin
from .errors import (
    AuthenticationError, ConcurrencyError, NotFoundError, PermissionDeniedError,
    ScootCareError, SessionClosedError, UpstreamError, ValidationError,
)
from .logger import get_logger
from .models import Attachment, ConversationSession, EntryKind, KnowledgeEntry, Message, SupportTicket, User
from .orders import list_orders
from .rate_limit import allow as allow_request
from .services import Services, build_services

log = get_logger("scootcare.server")

# --- Wire models ---
class AttachmentModel(BaseModel):
    url: str
    name: str
    mime: str
    size: int

class MessageOut(BaseModel):
    id: str
    role: str
    text: str
    timestamp: str
    attachment: AttachmentModel | None = None

class SessionOut(BaseModel):
    id: str
    owner_id: str
    status: str
    created_at: str
    expires_at: str | None
    messages: list[MessageOut]

class ChatRequest(BaseModel):
    text: str = ""
    session_id: str | None = None
    attachment: AttachmentModel | None = None

class ChatResponse(BaseModel):
    session_id: str
    session_status: str
    reply: str | None
    matched: bool
    entry_id: str | None
    offer_escalation: bool
    messages: list[MessageOut]
    correlation_id: str

class EscalateRequest(BaseModel):
    summary: str
    attachment: AttachmentModel | None = None
    message_id: str | None = None

class TicketCreate(BaseModel):
    summary: str
    attachment: AttachmentModel | None = None

class TicketPatch(BaseModel):
    status: str

class TicketOut(BaseModel):
    id: str
    owner_id: str
    session_id: str | None
    summary: str
    attachment: AttachmentModel | None = None
    status: str
    created_at: str

class ThreadPost(BaseModel):
    text: str = ""
    attachment: AttachmentModel | None = None

class KnowledgeIn(BaseModel):
    question_pattern: str
    kind: str = "static"
    body: str | None = None
    resolver_key: str | None = None

class KnowledgePatch(BaseModel):
    question_pattern: str | None = None
    kind: str | None = None
    body: str | None = None
    resolver_key: str | None = None

class KnowledgeOut(BaseModel):
    id: str
    question_pattern: str
    kind: str
    body: str | None
    resolver_key: str | None
    created_at: str

class OrderOut(BaseModel):
    id: str
    model_name: str
    status: str
    expected_delivery_date: str | None
    created_at: str

# --- Converters ---
def message_out(m: Message) -> dict:
    return m.to_dict()

def session_out(s: ConversationSession) -> dict:
    return {"id": s.id, "owner_id": s.owner_id, "status": s.status.value, "created_at": s.created_at.isoformat(),
            "expires_at": s.expires_at.isoformat() if s.expires_at else None,
            "messages": [message_out(m) for m in s.messages]}

def ticket_out(t: SupportTicket) -> dict:
    row = t.to_row()
    row.pop("trigger_message_id")
    return row

def knowledge_out(e: KnowledgeEntry) -> dict:
    return {"id": e.id, "question_pattern": e.question_pattern, "kind": e.kind.value, "body": e.body,
            "resolver_key": e.resolver_key, "created_at": e.created_at.isoformat()}

def attachment_in(a: AttachmentModel | None) -> Attachment | None:
    return Attachment(url=a.url, name=a.name, mime=a.mime, size=a.size) if a else None

ERROR_STATUS = [
    (ValidationError, 422), (NotFoundError, 404), (SessionClosedError, 409), (ConcurrencyError, 409),
    (UpstreamError, 502), (AuthenticationError, 401), (PermissionDeniedError, 403),
]


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(title="ScootCare Support")
    app.state.services = services or build_services()

    @app.exception_handler(ScootCareError)
    async def handle_error(request: Request, exc: ScootCareError):
        status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
        log.info("%s %s -> %s %s: %s", request.method, request.url.path, status, type(exc).__name__, exc)
        return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})

    def get_services(request: Request) -> Services:
        return request.app.state.services

    def get_user(request: Request, authorization: str | None = Header(default=None)) -> User:
        return current_user(request.app.state.services.backend, authorization)

    def get_admin(user: User = Depends(get_user)) -> User:
        return require_admin(user)

    # --- Chat ---
    @app.post("/chat", response_model=ChatResponse)
    def chat(req: ChatRequest, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        if not allow_request(user.id):
            raise HTTPException(status_code=429, detail="Rate limit exceeded. Please wait a moment.")
        corr = str(uuid.uuid4())
        log.info("Incoming chat: user=%s session=%s attachment=%s corr=%s",
                 user.id, req.session_id, bool(req.attachment), corr)
        turn = svc.chat.send(user, req.text, session_id=req.session_id, attachment=attachment_in(req.attachment))
        result = turn.result
        return ChatResponse(
            session_id=turn.session.id, session_status=turn.session.status.value,
            reply=turn.reply.text if turn.reply else None,
            matched=bool(result and result.matched),
            entry_id=result.entry.id if result and result.entry else None,
            offer_escalation=bool(result and result.offer_escalation),
            messages=[message_out(m) for m in turn.session.messages],
            correlation_id=corr,
        )

    # --- Sessions ---
    @app.get("/sessions/latest", response_model=SessionOut)
    def latest_session(user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return session_out(svc.chat.session_for(user))

    @app.post("/sessions", response_model=SessionOut, status_code=201)
    def new_session(user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return session_out(svc.chat.new_session(user))

    @app.get("/sessions/{session_id}", response_model=SessionOut)
    def get_session(session_id: str, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return session_out(svc.chat.session_for(user, session_id))

    @app.post("/sessions/{session_id}/close", response_model=SessionOut)
    def close_session(session_id: str, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return session_out(svc.chat.close_session(user, session_id))

    @app.post("/sessions/{session_id}/escalate", response_model=TicketOut, status_code=201)
    def escalate(session_id: str, req: EscalateRequest, user: User = Depends(get_user),
                 svc: Services = Depends(get_services)):
        svc.chat.session_for(user, session_id, write=True)
        ticket = svc.escalation.escalate(session_id, req.summary, attachment=attachment_in(req.attachment),
                                         trigger_message_id=req.message_id)
        return ticket_out(ticket)

    @app.websocket("/sessions/{session_id}/stream")
    async def stream_session(websocket: WebSocket, session_id: str):
        """Send the session now and again after every change until the client disconnects.

        Browsers cannot set headers on a WebSocket, so `?token=` is accepted
        in place of the Authorization header.
        """
        svc: Services = websocket.app.state.services
        authorization = websocket.headers.get("authorization")
        if not authorization and websocket.query_params.get("token"):
            authorization = f"Bearer {websocket.query_params['token']}"
        try:
            user = await run_in_threadpool(current_user, svc.backend, authorization)
            session = await run_in_threadpool(svc.chat.session_for, user, session_id)
        except (AuthenticationError, PermissionDeniedError, NotFoundError) as exc:
            log.info("Stream refused for session %s: %s", session_id, exc)
            await websocket.close(code=1008)
            return

        await websocket.accept()
        loop = asyncio.get_running_loop()
        updates: asyncio.Queue = asyncio.Queue()
        token = svc.sessions.watch_session(
            session_id, lambda s: loop.call_soon_threadsafe(updates.put_nowait, session_out(s)))
        log.info("Streaming session %s to %s", session_id, user.id)

        async def push():
            # re-read after subscribing so no change falls between the two
            current = await run_in_threadpool(svc.sessions.get, session.id)
            await websocket.send_json(session_out(current))
            while True:
                await websocket.send_json(await updates.get())

        async def listen():
            while True:
                await websocket.receive_text()

        tasks = [asyncio.create_task(push()), asyncio.create_task(listen())]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    raise exc
        finally:
            svc.sessions.unwatch(token)
            log.info("Stream for session %s closed", session_id)

    # --- Knowledge ---
    @app.get("/knowledge", response_model=list[KnowledgeOut])
    def list_knowledge(svc: Services = Depends(get_services)):
        return [knowledge_out(e) for e in svc.knowledge.list()]

    @app.get("/knowledge/quick", response_model=list[KnowledgeOut])
    def quick_questions(svc: Services = Depends(get_services)):
        return [knowledge_out(e) for e in svc.knowledge.quick_questions()]

    @app.post("/knowledge", response_model=KnowledgeOut, status_code=201)
    def add_knowledge(req: KnowledgeIn, admin: User = Depends(get_admin), svc: Services = Depends(get_services)):
        try:
            kind = EntryKind(req.kind)
        except ValueError:
            raise ValidationError("kind must be one of static, dynamic") from None
        entry = KnowledgeEntry(question_pattern=req.question_pattern, kind=kind,
                               body=req.body, resolver_key=req.resolver_key)
        return knowledge_out(svc.knowledge.add(entry))

    @app.patch("/knowledge/{entry_id}", response_model=KnowledgeOut)
    def update_knowledge(entry_id: str, req: KnowledgePatch, admin: User = Depends(get_admin),
                         svc: Services = Depends(get_services)):
        return knowledge_out(svc.knowledge.update(entry_id, req.model_dump(exclude_unset=True)))

    @app.delete("/knowledge/{entry_id}", status_code=204)
    def delete_knowledge(entry_id: str, admin: User = Depends(get_admin), svc: Services = Depends(get_services)):
        svc.knowledge.remove(entry_id)

    # --- Orders, uploads ---
    @app.get("/orders", response_model=list[OrderOut])
    def orders(user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return [o.to_dict() for o in list_orders(svc.backend, user.id)]

    @app.post("/uploads", response_model=AttachmentModel, status_code=201)
    def upload(file: UploadFile = File(...), user: User = Depends(get_user), svc: Services = Depends(get_services)):
        data = file.file.read()
        return svc.uploads.upload(user.id, file.filename or "", data, file.content_type or "application/octet-stream").to_dict()

    # --- Tickets ---
    @app.get("/tickets", response_model=list[TicketOut])
    def list_tickets(status: str | None = None, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        owner = None if user.is_admin else user.id
        return [ticket_out(t) for t in svc.escalation.list_tickets(owner_id=owner, status=status)]

    @app.post("/tickets", response_model=TicketOut, status_code=201)
    def submit_ticket(req: TicketCreate, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return ticket_out(svc.escalation.submit(user.id, req.summary, attachment=attachment_in(req.attachment)))

    @app.patch("/tickets/{ticket_id}", response_model=TicketOut)
    def update_ticket(ticket_id: str, req: TicketPatch, admin: User = Depends(get_admin),
                      svc: Services = Depends(get_services)):
        return ticket_out(svc.escalation.set_status(ticket_id, req.status))

    @app.get("/tickets/{ticket_id}/messages", response_model=SessionOut)
    def ticket_thread(ticket_id: str, user: User = Depends(get_user), svc: Services = Depends(get_services)):
        return session_out(svc.escalation.thread(ticket_id, user))

    @app.post("/tickets/{ticket_id}/messages", response_model=MessageOut, status_code=201)
    def post_to_thread(ticket_id: str, req: ThreadPost, user: User = Depends(get_user),
                       svc: Services = Depends(get_services)):
        return message_out(svc.escalation.post(ticket_id, user, req.text, attachment=attachment_in(req.attachment)))

    @app.get("/healthz")
    def health(svc: Services = Depends(get_services)):
        return {"ok": True, "backend": getattr(svc.backend, "name", type(svc.backend).__name__)}

    return app


app = create_app()
