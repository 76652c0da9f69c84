import pytest

from scootcare.config import FALLBACK_REPLY, FILE_ONLY_REPLY, GREETING
from scootcare.errors import PermissionDeniedError, SessionClosedError, ValidationError
from scootcare.models import Role, SessionStatus


def test_first_message_opens_a_session(services, alex):
    turn = services.chat.send(alex, "where is my order?")
    assert turn.session.owner_id == alex.id
    assert [m.role for m in turn.session.messages] == [Role.BOT, Role.USER, Role.BOT]
    assert turn.session.messages[0].text == GREETING
    assert turn.result.matched
    assert "shipped" in turn.reply.text
    assert "ScootLite Urban" in turn.reply.text


def test_follow_up_reuses_latest_session(services, alex):
    first = services.chat.send(alex, "brakes not working")
    second = services.chat.send(alex, "purple elephant")
    assert first.session.id == second.session.id
    assert second.reply.text == FALLBACK_REPLY
    assert second.result.offer_escalation
    assert len(second.session.messages) == 5


def test_static_answer_from_seeded_knowledge(services, alex):
    turn = services.chat.send(alex, "scooter running slow")
    assert turn.reply.text.startswith("Speed issues")


def test_text_is_sanitized(services, alex):
    turn = services.chat.send(alex, "  brakes\x07   squeal  ")
    assert turn.user_message.text == "brakes squeal"


def test_empty_message_rejected(services, alex):
    with pytest.raises(ValidationError):
        services.chat.send(alex, "   ")
    assert services.chat.history(alex) == []


def test_file_only_message(services, alex):
    photo = services.uploads.upload(alex.id, "scooter.jpg", b"\xff\xd8\xff", "image/jpeg")
    turn = services.chat.send(alex, "", attachment=photo)
    assert turn.user_message.attachment == photo
    assert turn.reply.text == FILE_ONLY_REPLY
    assert turn.result is None


def test_escalated_session_gets_no_bot_reply(services, alex):
    turn = services.chat.send(alex, "purple elephant")
    services.escalation.escalate(turn.session.id, "odd question")
    followup = services.chat.send(alex, "any news?", session_id=turn.session.id)
    assert followup.reply is None
    assert followup.session.status == SessionStatus.ESCALATED
    assert followup.session.messages[-1].text == "any news?"


def test_bot_answers_again_after_ticket_resolved(services, alex):
    turn = services.chat.send(alex, "purple elephant")
    ticket = services.escalation.escalate(turn.session.id, "odd question")
    services.escalation.set_status(ticket.id, "resolved")
    after = services.chat.send(alex, "battery not charging")
    assert after.session.id != turn.session.id
    assert after.reply is not None
    assert after.reply.text.startswith("Battery issues")


def test_closed_session_is_read_only(services, alex):
    turn = services.chat.send(alex, "battery")
    services.chat.close_session(alex, turn.session.id)
    with pytest.raises(SessionClosedError):
        services.chat.send(alex, "hello again", session_id=turn.session.id)
    assert len(services.sessions.get(turn.session.id).messages) == 3


def test_message_after_close_starts_fresh_session(services, alex):
    turn = services.chat.send(alex, "battery")
    services.chat.close_session(alex, turn.session.id)
    again = services.chat.send(alex, "battery")
    assert again.session.id != turn.session.id
    assert again.session.status == SessionStatus.ACTIVE


def test_other_customers_session_is_off_limits(services, alex, sam, admin):
    turn = services.chat.send(alex, "battery")
    with pytest.raises(PermissionDeniedError):
        services.chat.send(sam, "hi", session_id=turn.session.id)
    with pytest.raises(PermissionDeniedError):
        services.chat.session_for(sam, turn.session.id)
    assert services.chat.session_for(admin, turn.session.id).id == turn.session.id
    with pytest.raises(PermissionDeniedError):
        services.chat.send(admin, "hi", session_id=turn.session.id)


def test_admin_can_close_any_session(services, alex, admin):
    turn = services.chat.send(alex, "battery")
    closed = services.chat.close_session(admin, turn.session.id)
    assert closed.status == SessionStatus.RESOLVED


def test_new_session_and_history(services, alex):
    first = services.chat.send(alex, "battery").session
    second = services.chat.new_session(alex)
    assert second.id != first.id
    assert {s.id for s in services.chat.history(alex)} == {first.id, second.id}
    assert services.chat.send(alex, "battery").session.id in {first.id, second.id}


def test_upload_validation(services, alex):
    with pytest.raises(ValidationError):
        services.uploads.upload(alex.id, "empty.jpg", b"", "image/jpeg")
    with pytest.raises(ValidationError):
        services.uploads.upload(alex.id, "", b"abc", "image/jpeg")
    with pytest.raises(ValidationError):
        services.uploads.upload(alex.id, "huge.bin", b"0" * (10 * 1024 * 1024 + 1))
    photo = services.uploads.upload(alex.id, "photo.PNG", b"abc", "image/png")
    assert photo.url.startswith("memory://chat-files/user-alex/")
    assert photo.url.endswith(".png")
    assert photo.size == 3
