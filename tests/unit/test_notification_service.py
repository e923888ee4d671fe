from unittest.mock import AsyncMock, MagicMock

from bizhub.services import notification_service as ns


def _context(**overrides):
    context = {
        "number": "2025004",
        "subject": "VPN down",
        "description": "Cannot connect",
        "status": "OPEN",
        "priority": "HIGH",
        "requester_name": "Ana",
        "requester_email": "ana@example.com",
        "department_name": "IT",
        "department_email": "it@acme.com",
    }
    context.update(overrides)
    return context


def _email_service(success=True):
    service = MagicMock()
    service.render_template.return_value = ("<p>html</p>", "text")
    service.send_email = AsyncMock(return_value={"success": success, "error": None if success else "smtp down"})
    return service


def test_notifications_enabled_flag(monkeypatch):
    assert ns.notifications_enabled() is False
    monkeypatch.setenv("HELPDESK_EMAIL_NOTIFICATIONS", "true")
    assert ns.notifications_enabled() is True


def test_ticket_created_subject_and_reply_to():
    service = _email_service()
    result = ns.HelpdeskNotifier(service).notify_ticket_created(_context())
    assert result["success"] is True
    service.render_template.assert_called_once()
    assert service.render_template.call_args.args[0] == ns.TEMPLATE_TICKET_CREATED
    kwargs = service.send_email.await_args.kwargs
    assert kwargs["subject"] == "[Ticket #2025004] VPN down"
    assert kwargs["to_email"] == "ana@example.com"
    assert kwargs["reply_to"] == "it@acme.com"


def test_reply_subject_and_missing_email():
    service = _email_service(success=False)
    notifier = ns.HelpdeskNotifier(service)
    result = notifier.notify_ticket_reply(_context(reply={"content": "hi", "content_type": "TEXT", "sender_name": "Bob"}))
    assert result["success"] is False
    assert service.send_email.await_args.kwargs["subject"].startswith("Re: [Ticket #2025004]")

    assert notifier.notify_ticket_reply(_context(requester_email=None))["error"] == "No requester email"


def test_background_entry_points_swallow_errors(monkeypatch):
    class Broken:
        def __init__(self, *args, **kwargs):
            raise RuntimeError("no smtp")

    monkeypatch.setattr(ns, "HelpdeskNotifier", Broken)
    ns.send_ticket_created(_context())
    ns.send_ticket_reply(_context())
