import imaplib
from unittest.mock import AsyncMock, patch

import pytest

from bizhub.db import models
from bizhub.services import email_sync_service
from bizhub.utils import secrets_box

RAW = (
    b"Message-ID: <welcome@acme.com>\r\n"
    b"From: Acme <hello@acme.com>\r\n"
    b"To: ana@example.com\r\n"
    b"Subject: Welcome aboard\r\n"
    b"Date: Mon, 06 Jan 2025 09:00:00 +0000\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Glad to have you.\r\n"
)

ACCOUNT = {
    "email": "ana@example.com",
    "password": "mailbox-secret",
    "imap_host": "imap.example.com",
    "smtp_host": "smtp.example.com",
}


class FakeIMAP:
    def list(self):
        return "OK", [b'(\\HasNoChildren) "/" "INBOX"']

    def select(self, mailbox, readonly=False):
        return "OK", [b"1"]

    def uid(self, command, *args):
        if command == "search":
            return "OK", [b"5"]
        return "OK", [(b"1 (UID 5 FLAGS () RFC822.SIZE 200 BODY[] {200}", RAW), b")"]

    def logout(self):
        pass


@pytest.fixture
def mail_headers(auth_headers):
    return auth_headers("email.read", "email.write", "email.delete")


@pytest.fixture
def synced(client, mail_headers, monkeypatch):
    monkeypatch.setattr(email_sync_service.EmailSyncService, "connect", lambda self: FakeIMAP())
    assert client.post("/email/account", json=ACCOUNT, headers=mail_headers).status_code == 201
    r = client.post("/email/sync", json={"folder": "INBOX", "limit": 10}, headers=mail_headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_account_lifecycle_encrypts_password(client, mail_headers, db_session):
    assert client.get("/email/account", headers=mail_headers).status_code == 404

    r = client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert "password" not in body and "password_encrypted" not in body
    assert body["imap_port"] == 993

    stored = db_session.query(models.EmailAccount).one()
    assert stored.password_encrypted != "mailbox-secret"
    assert secrets_box.decrypt(stored.password_encrypted) == "mailbox-secret"

    dup = client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    assert dup.status_code == 400
    assert dup.json()["error"]["message"] == "Collaborator already has an email account"

    r = client.put("/email/account", json={"smtp_port": 465, "smtp_secure": True}, headers=mail_headers)
    assert r.status_code == 200
    assert r.json()["smtp_port"] == 465

    assert client.delete("/email/account", headers=mail_headers).status_code == 204
    assert client.get("/email/account", headers=mail_headers).status_code == 404


def test_account_requires_encryption_key(client, mail_headers, monkeypatch):
    monkeypatch.delenv("EMAIL_ENCRYPTION_KEY", raising=False)
    r = client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "EMAIL_ENCRYPTION_KEY is not configured"


def test_malformed_encryption_key_is_a_client_error(client, mail_headers, monkeypatch):
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "not-a-fernet-key")
    r = client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "EMAIL_ENCRYPTION_KEY is not a valid Fernet key"

    monkeypatch.delenv("EMAIL_ENCRYPTION_KEY")
    assert client.post("/email/account", json=ACCOUNT, headers=mail_headers).status_code == 400
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "q0YkpTfV4yW0bMZ6yK8n2w6c3xJ5dQk4j7Zr1s9tB2E=")
    assert client.post("/email/account", json=ACCOUNT, headers=mail_headers).status_code == 201
    r = client.put("/email/account", json={"password": "new-secret"}, headers=mail_headers)
    assert r.status_code == 200
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "still-not-a-key")
    r = client.put("/email/account", json={"password": "newer-secret"}, headers=mail_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "EMAIL_ENCRYPTION_KEY is not a valid Fernet key"


def test_sync_then_browse_messages(client, mail_headers, synced):
    assert synced["success"] is True
    assert synced["new_messages"] == 1

    folders = client.get("/email/folders", headers=mail_headers).json()
    assert [f["path"] for f in folders] == ["INBOX"]
    assert folders[0]["unread_messages"] == 1

    page = client.get("/email/messages", params={"unread_only": True}, headers=mail_headers).json()
    assert page["total_items"] == 1
    message = page["items"][0]
    assert message["subject"] == "Welcome aboard"
    assert message["from_address"]["address"] == "hello@acme.com"

    r = client.post(f"/email/messages/{message['id']}/read", headers=mail_headers)
    assert r.status_code == 200
    assert r.json()["is_read"] is True
    assert "\\Seen" in r.json()["flags"]

    folders = client.get("/email/folders", headers=mail_headers).json()
    assert folders[0]["unread_messages"] == 0
    assert client.get("/email/messages", params={"unread_only": True}, headers=mail_headers).json()["total_items"] == 0

    detail = client.get(f"/email/messages/{message['id']}", headers=mail_headers).json()
    assert detail["text_content"].strip() == "Glad to have you."

    missing = client.get("/email/messages", params={"folder_id": "00000000-0000-0000-0000-000000000000"}, headers=mail_headers)
    assert missing.status_code == 404


def test_sync_failure_is_reported(client, mail_headers, monkeypatch):
    def refuse(self):
        raise OSError("connection refused")

    monkeypatch.setattr(email_sync_service.EmailSyncService, "connect", refuse)
    client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    r = client.post("/email/sync", headers=mail_headers)
    assert r.status_code == 200
    assert r.json() == {
        "success": False, "folders": 0, "new_messages": 0, "updated_messages": 0, "error": "connection refused",
    }
    assert client.get("/email/account", headers=mail_headers).json()["last_sync_error"] == "connection refused"


def test_send_uses_account_smtp(client, mail_headers):
    client.post("/email/account", json=ACCOUNT, headers=mail_headers)

    empty = client.post("/email/send", json={"to": ["bob@example.com"], "subject": "Hi"}, headers=mail_headers)
    assert empty.status_code == 400
    assert empty.json()["error"]["message"] == "Message body is required"

    sent = AsyncMock(return_value={"success": True, "message_id": "<abc@example.com>"})
    with patch("bizhub.services.email_service.EmailService.send_email", sent):
        r = client.post(
            "/email/send",
            json={"to": ["Bob@Example.com"], "subject": "Hi", "text": "Hello Bob"},
            headers=mail_headers,
        )
    assert r.status_code == 200
    assert r.json() == {"success": True, "message_id": "<abc@example.com>"}
    args, kwargs = sent.call_args
    assert args[0] == ["bob@example.com"]
    assert kwargs["text_content"] == "Hello Bob"

    failed = AsyncMock(return_value={"success": False, "error": "SMTP down"})
    with patch("bizhub.services.email_service.EmailService.send_email", failed):
        r = client.post("/email/send", json={"to": ["bob@example.com"], "subject": "Hi", "text": "x"}, headers=mail_headers)
    assert r.status_code == 502
    assert r.json()["error"]["message"] == "SMTP down"


def test_mail_routes_require_permission(client, auth_headers):
    headers = auth_headers("email.read")
    assert client.post("/email/account", json=ACCOUNT, headers=headers).status_code == 403


class MailboxIMAP(FakeIMAP):
    """Server with Trash and Archive folders that records write commands."""

    def __init__(self, supports_move=True):
        self.supports_move = supports_move
        self.commands = []
        self.expunged = 0

    def list(self):
        return "OK", [
            b'(\\HasNoChildren) "/" "INBOX"',
            b'(\\HasNoChildren \\Trash) "/" "Trash"',
            b'(\\HasNoChildren) "/" "Archive"',
        ]

    def uid(self, command, *args):
        if command in ("MOVE", "COPY", "STORE"):
            self.commands.append((command,) + args)
            if command == "MOVE" and not self.supports_move:
                raise imaplib.IMAP4.error("UID command error: BAD [b'Unknown command']")
            return "OK", [None]
        return super().uid(command, *args)

    def expunge(self):
        self.expunged += 1
        return "OK", [None]


def _folders(client, headers):
    return {f["path"]: f for f in client.get("/email/folders", headers=headers).json()}


def test_move_then_trash_then_delete(client, mail_headers, monkeypatch):
    server = MailboxIMAP()
    monkeypatch.setattr(email_sync_service.EmailSyncService, "connect", lambda self: server)
    client.post("/email/account", json=ACCOUNT, headers=mail_headers)
    assert client.post("/email/sync", headers=mail_headers).json()["folders"] == 3
    folders = _folders(client, mail_headers)
    assert folders["Trash"]["special_use"] == "\\Trash"
    message = client.get("/email/messages", headers=mail_headers).json()["items"][0]

    r = client.post(
        f"/email/messages/{message['id']}/move",
        json={"folder_id": folders["Archive"]["id"]},
        headers=mail_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["folder_id"] == folders["Archive"]["id"]
    assert server.commands == [("MOVE", "5", '"Archive"')]
    counts = _folders(client, mail_headers)
    assert counts["INBOX"]["total_messages"] == 0
    assert counts["Archive"]["total_messages"] == 1
    assert counts["Archive"]["unread_messages"] == 1

    same = client.post(
        f"/email/messages/{message['id']}/move",
        json={"folder_id": folders["Archive"]["id"]},
        headers=mail_headers,
    )
    assert same.status_code == 400
    assert same.json()["error"]["message"] == "Message is already in this folder"

    # Server without MOVE falls back to COPY + expunge
    server.supports_move = False
    server.commands.clear()
    assert client.delete(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 204
    assert server.commands == [
        ("MOVE", "5", '"Trash"'),
        ("COPY", "5", '"Trash"'),
        ("STORE", "5", "+FLAGS", "(\\Deleted)"),
    ]
    assert server.expunged == 1
    trashed = client.get(f"/email/messages/{message['id']}", headers=mail_headers).json()
    assert trashed["folder_id"] == folders["Trash"]["id"]

    server.commands.clear()
    assert client.delete(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 204
    assert server.commands == [("STORE", "5", "+FLAGS", "(\\Deleted)")]
    assert client.get(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 404
    assert client.get("/email/messages", headers=mail_headers).json()["total_items"] == 0
    assert _folders(client, mail_headers)["Trash"]["total_messages"] == 0


def test_delete_without_trash_and_unreachable_server(client, mail_headers, synced, monkeypatch):
    def refuse(self):
        raise OSError("connection refused")

    monkeypatch.setattr(email_sync_service.EmailSyncService, "connect", refuse)
    message = client.get("/email/messages", headers=mail_headers).json()["items"][0]

    missing = client.post(
        f"/email/messages/{message['id']}/move",
        json={"folder_id": "00000000-0000-0000-0000-000000000000"},
        headers=mail_headers,
    )
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "Folder not found"

    assert client.delete(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 204
    assert client.get(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 404
    assert _folders(client, mail_headers)["INBOX"]["total_messages"] == 0
    assert client.delete(f"/email/messages/{message['id']}", headers=mail_headers).status_code == 404
