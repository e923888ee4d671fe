import imaplib
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from bizhub.db import models, schemas
from bizhub.db.repositories import email as email_repo
from bizhub.services import email_sync_service as sync

RAW = (
    b"Message-ID: <m1@acme.com>\r\n"
    b"From: Ana Silva <ana@acme.com>\r\n"
    b"To: bob@example.com, Carol <carol@example.com>\r\n"
    b"Subject: Quarterly report\r\n"
    b"Date: Tue, 07 Jan 2025 10:00:00 +0000\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Numbers attached.\r\n"
)


def test_parse_list_line():
    assert sync.parse_list_line(b'(\\HasNoChildren) "/" "INBOX"') == {
        "path": "INBOX", "name": "INBOX", "delimiter": "/", "special_use": "\\Inbox",
    }
    sent = sync.parse_list_line('(\\HasNoChildren \\Sent) "." "INBOX.Sent Items"')
    assert sent["name"] == "Sent Items" and sent["special_use"] == "\\Sent"
    assert sync.parse_list_line('(\\Noselect) "/" "[Gmail]"') is None
    assert sync.parse_list_line("garbage") is None


def test_parse_fetch_meta():
    meta = sync.parse_fetch_meta(b"12 (UID 42 FLAGS (\\Seen \\Flagged) RFC822.SIZE 2048 BODY[] {2048}")
    assert meta == {"flags": ["\\Seen", "\\Flagged"], "size": 2048, "uid": 42}


def test_parse_message():
    values = sync.parse_message(RAW, uid=7, folder_path="INBOX")
    assert values["message_id"] == "<m1@acme.com>"
    assert values["from_address"] == {"name": "Ana Silva", "address": "ana@acme.com"}
    assert [a["address"] for a in values["to_addresses"]] == ["bob@example.com", "carol@example.com"]
    assert values["date"] == datetime(2025, 1, 7, 10, tzinfo=timezone.utc)
    assert values["text_content"].strip() == "Numbers attached."
    assert values["html_content"] is None

    no_id = sync.parse_message(b"Subject: x\r\n\r\nbody", uid=9, folder_path="INBOX")
    assert no_id["message_id"] == "<uid-9@INBOX>"


class FakeIMAP:
    def __init__(self, flags=b"\\Seen"):
        self.flags = flags
        self.logged_out = False

    def list(self):
        return "OK", [b'(\\HasNoChildren) "/" "INBOX"', b'(\\HasNoChildren \\Sent) "/" "Sent"']

    def select(self, mailbox, readonly=False):
        return "OK", [b"1"]

    def uid(self, command, *args):
        if command == "search":
            return "OK", [b"42"]
        meta = b"1 (UID 42 FLAGS (" + self.flags + b") RFC822.SIZE 300 BODY[] {300}"
        return "OK", [(meta, RAW), b")"]

    def logout(self):
        self.logged_out = True


@pytest.fixture
def account(db_session):
    collaborator = models.Collaborator(name="Ana", email="ana@acme.com")
    db_session.add(collaborator)
    db_session.commit()
    return email_repo.create_account(
        db_session,
        schemas.EmailAccountCreate(email="ana@acme.com", password="pw", imap_host="imap.acme.com", smtp_host="smtp.acme.com"),
        collaborator_id=collaborator.id,
    )


def test_sync_inserts_then_updates(db_session, account, monkeypatch):
    fake = FakeIMAP()
    monkeypatch.setattr(sync.EmailSyncService, "connect", lambda self: fake)

    result = sync.sync_account(db_session, account)
    assert result.success is True
    assert (result.folders, result.new_messages, result.updated_messages) == (2, 1, 0)
    assert fake.logged_out is True

    message = db_session.query(models.EmailMessage).one()
    assert message.is_read is True and message.subject == "Quarterly report"
    inbox = db_session.query(models.EmailFolder).filter(models.EmailFolder.path == "INBOX").one()
    assert (inbox.total_messages, inbox.unread_messages) == (1, 0)

    fake.flags = b""
    result = sync.sync_account(db_session, account)
    assert (result.new_messages, result.updated_messages) == (0, 1)
    db_session.expire_all()
    assert db_session.query(models.EmailMessage).one().is_read is False
    assert account.last_sync_at is not None and account.last_sync_error is None


def test_sync_failure_is_recorded(db_session, account, monkeypatch):
    def refuse(self):
        raise imaplib.IMAP4.error("LOGIN failed")

    monkeypatch.setattr(sync.EmailSyncService, "connect", refuse)
    result = sync.sync_account(db_session, account)
    assert result.success is False
    assert "LOGIN failed" in result.error
    db_session.expire_all()
    assert account.last_sync_error == "LOGIN failed"

    summary = sync.sync_all_accounts(db_session)
    assert summary == {"accounts": 1, "succeeded": 0, "failed": 1, "new_messages": 0}


ODD_CHARSET = (
    b"Message-ID: <m2@acme.com>\r\n"
    b"From: Legacy Gateway <gw@acme.com>\r\n"
    b"Subject: Nightly batch\r\n"
    b"Content-Type: text/plain; charset=x-unknown-8bit\r\n"
    b"\r\n"
    b"Batch finished.\r\n"
)


def test_parse_message_with_unknown_charset():
    values = sync.parse_message(ODD_CHARSET, uid=8, folder_path="INBOX")
    assert values["text_content"].strip() == "Batch finished."


class OddCharsetIMAP(FakeIMAP):
    def uid(self, command, *args):
        if command == "search":
            return "OK", [b"43"]
        return "OK", [(b"1 (UID 43 FLAGS () RFC822.SIZE 180 BODY[] {180}", ODD_CHARSET), b")"]


def test_sync_keeps_message_with_unknown_charset(db_session, account, monkeypatch):
    monkeypatch.setattr(sync.EmailSyncService, "connect", lambda self: OddCharsetIMAP())
    result = sync.sync_account(db_session, account)
    assert result.success is True
    assert result.new_messages == 1
    message = db_session.query(models.EmailMessage).one()
    assert message.subject == "Nightly batch"
    assert message.text_content.strip() == "Batch finished."


def test_unparseable_message_is_skipped(db_session, account, monkeypatch):
    def broken(raw, *, uid, folder_path):
        raise UnicodeError("bad bytes")

    monkeypatch.setattr(sync.EmailSyncService, "connect", lambda self: FakeIMAP())
    monkeypatch.setattr(sync, "parse_message", broken)
    result = sync.sync_account(db_session, account)
    assert result.success is True
    assert (result.new_messages, result.updated_messages) == (0, 0)
    assert db_session.query(models.EmailMessage).count() == 0


def test_database_error_is_recorded(db_session, account, monkeypatch):
    def fail(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(sync.EmailSyncService, "connect", lambda self: FakeIMAP())
    monkeypatch.setattr(sync.email_repo, "upsert_message", fail)
    result = sync.sync_account(db_session, account)
    assert result.success is False
    assert result.error == "disk full"
    db_session.expire_all()
    assert account.last_sync_error == "disk full"
