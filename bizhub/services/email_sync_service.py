"""
IMAP mailbox synchronization for webmail accounts.

`sync_account` connects with the account's stored credentials, refreshes
the folder list, then pulls the most recent messages of one folder. New
messages are inserted and known ones get their flags refreshed. Failures
are recorded on the account and returned in the result, never raised.
"""
from __future__ import annotations

import email
import imaplib
import logging
import re
from datetime import timezone
from email import policy
from email.utils import getaddresses, parsedate_to_datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories import email as email_repo
from bizhub.utils.secrets_box import EncryptionKeyMissing

logger = logging.getLogger(__name__)

_LIST_RE = re.compile(r'^\((?P<flags>[^)]*)\)\s+(?P<delimiter>"[^"]*"|NIL)\s+(?P<name>.+)$')
_FLAGS_RE = re.compile(r'FLAGS \(([^)]*)\)')
_SIZE_RE = re.compile(r'RFC822\.SIZE (\d+)')
_UID_RE = re.compile(r'UID (\d+)')

SPECIAL_USE_FLAGS = {"\\Sent", "\\Drafts", "\\Trash", "\\Junk", "\\Archive", "\\All", "\\Flagged"}


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace('\\\\', '\\')
    return value


def parse_list_line(line) -> Optional[Dict[str, Optional[str]]]:
    """Parse one `LIST` response line into path, name, delimiter and special use."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    match = _LIST_RE.match(line.strip())
    if not match:
        return None
    flags = match.group("flags").split()
    if "\\Noselect" in flags or "\\NonExistent" in flags:
        return None
    delimiter = match.group("delimiter")
    delimiter = None if delimiter == "NIL" else _unquote(delimiter)
    path = _unquote(match.group("name"))
    name = path.rsplit(delimiter, 1)[-1] if delimiter else path
    special_use = next((f for f in flags if f in SPECIAL_USE_FLAGS), None)
    if path.upper() == "INBOX":
        special_use = "\\Inbox"
    return {"path": path, "name": name, "delimiter": delimiter, "special_use": special_use}


def parse_fetch_meta(meta) -> Dict:
    if isinstance(meta, bytes):
        meta = meta.decode("utf-8", errors="replace")
    flags_match = _FLAGS_RE.search(meta)
    size_match = _SIZE_RE.search(meta)
    uid_match = _UID_RE.search(meta)
    return {
        "flags": flags_match.group(1).split() if flags_match else [],
        "size": int(size_match.group(1)) if size_match else None,
        "uid": int(uid_match.group(1)) if uid_match else None,
    }


def _addresses(values) -> List[Dict[str, str]]:
    return [{"name": name, "address": address} for name, address in getaddresses([str(v) for v in values]) if address]


def _part_text(part) -> Optional[str]:
    try:
        return part.get_content()
    except (LookupError, UnicodeError):
        # unknown or lying charset
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", "replace")


def parse_message(raw: bytes, *, uid: int, folder_path: str) -> Dict:
    """Turn a raw RFC 822 message into the column values stored per message."""
    message = email.message_from_bytes(raw, policy=policy.default)
    message_id = (message.get("Message-ID") or "").strip() or f"<uid-{uid}@{folder_path}>"
    date = None
    if message.get("Date"):
        try:
            date = parsedate_to_datetime(str(message["Date"]))
            if date.tzinfo is None:
                date = date.replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            date = None
    from_list = _addresses(message.get_all("From", []))

    text_content = html_content = None
    text_part = message.get_body(preferencelist=("plain",))
    if text_part is not None:
        text_content = _part_text(text_part)
    html_part = message.get_body(preferencelist=("html",))
    if html_part is not None:
        html_content = _part_text(html_part)

    return {
        "message_id": message_id[:500],
        "uid": uid,
        "subject": str(message.get("Subject", "")) or None,
        "from_address": from_list[0] if from_list else None,
        "to_addresses": _addresses(message.get_all("To", [])),
        "cc_addresses": _addresses(message.get_all("Cc", [])),
        "date": date,
        "in_reply_to": (message.get("In-Reply-To") or "").strip() or None,
        "text_content": text_content,
        "html_content": html_content,
    }


def _quote_mailbox(path: str) -> str:
    return '"' + path.replace('\\', '\\\\').replace('"', '\\"') + '"'


class EmailSyncService:
    """Synchronizes one webmail account over IMAP."""

    def __init__(self, db: Session, account: models.EmailAccount):
        self.db = db
        self.account = account

    def connect(self) -> imaplib.IMAP4:
        account = self.account
        if account.imap_secure:
            conn = imaplib.IMAP4_SSL(account.imap_host, account.imap_port)
        else:
            conn = imaplib.IMAP4(account.imap_host, account.imap_port)
        conn.login(account.username or account.email, email_repo.account_password(account))
        return conn

    def sync_folders(self, conn: imaplib.IMAP4) -> Dict[str, models.EmailFolder]:
        status, lines = conn.list()
        if status != "OK":
            raise imaplib.IMAP4.error(f"LIST failed: {status}")
        folders = {}
        for line in lines or []:
            parsed = parse_list_line(line)
            if parsed is None:
                continue
            folder = email_repo.upsert_folder(self.db, self.account, **parsed)
            folders[folder.path] = folder
        return folders

    def _fetch(self, conn: imaplib.IMAP4, uid: bytes) -> Optional[Tuple[Dict, bytes]]:
        status, data = conn.uid("fetch", uid, "(UID FLAGS RFC822.SIZE BODY.PEEK[])")
        if status != "OK":
            return None
        for part in data or []:
            if isinstance(part, tuple) and len(part) == 2:
                return parse_fetch_meta(part[0]), part[1]
        return None

    def sync_messages(self, conn: imaplib.IMAP4, folder: models.EmailFolder, limit: int) -> Tuple[int, int]:
        status, _ = conn.select(_quote_mailbox(folder.path), readonly=True)
        if status != "OK":
            raise imaplib.IMAP4.error(f"SELECT {folder.path} failed")
        status, data = conn.uid("search", None, "ALL")
        if status != "OK":
            raise imaplib.IMAP4.error(f"SEARCH {folder.path} failed")
        uids = (data[0] or b"").split() if data else []
        created = updated = 0
        for uid in uids[-limit:]:
            fetched = self._fetch(conn, uid)
            if fetched is None:
                continue
            meta, raw = fetched
            try:
                values = parse_message(raw, uid=meta["uid"] or int(uid), folder_path=folder.path)
            except (LookupError, UnicodeError, ValueError, TypeError) as exc:
                logger.warning(
                    "email_parse_failed account=%s folder=%s uid=%s error=%s",
                    self.account.id, folder.path, uid, exc,
                )
                continue
            values["flags"] = meta["flags"]
            values["size"] = meta["size"]
            if email_repo.upsert_message(self.db, self.account, folder, values):
                created += 1
            else:
                updated += 1
        self.db.flush()
        email_repo.refresh_folder_counters(self.db, folder)
        return created, updated

    def sync(self, folder_path: str = "INBOX", limit: int = 50) -> schemas.SyncResult:
        conn = None
        try:
            conn = self.connect()
            folders = self.sync_folders(conn)
            folder = folders.get(folder_path)
            if folder is None:
                folder = email_repo.upsert_folder(
                    self.db, self.account, path=folder_path, name=folder_path, delimiter=None, special_use=None
                )
            created, updated = self.sync_messages(conn, folder, max(1, limit))
            email_repo.mark_synced(self.db, self.account)
            logger.info(
                "email_sync_done account=%s folder=%s new=%s updated=%s",
                self.account.id, folder_path, created, updated,
            )
            return schemas.SyncResult(
                success=True, folders=len(folders), new_messages=created, updated_messages=updated
            )
        except (imaplib.IMAP4.error, OSError, ValueError, LookupError, SQLAlchemyError, EncryptionKeyMissing) as exc:
            self.db.rollback()
            error = str(exc) or exc.__class__.__name__
            logger.warning("email_sync_failed account=%s error=%s", self.account.id, error)
            email_repo.mark_synced(self.db, self.account, error=error[:1000])
            return schemas.SyncResult(success=False, error=error)
        finally:
            if conn is not None:
                try:
                    conn.logout()
                except (imaplib.IMAP4.error, OSError):
                    logger.debug("IMAP logout failed for account %s", self.account.id)

    def move_remote(self, source_path: str, uid: int, target_path: str) -> bool:
        """Move one message on the server; failures are logged and reported as False."""
        return self._remote(source_path, uid, target_path)

    def delete_remote(self, source_path: str, uid: int) -> bool:
        """Flag one message \\Deleted and expunge it; failures are logged and reported as False."""
        return self._remote(source_path, uid, None)

    def _remote(self, source_path: str, uid: int, target_path: Optional[str]) -> bool:
        action = "move" if target_path is not None else "delete"
        conn = None
        try:
            conn = self.connect()
            status, _ = conn.select(_quote_mailbox(source_path))
            if status != "OK":
                raise imaplib.IMAP4.error(f"SELECT {source_path} failed")
            if target_path is not None:
                self._uid_move(conn, str(uid), target_path)
            else:
                self._uid_expunge(conn, str(uid))
            return True
        except (imaplib.IMAP4.error, OSError, ValueError, EncryptionKeyMissing) as exc:
            logger.warning(
                "email_remote_%s_failed account=%s folder=%s uid=%s error=%s",
                action, self.account.id, source_path, uid, exc,
            )
            return False
        finally:
            if conn is not None:
                try:
                    conn.logout()
                except (imaplib.IMAP4.error, OSError):
                    logger.debug("IMAP logout failed for account %s", self.account.id)

    def _uid_move(self, conn: imaplib.IMAP4, uid: str, target_path: str) -> None:
        try:
            status, _ = conn.uid("MOVE", uid, _quote_mailbox(target_path))
            if status == "OK":
                return
        except imaplib.IMAP4.error as exc:
            logger.debug("UID MOVE rejected, falling back to COPY: %s", exc)
        status, _ = conn.uid("COPY", uid, _quote_mailbox(target_path))
        if status != "OK":
            raise imaplib.IMAP4.error(f"COPY to {target_path} failed")
        self._uid_expunge(conn, uid)

    def _uid_expunge(self, conn: imaplib.IMAP4, uid: str) -> None:
        status, _ = conn.uid("STORE", uid, "+FLAGS", "(\\Deleted)")
        if status != "OK":
            raise imaplib.IMAP4.error(f"STORE {uid} failed")
        conn.expunge()


def sync_account(db: Session, account: models.EmailAccount, folder: str = "INBOX", limit: int = 50) -> schemas.SyncResult:
    return EmailSyncService(db, account).sync(folder, limit)


def sync_all_accounts(db: Session, folder: str = "INBOX", limit: int = 50) -> Dict[str, int]:
    summary = {"accounts": 0, "succeeded": 0, "failed": 0, "new_messages": 0}
    for account in email_repo.list_active_accounts(db):
        summary["accounts"] += 1
        result = sync_account(db, account, folder, limit)
        if result.success:
            summary["succeeded"] += 1
            summary["new_messages"] += result.new_messages
        else:
            summary["failed"] += 1
    return summary
