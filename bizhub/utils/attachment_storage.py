"""Local disk storage for task attachments under TASK_ATTACHMENTS_DIR."""

import os
import re
import uuid
from pathlib import Path

from bizhub.utils.runtime import env_int

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def storage_root() -> Path:
    return Path(os.getenv("TASK_ATTACHMENTS_DIR", "uploads"))


def max_attachment_bytes() -> int:
    return env_int("TASK_ATTACHMENT_MAX_BYTES", DEFAULT_MAX_BYTES)


def safe_name(filename: str) -> str:
    """Basename with anything outside [A-Za-z0-9._-] folded to underscores."""
    base = os.path.basename((filename or "").replace("\\", "/")).strip()
    cleaned = _UNSAFE.sub("_", base).strip("._")
    return cleaned[:200] or "file"


def save(task_id: uuid.UUID, filename: str, data: bytes) -> str:
    relative = f"tasks/{task_id}/{uuid.uuid4().hex}_{safe_name(filename)}"
    target = storage_root() / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return relative


def resolve(relative: str) -> Path:
    return storage_root() / relative


def remove(relative: str) -> None:
    resolve(relative).unlink(missing_ok=True)
