"""Receipt files kept next to the database.

A chosen file is copied into the attachments folder under a unique name, so
the movement keeps working after the original is moved or deleted.
"""
import logging
import os
import shutil
import webbrowser
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

ATTACHMENTS_DIR = "attachments"
_STAMP_FORMAT = "%Y%m%d%H%M%S%f"
_STAMP_LENGTH = 20
ATTACHMENT_TYPES = [
    ("Comprobantes", "*.pdf *.png *.jpg *.jpeg *.webp"),
    ("Todos los archivos", "*.*"),
]


def attachments_folder(db_path: str) -> str | None:
    """Folder beside the database file; None for an in-memory database."""
    if not db_path or db_path == ":memory:":
        return None
    return os.path.join(os.path.dirname(os.path.abspath(db_path)), ATTACHMENTS_DIR)


def store_attachment(source: str, folder: str) -> str:
    if not os.path.isfile(source):
        raise FileNotFoundError(source)
    os.makedirs(folder, exist_ok=True)
    stamp = datetime.now().strftime(_STAMP_FORMAT)
    target = os.path.join(folder, f"{stamp}_{os.path.basename(source)}")
    shutil.copy2(source, target)
    logger.debug("Stored attachment %s", target)
    return target


def discard_attachment(path: str | None, folder: str | None):
    """Delete a stored copy; files outside the attachments folder are left alone."""
    if not path or not folder:
        return
    if os.path.dirname(os.path.abspath(path)) != os.path.abspath(folder):
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.debug("Attachment already gone: %s", path)


def attachment_name(path: str | None) -> str:
    """File name as the user chose it, without the storage prefix."""
    if not path:
        return ""
    name = os.path.basename(path)
    prefix, sep, rest = name.partition("_")
    return rest if sep and len(prefix) == _STAMP_LENGTH and prefix.isdigit() else name


def open_attachment(path: str) -> bool:
    if not os.path.isfile(path):
        return False
    return webbrowser.open(Path(path).resolve().as_uri())
