# patient_intake/utils/file_storage.py
import os
import re
from pathlib import Path

from patient_intake.core.config import get_settings

_UNSAFE_SEGMENT = re.compile(r"[^A-Za-z0-9._-]")


def get_storage_root(root: str | Path | None = None) -> Path:
    """
    Returns the absolute path to the file storage root directory.

    By default, this is "<cwd>/uploads", but it can be overridden
    via FILE_STORAGE_ROOT or by passing `root`.
    """
    root = Path(root if root is not None else get_settings().file_storage_root)
    if not root.is_absolute():
        root = Path.cwd() / root
    root.mkdir(parents=True, exist_ok=True)
    return root


def save_bytes_to_storage(
    storage_root: Path,
    data: bytes,
    original_filename: str,
    subdir: str,
    file_id: str,
) -> str:
    """
    Save a blob of bytes to storage under a subdirectory as "<file_id><ext>".

    Returns a **relative storage path** (e.g. "identification/671385c70b2a44f.png")
    which can be stored in the database.
    """
    safe_subdir = _UNSAFE_SEGMENT.sub("_", subdir.strip().strip("/"))
    safe_id = _UNSAFE_SEGMENT.sub("_", file_id)

    dir_path = storage_root / safe_subdir
    dir_path.mkdir(parents=True, exist_ok=True)

    ext = _UNSAFE_SEGMENT.sub("", Path(original_filename).suffix)
    filename = f"{safe_id}{ext}"
    full_path = dir_path / filename

    with open(full_path, "wb") as f:
        f.write(data)

    # Return path relative to storage_root
    rel_path = os.path.join(safe_subdir, filename).replace("\\", "/")
    return rel_path


def resolve_storage_path(storage_root: Path, storage_path: str) -> Path:
    """
    Convert a relative storage path (stored in DB) into an absolute filesystem path.
    """
    return storage_root / storage_path
