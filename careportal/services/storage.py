"""Analysis image storage: files under UPLOADS_DIR, read back only through the analysis API."""
import logging
import re
import time
from pathlib import Path

from careportal.core.config import settings

log = logging.getLogger(__name__)

ANALYSIS_IMAGES_BUCKET = "analysis-images"
PLACEHOLDER_PREFIX = "local:"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def uploads_root() -> Path:
    return Path(settings.uploads_dir)


def _safe_filename(filename: str) -> str:
    name = Path(filename or "upload").name
    return _UNSAFE_CHARS.sub("_", name) or "upload"


def placeholder_reference(filename: str) -> str:
    return f"{PLACEHOLDER_PREFIX}{filename}"


def is_placeholder(reference: str | None) -> bool:
    return not reference or reference.startswith(PLACEHOLDER_PREFIX)


def store_analysis_image(patient_id: int, filename: str, content: bytes) -> str:
    """
    Writes the image to ``analysis-images/<patient_id>/<epoch_ms>_<filename>`` and
    returns that path relative to the uploads root. Any storage failure returns
    ``local:<filename>`` instead so the analysis can still be saved.
    """
    relative = f"{ANALYSIS_IMAGES_BUCKET}/{patient_id}/{int(time.time() * 1000)}_{_safe_filename(filename)}"
    path = uploads_root() / relative
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as e:
        log.warning("Image upload failed for patient %s (%s): %s", patient_id, filename, e)
        return placeholder_reference(filename)
    return relative


def stored_image_path(reference: str | None) -> Path | None:
    """File behind a stored reference, or None for placeholders, missing files and paths outside the root."""
    if is_placeholder(reference):
        return None
    root = uploads_root().resolve()
    path = (root / reference).resolve()
    if not path.is_relative_to(root) or not path.is_file():
        return None
    return path
