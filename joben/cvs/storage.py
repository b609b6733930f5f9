"""Access to the two file buckets: ``cvs`` (candidate and guest CVs) and ``logos``.

Validation runs before any storage call; stored names are
``<prefix>/<epoch-ms>-<random>.<ext>`` so concurrent uploads never collide.
"""
import logging
import os
import secrets
import time

from django.core.exceptions import ValidationError
from django.core.files.storage import storages

logger = logging.getLogger(__name__)

MAX_CV_SIZE = 5 * 1024 * 1024
MAX_LOGO_SIZE = 2 * 1024 * 1024

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# content type -> accepted extensions
ALLOWED_CV_TYPES = {
    PDF: (".pdf",),
    DOC: (".doc",),
    DOCX: (".docx",),
}

GUEST_CV_PREFIX = "guest-applications"


def cv_storage():
    return storages["cvs"]


def logo_storage():
    return storages["logos"]


def validate_cv_file(upload) -> None:
    if not upload:
        raise ValidationError("Please attach your CV.", code="required")
    content_type = (getattr(upload, "content_type", "") or "").split(";")[0].strip().lower()
    extension = os.path.splitext(upload.name or "")[1].lower()
    if extension not in ALLOWED_CV_TYPES.get(content_type, ()):
        raise ValidationError("Only PDF, DOC or DOCX files are accepted.", code="invalid_type")
    if upload.size > MAX_CV_SIZE:
        raise ValidationError("The file is too large. Maximum size is 5 MB.", code="too_large")


def validate_logo_file(upload) -> None:
    if not upload:
        return
    content_type = (getattr(upload, "content_type", "") or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError("The logo must be an image.", code="invalid_type")
    if upload.size > MAX_LOGO_SIZE:
        raise ValidationError("The logo is too large. Maximum size is 2 MB.", code="too_large")


def generate_object_name(prefix: str, filename: str) -> str:
    extension = os.path.splitext(filename or "")[1].lower().lstrip(".") or "bin"
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(5)}.{extension}"
    prefix = (prefix or "").strip("/")
    return f"{prefix}/{name}" if prefix else name


def upload_cv(upload, prefix: str) -> str:
    """Validate and store a CV, returning its name inside the ``cvs`` bucket.

    Raises ``ValidationError`` before touching storage; storage failures
    (``OSError``) propagate to the caller.
    """
    validate_cv_file(upload)
    name = cv_storage().save(generate_object_name(prefix, upload.name), upload)
    logger.info("CV uploaded: name=%s size=%s", name, upload.size)
    return name


def delete_cv(name: str) -> None:
    if not name:
        return
    try:
        cv_storage().delete(name)
    except OSError:
        logger.exception("CV delete failed: name=%s", name)
    else:
        logger.info("CV deleted: name=%s", name)


def upload_logo(upload, owner_id) -> str:
    validate_logo_file(upload)
    name = logo_storage().save(generate_object_name(str(owner_id), upload.name), upload)
    logger.info("Logo uploaded: name=%s owner=%s", name, owner_id)
    return name


def delete_logo(name: str) -> None:
    if not name:
        return
    try:
        logo_storage().delete(name)
    except OSError:
        logger.exception("Logo delete failed: name=%s", name)
