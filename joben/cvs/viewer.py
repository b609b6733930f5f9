"""Server-side CV viewer.

PDFs are served one page at a time (a single-page PDF cut with pypdf);
Word documents cannot be rendered and only offer a download. Every opened
storage handle is registered until ``close()`` so leaks show up in
``outstanding_handles()``.
"""
import io
import itertools
import logging
import os
import threading

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from .storage import cv_storage

logger = logging.getLogger(__name__)

ZOOM_LEVELS = (50, 75, 100, 125, 150, 200)
DEFAULT_ZOOM = 100

_handles_lock = threading.Lock()
_open_handles: set[int] = set()
_handle_ids = itertools.count(1)


def outstanding_handles() -> int:
    with _handles_lock:
        return len(_open_handles)


def clamp_zoom(value) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        return DEFAULT_ZOOM
    return min(ZOOM_LEVELS, key=lambda level: abs(level - value))


class CVViewError(Exception):
    pass


class CVViewer:
    def __init__(self, name: str, storage=None):
        self.name = name
        self.storage = storage or cv_storage()
        self._file = None
        self._handle_id = None
        self._reader = None

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name or "")[1].lower()

    @property
    def is_pdf(self) -> bool:
        return self.extension == ".pdf"

    @property
    def is_word(self) -> bool:
        return self.extension in {".doc", ".docx"}

    @property
    def filename(self) -> str:
        return os.path.basename(self.name or "")

    def open(self) -> "CVViewer":
        if self._file is not None:
            return self
        self._file = self.storage.open(self.name, "rb")
        self._handle_id = next(_handle_ids)
        with _handles_lock:
            _open_handles.add(self._handle_id)
        return self

    def close(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        finally:
            with _handles_lock:
                _open_handles.discard(self._handle_id)
            self._file = None
            self._handle_id = None
            self._reader = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def reader(self) -> PdfReader:
        if self._file is None:
            raise CVViewError("Viewer is not open.")
        if not self.is_pdf:
            raise CVViewError("Only PDF files can be previewed.")
        if self._reader is None:
            self._file.seek(0)
            try:
                self._reader = PdfReader(self._file)
            except PdfReadError as exc:
                logger.warning("CV preview failed: name=%s error=%s", self.name, exc)
                raise CVViewError("The PDF file could not be read.") from exc
        return self._reader

    @property
    def page_count(self) -> int:
        return len(self.reader.pages) if self.is_pdf else 0

    def render_page(self, number: int) -> bytes:
        """Return page ``number`` (1-based) as a standalone PDF document."""
        pages = self.reader.pages
        if number < 1 or number > len(pages):
            raise CVViewError(f"Page {number} does not exist.")
        writer = PdfWriter()
        writer.add_page(pages[number - 1])
        buf = io.BytesIO()
        writer.write(buf)
        return buf.getvalue()

    def read(self) -> bytes:
        if self._file is None:
            raise CVViewError("Viewer is not open.")
        self._file.seek(0)
        return self._file.read()
