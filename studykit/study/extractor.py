import io
import logging
import os
import re

from pdfminer.high_level import extract_pages
from pdfminer.layout import LTTextContainer

from studykit.errors import ExtractionError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def _clean_page_text(raw: str) -> str:
    if not raw:
        return ""
    raw = raw.replace("\x0c", "\n")
    raw = raw.replace("\r\n", "\n").replace("\r", "\n")
    raw = re.sub(r"\n{3,}", "\n\n", raw)
    raw = re.sub(r"[ \t]{2,}", " ", raw)
    raw = "\n".join(line.strip() for line in raw.split("\n"))
    return raw.strip()


def extract_text(source: str | os.PathLike | bytes) -> str:
    """Concatenates the text of every page, in page order.

    ``source`` is a filesystem path or the raw PDF bytes. A PDF with no
    extractable text yields ``""``; anything pdfminer cannot parse raises
    ``ExtractionError``.
    """
    fp = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    pages = []
    try:
        for page_layout in extract_pages(fp):
            parts = [el.get_text() for el in page_layout if isinstance(el, LTTextContainer)]
            pages.append(_clean_page_text("".join(parts)))
    except FileNotFoundError as e:
        raise ExtractionError(f"file not found: {e.filename}") from e
    except Exception as e:
        raise ExtractionError(f"could not parse PDF: {e}") from e

    logger.debug("extracted %d pages", len(pages))
    return PAGE_SEPARATOR.join(p for p in pages if p)
