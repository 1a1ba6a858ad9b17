import pytest

from studykit.errors import ExtractionError
from studykit.study.extractor import PAGE_SEPARATOR, extract_text

from conftest import THREE_PAGES, make_pdf


def test_extracts_pages_in_order_from_bytes():
    text = extract_text(make_pdf(THREE_PAGES))

    positions = [text.index(page) for page in THREE_PAGES]
    assert positions == sorted(positions)
    assert text.count(PAGE_SEPARATOR) >= 2


def test_extracts_from_path(tmp_path):
    path = tmp_path / "notes.pdf"
    path.write_bytes(make_pdf(["Mitochondria are the powerhouse of the cell."]))

    assert "powerhouse of the cell" in extract_text(str(path))


def test_blank_pages_yield_empty_string():
    assert extract_text(make_pdf(["", ""])) == ""


def test_garbage_bytes_raise_extraction_error():
    with pytest.raises(ExtractionError):
        extract_text(b"%PDF-1.4\nthis is not really a pdf at all")


def test_missing_file_raises_extraction_error(tmp_path):
    with pytest.raises(ExtractionError, match="not found"):
        extract_text(str(tmp_path / "nope.pdf"))
