"""Tests for festreg.extraction module."""

import pytest

from festreg import extraction
from festreg.extraction import (
    NO_TEXT_MESSAGE,
    NOT_PDF_MESSAGE,
    ExtractionError,
    extract_statement_text,
    read_statement,
    validate_statement,
)


class _FakePage:
    def __init__(self, text):
        self._text = text

    def extract_text(self):
        return self._text


class _FakePdf:
    def __init__(self, texts):
        self.pages = [_FakePage(t) for t in texts]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_pdf(monkeypatch):
    """Make pdfplumber.open return pages with the given texts."""
    def _install(texts):
        monkeypatch.setattr(extraction.pdfplumber, 'open', lambda fp: _FakePdf(texts))
    return _install


class TestValidateStatement:
    """Tests for the declared-type check."""

    def test_pdf_suffix_accepted(self):
        validate_statement('statement.pdf')
        validate_statement('STATEMENT.PDF')

    def test_other_suffix_rejected(self):
        with pytest.raises(ExtractionError, match=NOT_PDF_MESSAGE):
            validate_statement('statement.png')

    def test_content_type_accepted(self):
        validate_statement('upload.bin', 'application/pdf')

    def test_content_type_wins_over_suffix(self):
        with pytest.raises(ExtractionError):
            validate_statement('statement.pdf', 'image/jpeg')


class TestExtractStatementText:
    """Tests for text extraction."""

    def test_pages_joined_in_order(self, fake_pdf):
        fake_pdf(['page one', 'page two', 'page three'])
        assert extract_statement_text(b'%PDF-') == 'page one page two page three'

    def test_page_without_text_layer_contributes_nothing(self, fake_pdf):
        fake_pdf(['Ref 223344', None])
        assert extract_statement_text(b'%PDF-') == 'Ref 223344 '

    def test_no_text_layer_is_an_error(self, fake_pdf):
        fake_pdf([None, '  '])
        with pytest.raises(ExtractionError, match='searchable PDF'):
            extract_statement_text(b'%PDF-')

    def test_no_text_message_names_scans(self):
        assert 'image scan' in NO_TEXT_MESSAGE

    def test_unreadable_pdf_is_an_error(self, monkeypatch):
        def _broken(fp):
            raise RuntimeError('bad xref table')
        monkeypatch.setattr(extraction.pdfplumber, 'open', _broken)
        with pytest.raises(ExtractionError):
            extract_statement_text(b'%PDF-1.4 garbage')

    def test_garbage_bytes_are_an_error(self):
        with pytest.raises(ExtractionError):
            extract_statement_text(b'this is not a pdf at all')


class TestReadStatement:
    """Tests for reading statements from disk."""

    def test_reads_and_extracts(self, tmp_path, fake_pdf):
        fake_pdf(['UPI 998877665544'])
        f = tmp_path / 'march.pdf'
        f.write_bytes(b'%PDF-1.4')
        assert read_statement(f) == 'UPI 998877665544'

    def test_non_pdf_rejected_before_reading(self, tmp_path):
        with pytest.raises(ExtractionError, match=NOT_PDF_MESSAGE):
            read_statement(tmp_path / 'missing.xlsx')

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError, match='Could not open'):
            read_statement(tmp_path / 'missing.pdf')
