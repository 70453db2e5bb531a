import pytest

from slideit.kernel.errors import ProblemDetails
from slideit.models.slide import SourceKind
from slideit.pipeline.extract import extract

from fakes import docx_bytes, pdf_bytes, xlsx_bytes


def test_pdf_text():
    text = extract(SourceKind.PDF, pdf_bytes("Hello PDF"))
    assert "Hello PDF" in text


def test_word_text_keeps_paragraph_order():
    text = extract(SourceKind.WORD, docx_bytes("First paragraph", "Second paragraph"))
    assert text.index("First paragraph") < text.index("Second paragraph")


def test_excel_sheets_rendered_in_workbook_order():
    raw = xlsx_bytes({
        "Sales": [["Region", "Total"], ["North", 10], ["South", 20]],
        "Empty": [],
        "Notes": [["ok"]],
    })
    text = extract(SourceKind.EXCEL, raw)
    blocks = text.split("\n\n")
    assert blocks[0] == "Sheet: Sales\nRegion,Total\nNorth,10\nSouth,20"
    assert blocks[1] == "Sheet: Empty"
    assert blocks[2] == "Sheet: Notes\nok"


def test_plain_text_passthrough_and_bom():
    assert extract(SourceKind.TEXT, "already text") == "already text"
    assert extract(SourceKind.TEXT, "\ufeffbonjour".encode("utf-8")) == "bonjour"


@pytest.mark.parametrize("kind,raw", [
    (SourceKind.TEXT, "   \n\t  "),
    (SourceKind.WORD, docx_bytes("   ", "")),
])
def test_whitespace_only_is_empty(kind, raw):
    with pytest.raises(ProblemDetails) as e:
        extract(kind, raw)
    assert e.value.code == "E_EXTRACTION_EMPTY"
    assert e.value.status == 400


def test_corrupt_spreadsheet_is_extraction_failure():
    with pytest.raises(ProblemDetails) as e:
        extract(SourceKind.EXCEL, b"definitely not a zip")
    assert e.value.code == "E_EXTRACTION_FAILED"


def test_topic_is_not_extracted():
    with pytest.raises(ProblemDetails) as e:
        extract(SourceKind.AI_TOPIC, "Climate Change")
    assert e.value.code == "E_UNSUPPORTED_SOURCE"


def test_legacy_xls_uses_xlrd(monkeypatch):
    import pandas as pd

    from slideit.pipeline import extract as extract_mod

    seen = {}

    def fake_read_excel(buf, **kw):
        seen.update(kw)
        return {"Legacy": pd.DataFrame([["Year", "Sales"], [1999, 5]])}

    monkeypatch.setattr(extract_mod.pd, "read_excel", fake_read_excel)
    raw = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504
    text = extract(SourceKind.EXCEL, raw)
    assert seen["engine"] == "xlrd"
    assert text == "Sheet: Legacy\nYear,Sales\n1999,5"


def test_corrupt_legacy_xls_is_extraction_failure():
    raw = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504
    with pytest.raises(ProblemDetails) as e:
        extract(SourceKind.EXCEL, raw)
    assert e.value.code == "E_EXTRACTION_FAILED"
