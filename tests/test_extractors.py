from docrag.ingest.extractors import extract_text, is_text_type


def test_plain_text_is_returned_verbatim() -> None:
    assert extract_text(b"hello world", "text/plain") == "hello world"


def test_charset_parameter_is_ignored_when_matching_type() -> None:
    assert is_text_type("text/markdown; charset=utf-8")
    assert extract_text("# Заглавие".encode("utf-8"), "text/markdown; charset=utf-8") == "# Заглавие"


def test_invalid_utf8_bytes_are_replaced() -> None:
    assert extract_text(b"ok \xff", "text/plain") == "ok \ufffd"


def test_binary_types_degrade_to_placeholder() -> None:
    text = extract_text(b"%PDF-1.7", "application/pdf")

    assert text.startswith("Extracted text from application/pdf file.")


def test_missing_type_uses_unknown_placeholder() -> None:
    assert "unknown" in extract_text(b"data", None)
