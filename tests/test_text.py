import pytest

from document_copilot.utils.text import normalize_text, sanitize_content


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("plain", "plain"),
        ("  padded  ", "padded"),
        ("nul\x00byte", "nulbyte"),
        ("bell\x07 and del\x7f", "bell and del"),
        ("keeps\ttabs\nand\r\nnewlines", "keeps\ttabs\nand\r\nnewlines"),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_content(raw, expected):
    assert sanitize_content(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("a  b\n\nc", "a b c"),
        ("\t lead and trail \n", "lead and trail"),
        ("ﬁnance", "finance"),
        ("Ｑ１", "Q1"),
        ("", ""),
    ],
)
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected
