import pytest

from docrag.ingest.chunking import chunk_text, overlap_words, split_paragraphs


def _paragraph(label: str, words: int = 60) -> str:
    return " ".join(f"{label}w{index}" for index in range(words))


def test_short_text_yields_single_trimmed_chunk() -> None:
    text = "  First paragraph.\n\nSecond paragraph with more words.\n  "

    chunks = chunk_text(text)

    assert chunks == [text.strip()]


def test_empty_text_yields_no_chunks() -> None:
    assert chunk_text("") == []
    assert chunk_text("   \n\n  ") == []


def test_split_paragraphs_round_trips_text() -> None:
    text = "alpha\n\nbeta\n  \n\ngamma"

    pairs = list(split_paragraphs(text))

    assert [paragraph for _, paragraph in pairs] == ["alpha", "beta", "gamma"]
    assert "".join(separator + paragraph for separator, paragraph in pairs) == text


def test_overlap_words_takes_trailing_words() -> None:
    text = " ".join(f"w{index}" for index in range(30))

    assert overlap_words(text, 200) == " ".join(f"w{index}" for index in range(10, 30))
    assert overlap_words(text, 5) == ""


def test_long_text_splits_on_paragraphs_with_overlap_seed() -> None:
    paragraphs = [_paragraph(label) for label in "abcde"]
    text = "\n\n".join(paragraphs)

    chunks = chunk_text(text, chunk_size=1000, overlap=200)

    assert len(chunks) > 1
    for previous, current in zip(chunks, chunks[1:]):
        seed = overlap_words(previous, 200)
        assert current.startswith(seed + " ")

    rebuilt: list[str] = []
    for index, chunk in enumerate(chunks):
        body = chunk if index == 0 else chunk[len(overlap_words(chunks[index - 1], 200)) + 1 :]
        rebuilt.extend(body.split("\n\n"))
    assert rebuilt == paragraphs


def test_oversized_paragraph_is_kept_whole() -> None:
    big = "x" * 1500
    text = f"intro\n\n{big}"

    chunks = chunk_text(text, chunk_size=1000, overlap=0)

    assert chunks == ["intro", big]


@pytest.mark.parametrize("chunk_size, overlap", [(0, 10), (-5, 10), (100, -1)])
def test_invalid_parameters_raise(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        chunk_text("text", chunk_size=chunk_size, overlap=overlap)
