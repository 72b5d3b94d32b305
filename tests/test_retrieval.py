from courtroom.models import Document
from courtroom.retrieval import retrieve, score_document


def docs(*pairs):
    return [Document(id=i, title=t, text=x) for i, (t, x) in enumerate(pairs, start=1)]


def test_only_matching_documents_returned():
    stored = docs(("A", "dog runs"), ("B", "cat sleeps"))

    results = retrieve(stored, "dog")
    assert len(results) == 1
    assert results[0]["title"] == "A"
    assert results[0]["score"] > 0

    assert retrieve(stored, "fish") == []


def test_query_is_case_insensitive_and_matches_title():
    stored = docs(("Contract Law", "terms of service"))
    assert retrieve(stored, "CONTRACT")[0]["title"] == "Contract Law"


def test_tokens_match_as_substrings():
    stored = docs(("", "the defendants argued"))
    assert score_document(stored[0], ["defend", "argue", "absent"]) == 2


def test_sorted_by_score_then_storage_order():
    stored = docs(
        ("first", "breach only"),
        ("second", "breach and damages"),
        ("third", "breach again"),
    )
    results = retrieve(stored, "breach damages")
    assert [r["title"] for r in results] == ["second", "first", "third"]
    assert [r["score"] for r in results] == [2, 1, 1]


def test_limit():
    stored = docs(*[(f"doc {i}", "common text") for i in range(10)])
    assert len(retrieve(stored, "common", limit=3)) == 3


def test_blank_query_returns_nothing():
    stored = docs(("A", "dog runs"))
    assert retrieve(stored, "   ") == []
