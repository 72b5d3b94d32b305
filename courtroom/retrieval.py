"""Naive keyword retrieval over stored documents.

Every query scans all documents, so this only suits small collections.
"""
from typing import Dict, Iterable, List

from .models import Document


def tokenize(query: str) -> List[str]:
    return query.lower().split()


def score_document(doc: Document, tokens: List[str]) -> int:
    """Number of query tokens found as substrings of the document's title and text."""
    haystack = f"{doc.title or ''} {doc.text or ''}".lower()
    return sum(1 for tok in tokens if tok in haystack)


def retrieve(documents: Iterable[Document], query: str, limit: int = 5) -> List[Dict]:
    tokens = tokenize(query or "")
    if not tokens:
        return []

    scored = []
    for doc in documents:
        score = score_document(doc, tokens)
        if score > 0:
            scored.append({"id": doc.id, "title": doc.title, "text": doc.text, "score": score})

    # sorted() is stable: equal scores keep storage order
    scored = sorted(scored, key=lambda d: d["score"], reverse=True)
    return scored[:limit]
