import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from courtroom import models
from courtroom.db import ROUND_ATTEMPTS, CaseNotFound


def test_create_then_get_case(store):
    case = store.create_case(lawyerA_text="A text", lawyerB_text="B text", file_text="file")
    assert case.id

    fetched = store.get_case(case.id)
    assert fetched.id == case.id
    assert fetched.lawyerA_text == "A text"
    assert fetched.lawyerB_text == "B text"
    assert fetched.file_text == "file"


def test_get_case_accepts_string_ids(store):
    case = store.create_case(file_text="x")
    assert store.get_case(str(case.id)).id == case.id


@pytest.mark.parametrize("case_id", [999, "999", "not-a-number", None])
def test_get_missing_case(store, case_id):
    with pytest.raises(CaseNotFound):
        store.get_case(case_id)


def test_argument_rounds_follow_submission_order(store):
    case = store.create_case()
    first = store.add_argument(case.id, "Lawyer A", "First argument")
    second = store.add_argument(case.id, "Lawyer B", "Second argument")
    assert (first.round, second.round) == (1, 2)

    args = store.list_arguments(case.id)
    assert [a.text for a in args] == ["First argument", "Second argument"]
    assert [a.round for a in args] == [1, 2]


def test_rounds_are_counted_per_case(store):
    one = store.create_case()
    two = store.create_case()
    store.add_argument(one.id, "Lawyer A", "a")
    store.add_argument(one.id, "Lawyer B", "b")
    arg = store.add_argument(two.id, "Lawyer A", "c")
    assert arg.round == 1


def test_duplicate_round_is_rejected(store):
    case = store.create_case()
    store.add_argument(case.id, "Lawyer A", "a")
    with Session(store.engine) as sess:
        sess.add(models.Argument(case_id=case.id, side="Lawyer B", text="b", round=1))
        with pytest.raises(IntegrityError):
            sess.commit()


def test_add_then_latest_verdict(store):
    case = store.create_case()
    v = store.add_verdict(case.id, "Test verdict", 1, 50)
    assert v.text == "Test verdict"

    latest = store.latest_verdict(case.id)
    assert latest.text == "Test verdict"
    assert latest.confidence == 50


def test_latest_verdict_is_most_recent(store):
    case = store.create_case()
    store.add_verdict(case.id, "early", 1, 40)
    store.add_verdict(case.id, "late", 2, 70)
    assert store.latest_verdict(case.id).text == "late"


def test_latest_verdict_none_without_history(store):
    case = store.create_case()
    assert store.latest_verdict(case.id) is None


def test_list_cases_newest_first(store):
    first = store.create_case(file_text="one")
    second = store.create_case(file_text="two")
    assert [c.id for c in store.list_cases()] == [second.id, first.id]


def test_documents_and_retrieve(store):
    store.add_document(title="A", text="dog runs")
    store.add_document(title="B", text="cat sleeps")

    assert [d.title for d in store.list_documents()] == ["B", "A"]
    results = store.retrieve("dog")
    assert [r["title"] for r in results] == ["A"]
    assert store.retrieve("fish") == []


def test_round_collision_recounts_and_retries(store, monkeypatch):
    case = store.create_case()
    store.add_argument(case.id, "Lawyer A", "a")

    real_count = store._argument_count
    counts = []

    def stale_then_real(sess, case_pk):
        counts.append(case_pk)
        if len(counts) == 1:
            # another writer already took round 1 since this one counted
            return 0
        return real_count(sess, case_pk)
    monkeypatch.setattr(store, "_argument_count", stale_then_real)

    arg = store.add_argument(case.id, "Lawyer B", "b")
    assert arg.round == 2
    assert len(counts) == 2
    assert [(a.side, a.round) for a in store.list_arguments(case.id)] == [("Lawyer A", 1), ("Lawyer B", 2)]


def test_round_retries_are_bounded(store, monkeypatch):
    case = store.create_case()
    store.add_argument(case.id, "Lawyer A", "a")

    counts = []

    def always_stale(sess, case_pk):
        counts.append(case_pk)
        return 0
    monkeypatch.setattr(store, "_argument_count", always_stale)

    with pytest.raises(RuntimeError, match="could not assign a round"):
        store.add_argument(case.id, "Lawyer B", "b")
    assert len(counts) == ROUND_ATTEMPTS
    assert len(store.list_arguments(case.id)) == 1
