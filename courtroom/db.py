"""Persistence client for cases, arguments, verdicts and documents."""
import logging
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from . import models, retrieval

logger = logging.getLogger(__name__)

ROUND_ATTEMPTS = 5

CaseId = Union[int, str]


class CaseNotFound(LookupError):
    def __init__(self, case_id):
        super().__init__(f"case not found: {case_id}")
        self.case_id = case_id


def _case_pk(case_id: CaseId) -> int:
    try:
        return int(case_id)
    except (TypeError, ValueError):
        raise CaseNotFound(case_id)


class Store:
    """Owns the database engine for the lifetime of the process.

    Construct it once, call ``open()`` at startup and ``close()`` at shutdown.
    Every operation runs in its own short session.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url == "sqlite://":
                # one shared connection, otherwise each session sees an empty db
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **kwargs)

    def open(self) -> "Store":
        SQLModel.metadata.create_all(self.engine)
        logger.info("store opened url=%s", self.engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        self.engine.dispose()
        logger.info("store closed")

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

    # ---- cases ----

    def create_case(self, lawyerA_text: str = "", lawyerB_text: str = "", file_text: str = "") -> models.Case:
        with Session(self.engine) as sess:
            case = models.Case(lawyerA_text=lawyerA_text, lawyerB_text=lawyerB_text, file_text=file_text)
            sess.add(case)
            sess.commit()
            sess.refresh(case)
            return case

    def get_case(self, case_id: CaseId) -> models.Case:
        with Session(self.engine) as sess:
            case = sess.get(models.Case, _case_pk(case_id))
            if not case:
                raise CaseNotFound(case_id)
            return case

    def list_cases(self) -> List[models.Case]:
        with Session(self.engine) as sess:
            stmt = select(models.Case).order_by(models.Case.created_at.desc(), models.Case.id.desc())
            return list(sess.exec(stmt).all())

    # ---- arguments ----

    def add_argument(self, case_id: CaseId, side: str, text: str) -> models.Argument:
        """Append an argument; its round is the number of existing arguments + 1.

        Concurrent writers for the same case collide on the (case_id, round)
        unique constraint; the loser recounts and tries again.
        """
        pk = _case_pk(case_id)
        for attempt in range(1, ROUND_ATTEMPTS + 1):
            with Session(self.engine) as sess:
                count = self._argument_count(sess, pk)
                arg = models.Argument(case_id=pk, side=side, text=text, round=count + 1)
                sess.add(arg)
                try:
                    sess.commit()
                except IntegrityError:
                    sess.rollback()
                    logger.warning("round collision case_id=%s round=%s attempt=%s", pk, count + 1, attempt)
                    continue
                sess.refresh(arg)
                return arg
        raise RuntimeError(f"could not assign a round for case {pk} after {ROUND_ATTEMPTS} attempts")

    def _argument_count(self, sess: Session, case_pk: int) -> int:
        stmt = select(func.count()).select_from(models.Argument).where(models.Argument.case_id == case_pk)
        return sess.exec(stmt).one()

    def list_arguments(self, case_id: CaseId) -> List[models.Argument]:
        pk = _case_pk(case_id)
        with Session(self.engine) as sess:
            stmt = (
                select(models.Argument)
                .where(models.Argument.case_id == pk)
                .order_by(models.Argument.round)
            )
            return list(sess.exec(stmt).all())

    # ---- verdicts ----

    def add_verdict(
        self,
        case_id: CaseId,
        text: str,
        round: Optional[int] = None,
        confidence: Optional[int] = None,
    ) -> models.Verdict:
        with Session(self.engine) as sess:
            verdict = models.Verdict(case_id=_case_pk(case_id), text=text, round=round, confidence=confidence)
            sess.add(verdict)
            sess.commit()
            sess.refresh(verdict)
            return verdict

    def latest_verdict(self, case_id: CaseId) -> Optional[models.Verdict]:
        pk = _case_pk(case_id)
        with Session(self.engine) as sess:
            stmt = (
                select(models.Verdict)
                .where(models.Verdict.case_id == pk)
                .order_by(models.Verdict.created_at.desc(), models.Verdict.id.desc())
            )
            return sess.exec(stmt).first()

    # ---- documents ----

    def add_document(self, title: str = "", text: str = "") -> models.Document:
        with Session(self.engine) as sess:
            doc = models.Document(title=title or "", text=text)
            sess.add(doc)
            sess.commit()
            sess.refresh(doc)
            return doc

    def list_documents(self, newest_first: bool = True) -> List[models.Document]:
        with Session(self.engine) as sess:
            order = models.Document.id.desc() if newest_first else models.Document.id
            return list(sess.exec(select(models.Document).order_by(order)).all())

    def retrieve(self, query: str, limit: int = 5):
        return retrieval.retrieve(self.list_documents(newest_first=False), query, limit)
