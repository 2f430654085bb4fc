import copy
import logging
from datetime import datetime, timezone
from typing import Callable, Iterator, NamedTuple

from sqlalchemy import select, update

from edugrid.core.object_id import coerce_id, new_object_id
from edugrid.db.base_class import Base
from edugrid.db.session import make_engine, make_session_factory
from edugrid.models.classroom import ClassroomRecord

logger = logging.getLogger(__name__)

# a write that keeps losing the race this many times is reported, not retried forever
MAX_WRITE_ATTEMPTS = 50


class StoreWriteConflict(RuntimeError):
    pass


class UpdateResult(NamedTuple):
    matched_count: int
    modified_count: int


class ClassroomStore:
    """
    Persistence for classroom aggregates.

    Every write is a single-row match-then-mutate. The mutation runs on a
    copy of the document, and the copy is written back only if it differs
    and the row still has the version that was read; otherwise the
    mutation is replayed on the newer document. Concurrent writers never
    drop each other's changes, and two writers replacing the same value
    end up last-write-wins.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine = None
        self._sessions = None

    def connect(self) -> None:
        if self.connected:
            return
        self._engine = make_engine(self.database_url)
        self._sessions = make_session_factory(self._engine)
        Base.metadata.create_all(bind=self._engine)
        logger.info("Classroom store connected (%s)", self._engine.url.render_as_string(hide_password=True))

    def disconnect(self) -> None:
        if not self.connected:
            return
        self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Classroom store disconnected")

    @property
    def connected(self) -> bool:
        return self._engine is not None

    def _session(self):
        if self._sessions is None:
            raise RuntimeError("Classroom store is not connected")
        return self._sessions()

    def find_one(self, classroom_id: str) -> dict | None:
        with self._session() as db:
            record = db.get(ClassroomRecord, classroom_id)
            if record is None:
                return None
            return copy.deepcopy(record.document)

    def insert_one(self, document: dict) -> str:
        document = copy.deepcopy(document)
        classroom_id = coerce_id(document.get("_id")) or new_object_id()
        document["_id"] = classroom_id

        with self._session() as db:
            db.add(ClassroomRecord(id=classroom_id, document=document))
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        return classroom_id

    def update_one(self, classroom_id: str, mutate: Callable[[dict], bool]) -> UpdateResult:
        """
        Apply `mutate` to the stored document.

        `mutate` edits the document it is given in place and returns False when
        its own filter (task, submission, ...) does not match; nothing is
        written in that case and matched_count is 0.

        The write is conditional on the version that was read. When another
        writer got there first the document is re-read and `mutate` runs
        again on the fresh copy, so it must not depend on anything but its
        argument and what it closed over.
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            with self._session() as db:
                record = db.get(ClassroomRecord, classroom_id)
                if record is None:
                    return UpdateResult(0, 0)

                original = record.document
                read_version = record.version
                working = copy.deepcopy(original)
                if not mutate(working):
                    return UpdateResult(0, 0)

                if working == original:
                    return UpdateResult(1, 0)

                working["updatedAt"] = datetime.now(timezone.utc).isoformat()
                try:
                    written = db.execute(
                        update(ClassroomRecord)
                        .where(
                            ClassroomRecord.id == classroom_id,
                            ClassroomRecord.version == read_version,
                        )
                        .values(document=working, version=read_version + 1)
                        .execution_options(synchronize_session=False)
                    ).rowcount
                    db.commit()
                except Exception:
                    db.rollback()
                    raise

            if written:
                return UpdateResult(1, 1)
            logger.debug(
                "Concurrent write on classroom %s (attempt %s), retrying",
                classroom_id,
                attempt,
            )

        logger.error("Gave up writing classroom %s after %s attempts", classroom_id, MAX_WRITE_ATTEMPTS)
        raise StoreWriteConflict(f"Classroom {classroom_id} kept changing during the update")

    def delete_one(self, classroom_id: str) -> int:
        with self._session() as db:
            record = db.get(ClassroomRecord, classroom_id)
            if record is None:
                return 0
            db.delete(record)
            db.commit()
            return 1

    def iter_ids(self) -> Iterator[str]:
        with self._session() as db:
            ids = db.execute(select(ClassroomRecord.id)).scalars().all()
        yield from ids

    def clear(self) -> None:
        with self._session() as db:
            db.query(ClassroomRecord).delete()
            db.commit()
