import logging

from edugrid.core import config
from edugrid.db.classroom_store import ClassroomStore
from edugrid.services.lookup import normalize_legacy_ids

logger = logging.getLogger(__name__)


def init_db(store: ClassroomStore) -> None:
    store.connect()


def migrate_legacy_ids(store: ClassroomStore) -> int:
    """
    One-time pass over every classroom: fill in missing task / submission
    ids so both `id` and `_id` are populated. Returns how many classrooms changed.
    """
    changed = 0
    for classroom_id in list(store.iter_ids()):
        result = store.update_one(classroom_id, normalize_legacy_ids)
        changed += result.modified_count
    logger.info("Legacy id migration done: %s classroom(s) updated", changed)
    return changed


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    store = ClassroomStore(config.DATABASE_URL)
    init_db(store)
    try:
        migrate_legacy_ids(store)
    finally:
        store.disconnect()
