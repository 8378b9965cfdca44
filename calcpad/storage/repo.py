from __future__ import annotations

from typing import Optional

from calcpad.storage.db import get_engine, get_session
from calcpad.storage.models import Base, KeyValueEntry


def init_db(database_url: str) -> None:
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)


def get_value(database_url: str, key: str) -> Optional[str]:
    with get_session(database_url) as s:
        row = s.get(KeyValueEntry, key)
        return row.value if row else None


def set_value(database_url: str, key: str, value: str) -> None:
    with get_session(database_url) as s:
        row = s.get(KeyValueEntry, key)
        if row is None:
            row = KeyValueEntry(key=key)
            s.add(row)
        row.value = value
        s.commit()


def delete_value(database_url: str, key: str) -> bool:
    with get_session(database_url) as s:
        row = s.get(KeyValueEntry, key)
        if not row:
            return False
        s.delete(row)
        s.commit()
        return True

