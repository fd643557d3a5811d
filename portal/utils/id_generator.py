# portal/utils/id_generator.py
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from portal.models import SequenceCounter

APPLICATION_COUNTER = "APPLICATION"

_UPSERT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def next_sequence(db: Session, counter_type: str, year_month: str) -> int:
    """
    Increment and return the counter for (counter_type, year_month).

    Uses a single INSERT .. ON CONFLICT DO UPDATE .. RETURNING so two
    concurrent callers can never read the same value.
    """
    insert = _UPSERT.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(SequenceCounter).values(counter_type=counter_type, year_month=year_month, last_value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=["counter_type", "year_month"],
            set_={"last_value": SequenceCounter.last_value + 1},
        ).returning(SequenceCounter.last_value)
        return db.execute(stmt).scalar_one()

    # Other backends: lock the counter row instead
    counter = (
        db.query(SequenceCounter)
        .filter(SequenceCounter.counter_type == counter_type, SequenceCounter.year_month == year_month)
        .with_for_update()
        .first()
    )
    if counter is None:
        counter = SequenceCounter(counter_type=counter_type, year_month=year_month, last_value=0)
        db.add(counter)
    counter.last_value += 1
    db.flush()
    return counter.last_value


def generate_application_number(db: Session, now: Optional[datetime] = None) -> str:
    """Application number in YY-MM-NNNNN form, sequence restarting every month."""
    year_month = (now or datetime.now()).strftime("%y-%m")
    sequence = next_sequence(db, APPLICATION_COUNTER, year_month)
    return f"{year_month}-{sequence:05d}"
