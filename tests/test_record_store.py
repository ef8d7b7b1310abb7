from uuid import uuid4

import pytest
from sqlmodel import Session

from academia.models import Career, Course, User
from academia.services.store import (
    ChangeEvent,
    ChangeFeed,
    DependentRowsError,
    RecordStore,
    StoreError,
)


@pytest.fixture()
def store(client):
    import academia.db as db

    feed = ChangeFeed()
    actor = User(id=42, email="actor@test.com", full_name="Actor", hashed_password="x", role="admin")
    with Session(db.engine) as session:
        yield RecordStore(session, actor=actor, feed=feed)


def test_writes_publish_events_with_actor(store: RecordStore):
    events = []
    unsubscribe = store.feed.subscribe("career", events.append)

    career = store.insert(Career(name=f"Feed {uuid4().hex[:6]}"))
    career_id = career.id
    store.update(career, {"description": "Actualizada"})
    store.delete(career)

    assert [event.action for event in events] == ["insert", "update", "delete"]
    assert all(event.actor_id == 42 and event.row_id == career_id for event in events)

    unsubscribe()
    store.insert(Career(name=f"Feed {uuid4().hex[:6]}"))
    assert len(events) == 3


def test_wildcard_listener_and_broken_subscriber(store: RecordStore):
    seen = []

    def _broken(event: ChangeEvent) -> None:
        raise RuntimeError("boom")

    store.feed.subscribe("career", _broken)
    store.feed.subscribe("*", lambda event: seen.append(event.table))

    store.insert(Career(name=f"Feed {uuid4().hex[:6]}"))
    assert seen == ["career"]


def test_unique_violation_becomes_store_error_and_session_recovers(store: RecordStore):
    name = f"Única {uuid4().hex[:6]}"
    store.insert(Career(name=name))
    with pytest.raises(StoreError) as excinfo:
        store.insert(Career(name=name))
    assert excinfo.value.status_code == 409
    assert excinfo.value.detail.startswith("Registro duplicado")

    # la sesión sigue usable después del rollback
    assert store.count(Career, name=name) == 1


def test_delete_with_dependents_is_rejected(store: RecordStore):
    career = store.insert(Career(name=f"Dep {uuid4().hex[:6]}"))
    store.insert(Course(code=f"DEP-{uuid4().hex[:6]}", name="Dependiente", career_id=career.id))

    with pytest.raises(DependentRowsError):
        store.delete(career, dependents=[(Course, Course.career_id, "hay materias")])
    assert store.get(Career, career.id) is not None


def test_foreign_key_violation_is_reported(store: RecordStore):
    with pytest.raises(StoreError) as excinfo:
        store.insert(Course(code=f"FK-{uuid4().hex[:6]}", name="Huérfana", career_id=999999))
    assert excinfo.value.detail == "Operación rechazada: existen registros relacionados"


def test_count_by_groups_and_skips_null_keys(store: RecordStore):
    first = store.insert(Career(name=f"Grupo {uuid4().hex[:6]}"))
    second = store.insert(Career(name=f"Grupo {uuid4().hex[:6]}"))
    store.insert_many(
        [
            Course(code=f"G-{uuid4().hex[:6]}", name="Uno", career_id=first.id),
            Course(code=f"G-{uuid4().hex[:6]}", name="Dos", career_id=first.id),
            Course(code=f"G-{uuid4().hex[:6]}", name="Tres", career_id=second.id),
        ]
    )

    counts = store.count_by(Course, Course.career_id, where=[Course.career_id.in_([first.id, second.id])])

    assert counts == {first.id: 2, second.id: 1}
    assert None not in store.count_by(Course, Course.career_id)
