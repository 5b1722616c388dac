"""
Persistence gateway.

Typed CRUD and filtered queries over the models, plus ``update_if``, the one
atomic conditional update the lifecycle depends on. No business rules live
here. Every write is recorded as a ChangeEvent and published on the change
feed once the surrounding transaction commits; a rollback drops them.
"""
import sqlalchemy as sa

from gigmarket.extensions import db
from gigmarket.services.change_feed import ChangeEvent, INSERT, UPDATE, DELETE, get_change_feed


def row_of(instance):
    mapper = sa.inspect(instance).mapper
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}


def _pending():
    return db.session.info.setdefault("pending_changes", [])


def _record(table, operation, old_row, new_row):
    _pending().append(ChangeEvent(table, operation, old_row, new_row))


def commit():
    db.session.commit()
    events = list(_pending())
    _pending().clear()
    feed = get_change_feed()
    for event in events:
        feed.publish(event)


def rollback():
    _pending().clear()
    db.session.rollback()


class Repository:
    def __init__(self, model):
        self.model = model
        self.table = model.__tablename__

    def _conditions(self, filters):
        conditions = []
        for field, value in filters.items():
            column = getattr(self.model, field)
            if isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            elif value is None:
                conditions.append(column.is_(None))
            else:
                conditions.append(column == value)
        return conditions

    def get(self, entity_id, refresh=False):
        if entity_id is None:
            return None
        return db.session.get(self.model, entity_id, populate_existing=refresh)

    def query(self, **filters):
        return self.model.query.filter(*self._conditions(filters))

    def list(self, order_by=None, descending=False, **filters):
        q = self.query(**filters)
        if order_by:
            column = getattr(self.model, order_by)
            q = q.order_by(column.desc() if descending else column.asc())
        return q.all()

    def first(self, **filters):
        return self.query(**filters).first()

    def count(self, **filters):
        return self.query(**filters).count()

    def insert(self, **values):
        instance = self.model(**values)
        db.session.add(instance)
        db.session.flush()
        _record(self.table, INSERT, None, row_of(instance))
        return instance

    def update(self, instance, **patch):
        old_row = row_of(instance)
        for field, value in patch.items():
            setattr(instance, field, value)
        db.session.flush()
        _record(self.table, UPDATE, old_row, row_of(instance))
        return instance

    def delete(self, instance):
        old_row = row_of(instance)
        db.session.delete(instance)
        db.session.flush()
        _record(self.table, DELETE, old_row, None)

    def update_if(self, patch, **predicate):
        """
        UPDATE ... SET patch WHERE predicate, as one statement.
        Returns the number of rows changed; 0 means the predicate no longer
        held (someone else got there first).
        """
        entity_id = predicate.get("id")
        single = entity_id is not None and not isinstance(entity_id, (list, tuple, set, frozenset))
        before = None
        if single:
            current = self.get(entity_id, refresh=True)
            before = row_of(current) if current is not None else None

        stmt = (
            sa.update(self.model)
            .where(*self._conditions(predicate))
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        changed = db.session.execute(stmt).rowcount

        if changed and single:
            new_row = row_of(self.get(entity_id, refresh=True))
            old_row = dict(before or new_row)
            # scalar predicate values held at write time
            old_row.update({
                k: v for k, v in predicate.items()
                if not isinstance(v, (list, tuple, set, frozenset))
            })
            _record(self.table, UPDATE, old_row, new_row)
        return changed

    def delete_if(self, **predicate):
        """DELETE ... WHERE predicate as one statement; returns rows deleted."""
        snapshot = [row_of(obj) for obj in self.query(**predicate).all()]
        stmt = (
            sa.delete(self.model)
            .where(*self._conditions(predicate))
            .execution_options(synchronize_session=False)
        )
        deleted = db.session.execute(stmt).rowcount
        if deleted:
            # loaded parents may still hold the deleted rows in collections
            db.session.expire_all()
            for old_row in snapshot[:deleted]:
                _record(self.table, DELETE, old_row, None)
        return deleted
