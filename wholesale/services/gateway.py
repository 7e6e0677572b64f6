"""Row-level access to the relational store.

Workflow services talk to the database only through a ``Gateway``: a
model class stands for the table, a mapping stands for the filter
predicate. Every write commits on its own; any ``SQLAlchemyError`` rolls
the session back and surfaces as ``UpstreamError``.
"""
from contextlib import contextmanager
from sqlalchemy import and_, or_, true
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from wholesale.errors import NotFound, UpstreamError
import logging

logger = logging.getLogger(__name__)


class Not:
    def __init__(self, value):
        self.value = value


class In:
    def __init__(self, values):
        self.values = list(values)


class Gte:
    def __init__(self, value):
        self.value = value


class Lte:
    def __init__(self, value):
        self.value = value


class Between:
    """Inclusive range; either bound may be None."""

    def __init__(self, low=None, high=None):
        self.low = low
        self.high = high


class Search:
    """Case-insensitive substring match over one or more columns."""

    def __init__(self, term, *columns):
        self.term = term
        self.columns = columns


def _clause(model, key, value):
    if isinstance(value, Search):
        term = (
            value.term.replace('\\', '\\\\')
            .replace('%', '\\%')
            .replace('_', '\\_')
        )
        pattern = f'%{term}%'
        return or_(*[
            getattr(model, name).ilike(pattern, escape='\\')
            for name in value.columns
        ])

    column = getattr(model, key)
    if value is None:
        return column.is_(None)
    if isinstance(value, Not):
        if value.value is None:
            return column.isnot(None)
        return column != value.value
    if isinstance(value, In):
        return column.in_(value.values)
    if isinstance(value, Gte):
        return column >= value.value
    if isinstance(value, Lte):
        return column <= value.value
    if isinstance(value, Between):
        clauses = []
        if value.low is not None:
            clauses.append(column >= value.low)
        if value.high is not None:
            clauses.append(column <= value.high)
        return and_(*clauses) if clauses else true()
    return column == value


class Gateway:

    def __init__(self, session):
        self.session = session

    @contextmanager
    def _guard(self, operation, model):
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            orig = getattr(exc, 'orig', None)
            logger.error(
                "Store %s on %s failed: %s",
                operation,
                model.__tablename__,
                exc,
            )
            message = (
                'Conflicting record'
                if isinstance(exc, IntegrityError)
                else 'Database operation failed'
            )
            raise UpstreamError(
                message,
                code=getattr(exc, 'code', None),
                details=str(orig) if orig is not None else str(exc),
                hint=f'{operation} {model.__tablename__}',
            ) from exc

    def _query(self, model, filters=None):
        query = self.session.query(model)
        for key, value in (filters or {}).items():
            query = query.filter(_clause(model, key, value))
        return query

    @staticmethod
    def _ordered(model, query, order_by, descending):
        if not order_by:
            return query
        column = getattr(model, order_by)
        return query.order_by(column.desc() if descending else column.asc())

    def get(self, model, row_id):
        with self._guard('select', model):
            return self.session.get(model, row_id)

    def first(self, model, filters=None, order_by=None, descending=False):
        with self._guard('select', model):
            query = self._ordered(
                model, self._query(model, filters), order_by, descending)
            return query.first()

    def select(
            self,
            model,
            filters=None,
            order_by=None,
            descending=False,
            limit=None,
            offset=None):
        with self._guard('select', model):
            query = self._ordered(
                model, self._query(model, filters), order_by, descending)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def count(self, model, filters=None):
        with self._guard('count', model):
            return self._query(model, filters).count()

    def paginate(
            self,
            model,
            filters=None,
            order_by='created_at',
            descending=True,
            page=1,
            per_page=20):
        with self._guard('select', model):
            query = self._ordered(
                model, self._query(model, filters), order_by, descending)
            pagination = query.paginate(
                page=max(int(page or 1), 1),
                per_page=max(int(per_page or 20), 1),
                error_out=False,
            )
        return {
            'items': pagination.items,
            'total': pagination.total,
            'page': pagination.page,
            'pages': pagination.pages,
            'per_page': pagination.per_page,
        }

    def insert(self, model, **values):
        with self._guard('insert', model):
            row = model(**values)
            self.session.add(row)
            self.session.commit()
            return row

    def update(self, model, row_id, **values):
        with self._guard('update', model):
            row = self.session.get(model, row_id)
            if row is None:
                raise NotFound(f'{model.__name__} {row_id} not found')
            for key, value in values.items():
                setattr(row, key, value)
            self.session.commit()
            return row

    def update_where(self, model, filters, **values):
        with self._guard('update', model):
            rows = self._query(model, filters).all()
            for row in rows:
                for key, value in values.items():
                    setattr(row, key, value)
            self.session.commit()
            return [row.id for row in rows]

    def delete(self, model, row_id):
        with self._guard('delete', model):
            row = self.session.get(model, row_id)
            if row is None:
                return 0
            self.session.delete(row)
            self.session.commit()
            return 1

    def delete_where(self, model, filters):
        with self._guard('delete', model):
            rows = self._query(model, filters).all()
            for row in rows:
                self.session.delete(row)
            self.session.commit()
            return len(rows)


def get_gateway():
    from wholesale.extensions import db
    return Gateway(db.session)
