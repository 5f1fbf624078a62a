import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence
from urllib.parse import quote

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from partmate.backend.base import Backend
from partmate.core.constants import MEDIA_ROUTE
from partmate.core.errors import BackendError, NotFound, Unauthenticated
from partmate.core.identity import Identity
from partmate.core.local_auth import verify_local_credentials
from partmate.core.security import identity_from_token, issue_token
from partmate.models.part import SparePart

logger = logging.getLogger(__name__)

_TABLES = {SparePart.__tablename__: SparePart}
_READ_ONLY_COLUMNS = {"id", "user_id", "created_at", "updated_at"}


def _escape_like(value):
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_dict(instance):
    return {column.name: getattr(instance, column.name) for column in instance.__table__.columns}


class LocalBackend(Backend):
    """Self-hosted stand-in for the hosted backend.

    Rows live in SQLAlchemy tables scoped by ``user_id`` the way row-level
    security scopes them upstream; objects are written under ``media_dir`` and
    served from ``MEDIA_ROUTE``.
    """

    def __init__(
        self,
        session_factory,
        media_dir,
        *,
        public_base_url,
        token_secret,
        credentials_check=verify_local_credentials,
    ):
        self.session_factory = session_factory
        self.media_dir = Path(media_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.token_secret = token_secret
        self.credentials_check = credentials_check

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def identity_for(self, user_id, email=None):
        token = issue_token(user_id, self.token_secret, email=email)
        return Identity(user_id=user_id, access_token=token, email=email)

    def sign_in(self, email, password):
        try:
            accepted = self.credentials_check(email, password)
        except ValueError as exc:
            raise BackendError(str(exc)) from exc
        if not accepted:
            raise Unauthenticated("Invalid login credentials")
        user_id = (email or "").strip().casefold()
        return self.identity_for(user_id, email=email)

    def _verify(self, identity):
        if identity is None:
            raise Unauthenticated()
        claims = identity_from_token(identity.access_token, self.token_secret)
        if claims.user_id != identity.user_id:
            raise Unauthenticated("Token does not match caller")

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @staticmethod
    def _model(table):
        model = _TABLES.get(table)
        if model is None:
            raise BackendError('relation "public.{}" does not exist'.format(table))
        return model

    @staticmethod
    def _column(model, name):
        column = model.__table__.columns.get(name)
        if column is None:
            raise BackendError(
                "column {}.{} does not exist".format(model.__tablename__, name)
            )
        return getattr(model, name)

    def _run(self, work):
        db = self.session_factory()
        try:
            result = work(db)
            db.commit()
            return result
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Local backend query failed: %s", exc)
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc
        finally:
            db.close()

    def select(
        self,
        identity,
        table,
        *,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        eq: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        self._verify(identity)
        model = self._model(table)
        stmt = select(model).where(model.user_id == identity.user_id)

        if search and search_columns:
            pattern = "%{}%".format(_escape_like(search))
            stmt = stmt.where(
                or_(*[self._column(model, name).ilike(pattern, escape="\\") for name in search_columns])
            )
        for name, value in (eq or {}).items():
            stmt = stmt.where(self._column(model, name) == value)
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))

        def work(db):
            return [_row_to_dict(row) for row in db.execute(stmt).scalars().all()]

        return self._run(work)

    def insert(self, identity, table, values):
        self._verify(identity)
        model = self._model(table)
        values = dict(values)
        if values.get("user_id") != identity.user_id:
            raise BackendError('new row violates row-level security policy for table "{}"'.format(table))
        for name in values:
            self._column(model, name)

        def work(db):
            instance = model(**values)
            db.add(instance)
            db.flush()
            db.refresh(instance)
            return _row_to_dict(instance)

        return self._run(work)

    def _owned_row(self, db, model, identity, row_id):
        instance = db.execute(
            select(model).where(model.id == row_id, model.user_id == identity.user_id)
        ).scalars().first()
        if instance is None:
            raise NotFound("Part not found")
        return instance

    def update(self, identity, table, row_id, values):
        self._verify(identity)
        model = self._model(table)
        for name in values:
            self._column(model, name)
            if name in _READ_ONLY_COLUMNS:
                raise BackendError("column {} cannot be updated".format(name))

        def work(db):
            instance = self._owned_row(db, model, identity, row_id)
            for name, value in values.items():
                setattr(instance, name, value)
            db.flush()
            db.refresh(instance)
            return _row_to_dict(instance)

        return self._run(work)

    def delete(self, identity, table, row_id):
        self._verify(identity)
        model = self._model(table)

        def work(db):
            instance = db.execute(
                select(model).where(model.id == row_id, model.user_id == identity.user_id)
            ).scalars().first()
            if instance is not None:
                db.delete(instance)

        self._run(work)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _object_path(self, bucket, path):
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise BackendError("Invalid object path: {}".format(path))
        return self.media_dir.joinpath(bucket, *relative.parts)

    def upload(self, identity, bucket, path, data, content_type):
        self._verify(identity)
        target = self._object_path(bucket, path)
        if target.exists():
            raise BackendError("The resource already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.warning("Local storage write failed for %s: %s", target, exc)
            raise BackendError(str(exc)) from exc

    def public_url(self, bucket, path):
        return "{}{}/{}/{}".format(self.public_base_url, MEDIA_ROUTE, bucket, quote(path))
