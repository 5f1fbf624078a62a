import json
import logging
from typing import Optional, Sequence
from urllib import error, parse, request
from urllib.parse import urlparse

from partmate.backend.base import Backend
from partmate.core.errors import BackendError, NotFound, Unauthenticated
from partmate.core.identity import Identity

logger = logging.getLogger(__name__)

_ALLOWED_HTTP_SCHEMES = {"http", "https"}
_MESSAGE_KEYS = ("message", "error_description", "msg", "error", "details", "hint")


def validate_backend_url(base_url):
    parsed = urlparse(base_url or "")
    scheme = parsed.scheme.lower()
    if scheme not in _ALLOWED_HTTP_SCHEMES or not parsed.netloc:
        raise RuntimeError("BACKEND_URL must be an absolute HTTP(S) URL")
    return base_url.rstrip("/")


def quote_filter_value(value):
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return '"{}"'.format(escaped)


def build_or_filter(search, columns):
    pattern = quote_filter_value("*{}*".format(search))
    clauses = ["{}.ilike.{}".format(column, pattern) for column in columns]
    return "({})".format(",".join(clauses))


def _extract_message(body):
    if not body:
        return ""
    try:
        payload = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(payload, dict):
        for key in _MESSAGE_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return body.strip()


def _read_error_body(exc):
    try:
        body_bytes = exc.read()
    except (OSError, ValueError):
        return ""
    if not body_bytes:
        return ""
    return body_bytes.decode("utf-8", errors="replace")


class RestBackend(Backend):
    """PostgREST tables, storage objects and password auth over HTTPS."""

    def __init__(self, base_url, anon_key, *, timeout=15):
        if not anon_key:
            raise RuntimeError("BACKEND_ANON_KEY is not configured")
        self.base_url = validate_backend_url(base_url)
        self.anon_key = anon_key
        self.timeout = timeout

    def _headers(self, identity=None, extra=None):
        token = identity.access_token if identity is not None else self.anon_key
        headers = {
            "apikey": self.anon_key,
            "Authorization": "Bearer {}".format(token),
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method, path, *, identity=None, params=None, payload=None, data=None, headers=None):
        url = "{}{}".format(self.base_url, path)
        if params:
            url = "{}?{}".format(url, parse.urlencode(params, safe="*(),.:\"", quote_via=parse.quote))

        extra = dict(headers or {})
        if payload is not None:
            data = json.dumps(payload, default=str).encode("utf-8")
            extra.setdefault("Content-Type", "application/json")

        req = request.Request(url, data=data, method=method, headers=self._headers(identity, extra))
        try:
            with request.urlopen(req, timeout=self.timeout) as response:  # nosec B310
                body = response.read()
        except error.HTTPError as exc:
            message = _extract_message(_read_error_body(exc))
            logger.warning("Backend %s %s failed: HTTP %s %s", method, path, exc.code, message)
            if exc.code == 401:
                raise Unauthenticated(message or "Not authenticated") from exc
            raise BackendError(message or "HTTP {}".format(exc.code)) from exc
        except error.URLError as exc:
            logger.warning("Backend %s %s unreachable: %s", method, path, exc.reason)
            raise BackendError(str(exc.reason)) from exc

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as exc:
            raise BackendError("Backend returned invalid JSON") from exc

    def sign_in(self, email, password):
        try:
            payload = self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                payload={"email": email, "password": password},
            )
        except BackendError as exc:
            cause = exc.__cause__
            if isinstance(cause, error.HTTPError) and cause.code in (400, 422):
                raise Unauthenticated(exc.message) from exc
            raise

        if not isinstance(payload, dict):
            raise BackendError("Malformed sign-in response")
        user = payload.get("user") or {}
        access_token = payload.get("access_token")
        if not access_token or not user.get("id"):
            raise BackendError("Malformed sign-in response")
        return Identity(user_id=str(user["id"]), access_token=access_token, email=user.get("email"))

    def sign_out(self, identity):
        self._request("POST", "/auth/v1/logout", identity=identity)

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
        params = [("select", "*")]
        if search and search_columns:
            params.append(("or", build_or_filter(search, search_columns)))
        for column, value in (eq or {}).items():
            params.append((column, "eq.{}".format(value)))
        if order_by:
            params.append(("order", "{}.{}".format(order_by, "desc" if descending else "asc")))
        if limit is not None:
            params.append(("limit", str(int(limit))))

        rows = self._request("GET", "/rest/v1/{}".format(table), identity=identity, params=params)
        if not isinstance(rows, list):
            raise BackendError("Malformed select response")
        return rows

    def _single_row(self, rows, *, missing_message):
        if not isinstance(rows, list):
            raise BackendError("Malformed response")
        if not rows:
            raise NotFound(missing_message)
        return rows[0]

    def insert(self, identity, table, values):
        rows = self._request(
            "POST",
            "/rest/v1/{}".format(table),
            identity=identity,
            payload=values,
            headers={"Prefer": "return=representation"},
        )
        return self._single_row(rows, missing_message="Insert returned no row")

    def update(self, identity, table, row_id, values):
        rows = self._request(
            "PATCH",
            "/rest/v1/{}".format(table),
            identity=identity,
            params=[("id", "eq.{}".format(row_id))],
            payload=values,
            headers={"Prefer": "return=representation"},
        )
        return self._single_row(rows, missing_message="Part not found")

    def delete(self, identity, table, row_id):
        self._request(
            "DELETE",
            "/rest/v1/{}".format(table),
            identity=identity,
            params=[("id", "eq.{}".format(row_id))],
        )

    def upload(self, identity, bucket, path, data, content_type):
        self._request(
            "POST",
            "/storage/v1/object/{}/{}".format(bucket, parse.quote(path)),
            identity=identity,
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    def public_url(self, bucket, path):
        return "{}/storage/v1/object/public/{}/{}".format(self.base_url, bucket, parse.quote(path))
