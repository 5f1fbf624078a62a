import io
import json
import unittest
from unittest.mock import MagicMock, patch
from urllib import error, parse

from partmate.backend.rest import RestBackend, build_or_filter, validate_backend_url
from partmate.core.errors import BackendError, NotFound, Unauthenticated
from partmate.core.identity import Identity

IDENTITY = Identity(user_id="user-1", access_token="user-token")


def _response(payload):
    response = MagicMock()
    response.read.return_value = b"" if payload is None else json.dumps(payload).encode("utf-8")
    response.__enter__.return_value = response
    return response


def _http_error(code, payload):
    body = json.dumps(payload).encode("utf-8") if payload is not None else b""
    return error.HTTPError("https://db.example.com", code, "error", {}, io.BytesIO(body))


class RestBackendHelpersTest(unittest.TestCase):
    def test_validate_backend_url(self):
        self.assertEqual(validate_backend_url("https://db.example.com/"), "https://db.example.com")
        for bad in ("", "ftp://db.example.com", "db.example.com"):
            with self.subTest(url=bad):
                with self.assertRaises(RuntimeError):
                    validate_backend_url(bad)

    def test_or_filter_quotes_search_term(self):
        self.assertEqual(
            build_or_filter("BRK", ("part_id", "name")),
            '(part_id.ilike."*BRK*",name.ilike."*BRK*")',
        )
        self.assertEqual(
            build_or_filter('a,"b', ("name",)),
            '(name.ilike."*a,\\"b*")',
        )

    def test_requires_anon_key(self):
        with self.assertRaises(RuntimeError):
            RestBackend("https://db.example.com", "")


class RestBackendRequestTest(unittest.TestCase):
    def setUp(self):
        self.backend = RestBackend("https://db.example.com", "anon-key", timeout=5)
        patcher = patch("partmate.backend.rest.request.urlopen")
        self.urlopen = patcher.start()
        self.addCleanup(patcher.stop)

    def _sent(self):
        req = self.urlopen.call_args[0][0]
        return req, parse.unquote(req.full_url)

    def test_select_builds_postgrest_query(self):
        self.urlopen.return_value = _response([{"id": "row-1"}])
        rows = self.backend.select(
            IDENTITY,
            "spare_parts",
            search="BRK",
            search_columns=("part_id", "name"),
            order_by="created_at",
            limit=1,
        )

        self.assertEqual(rows, [{"id": "row-1"}])
        req, url = self._sent()
        self.assertTrue(url.startswith("https://db.example.com/rest/v1/spare_parts?"))
        self.assertIn('or=(part_id.ilike."*BRK*",name.ilike."*BRK*")', url)
        self.assertIn("order=created_at.asc", url)
        self.assertIn("limit=1", url)
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(req.get_header("Apikey"), "anon-key")
        self.assertEqual(req.get_header("Authorization"), "Bearer user-token")
        self.assertEqual(self.urlopen.call_args[1]["timeout"], 5)

    def test_update_targets_row_and_returns_representation(self):
        self.urlopen.return_value = _response([{"id": "row-1", "quantity": 13}])
        row = self.backend.update(IDENTITY, "spare_parts", "row-1", {"quantity": 13})

        self.assertEqual(row["quantity"], 13)
        req, url = self._sent()
        self.assertEqual(req.get_method(), "PATCH")
        self.assertIn("id=eq.row-1", url)
        self.assertEqual(req.get_header("Prefer"), "return=representation")
        self.assertEqual(json.loads(req.data), {"quantity": 13})

    def test_update_with_no_visible_row_is_not_found(self):
        self.urlopen.return_value = _response([])
        with self.assertRaises(NotFound):
            self.backend.update(IDENTITY, "spare_parts", "row-1", {"quantity": 1})

    def test_upload_and_public_url(self):
        self.urlopen.return_value = _response({"Key": "part-images/user-1/1.jpg"})
        self.backend.upload(IDENTITY, "part-images", "user-1/1.jpg", b"jpeg", "image/jpeg")

        req, url = self._sent()
        self.assertEqual(url, "https://db.example.com/storage/v1/object/part-images/user-1/1.jpg")
        self.assertEqual(req.data, b"jpeg")
        self.assertEqual(req.get_header("Content-type"), "image/jpeg")
        self.assertEqual(
            self.backend.public_url("part-images", "user-1/1.jpg"),
            "https://db.example.com/storage/v1/object/public/part-images/user-1/1.jpg",
        )

    def test_backend_message_is_kept_verbatim(self):
        self.urlopen.side_effect = _http_error(409, {"message": "The resource already exists"})
        with self.assertRaises(BackendError) as ctx:
            self.backend.upload(IDENTITY, "part-images", "user-1/1.jpg", b"jpeg", "image/jpeg")
        self.assertEqual(ctx.exception.message, "The resource already exists")

    def test_error_without_body_reports_status(self):
        self.urlopen.side_effect = _http_error(503, None)
        with self.assertRaises(BackendError) as ctx:
            self.backend.select(IDENTITY, "spare_parts")
        self.assertEqual(ctx.exception.message, "HTTP 503")

    def test_expired_token_is_unauthenticated(self):
        self.urlopen.side_effect = _http_error(401, {"message": "JWT expired"})
        with self.assertRaises(Unauthenticated) as ctx:
            self.backend.select(IDENTITY, "spare_parts")
        self.assertEqual(ctx.exception.message, "JWT expired")

    def test_unreachable_backend(self):
        self.urlopen.side_effect = error.URLError("Name or service not known")
        with self.assertRaises(BackendError) as ctx:
            self.backend.select(IDENTITY, "spare_parts")
        self.assertEqual(ctx.exception.message, "Name or service not known")

    def test_sign_in(self):
        self.urlopen.return_value = _response(
            {"access_token": "fresh-token", "user": {"id": "user-1", "email": "a@example.com"}}
        )
        identity = self.backend.sign_in("a@example.com", "secret")

        self.assertEqual(identity, Identity("user-1", "fresh-token", "a@example.com"))
        req, url = self._sent()
        self.assertIn("/auth/v1/token?grant_type=password", url)
        self.assertEqual(req.get_header("Authorization"), "Bearer anon-key")

    def test_sign_in_rejected_credentials(self):
        self.urlopen.side_effect = _http_error(
            400, {"error": "invalid_grant", "error_description": "Invalid login credentials"}
        )
        with self.assertRaises(Unauthenticated) as ctx:
            self.backend.sign_in("a@example.com", "wrong")
        self.assertEqual(ctx.exception.message, "Invalid login credentials")


if __name__ == "__main__":
    unittest.main()
