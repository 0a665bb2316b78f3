from unittest.mock import MagicMock

from django.test import RequestFactory, SimpleTestCase, override_settings

from ..context import RequestContext
from ..middleware import SessionContextMiddleware


class TestSessionContextMiddleware(SimpleTestCase):

    def setUp(self):
        self.get_response = MagicMock(name="get_response")
        self.middleware = SessionContextMiddleware(self.get_response)
        self.factory = RequestFactory()

    def test_get_has_session_id_but_no_csrf_token(self):
        request = self.factory.get("/timeline/home", {"csrf_token": "*CSRF*"})
        request.COOKIES["session_id"] = "*SESSION*"

        response = self.middleware(request)

        self.assertEqual(request.fedi_context, RequestContext(session_id="*SESSION*"))
        self.get_response.assert_called_once_with(request)
        self.assertIs(response, self.get_response.return_value)

    def test_post_has_session_id_and_csrf_token(self):
        request = self.factory.post("/like/42", {"csrf_token": "*CSRF*"})
        request.COOKIES["session_id"] = "*SESSION*"

        self.middleware(request)

        self.assertEqual(request.fedi_context, RequestContext(session_id="*SESSION*", csrf_token="*CSRF*"))

    def test_empty_values_are_absent(self):
        request = self.factory.post("/like/42", {"csrf_token": ""})
        request.COOKIES["session_id"] = ""

        self.middleware(request)

        self.assertIsNone(request.fedi_context.session_id)
        self.assertIsNone(request.fedi_context.csrf_token)

    @override_settings(FEDIWEB_SESSION_COOKIE_NAME="fedi")
    def test_uses_configured_cookie_name(self):
        request = self.factory.get("/")
        request.COOKIES["session_id"] = "*WRONG*"
        request.COOKIES["fedi"] = "*SESSION*"

        self.middleware(request)

        self.assertEqual(request.fedi_context.session_id, "*SESSION*")
