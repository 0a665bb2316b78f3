"""Tests for the gateway between sessions and the content service."""

import logging
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import responses
from django.test import TestCase, override_settings
from responses import matchers

from ..context import RequestContext
from ..errors import (
    AppNotFound,
    InvalidArgument,
    InvalidCSRFToken,
    InvalidSession,
    RegistrationError,
    RemoteError,
    StorageError,
    TokenExchangeError,
)
from ..gateway import MUTATE, READ, AuthenticatedClient, AuthGateway
from ..models import RegisteredApp, RegisteredAppManager, Session
from .factories import RegisteredAppFactory, SessionFactory, given_session_with_app


def make_gateway(content=None, **kwargs):
    return AuthGateway(
        content or MagicMock(name="content"),
        client_name="fediweb",
        scopes=["read", "write", "follow"],
        website="https://fedi.example.com",
        **kwargs,
    )


def stub_registration(instance="https://masto.example.net", client_id="id-of-client", client_secret="*SECRET*"):
    return responses.post(
        f"{instance}/api/v1/apps",
        json={"client_id": client_id, "client_secret": client_secret},
        match=[
            matchers.urlencoded_params_matcher(
                {
                    "client_name": "fediweb",
                    "redirect_uris": "https://fedi.example.com/oauth_callback",
                    "scopes": "read write follow",
                    "website": "https://fedi.example.com",
                }
            )
        ],
    )


class TestResolveClient(TestCase):

    def setUp(self):
        self.gateway = make_gateway()

    def test_fails_without_session_id(self):
        with self.assertRaises(InvalidSession):
            self.gateway.resolve_client(RequestContext())

    def test_fails_with_empty_session_id(self):
        with self.assertRaises(InvalidSession):
            self.gateway.resolve_client(RequestContext(session_id=""))

    def test_fails_with_unknown_session_id(self):
        given_session_with_app()

        with self.assertRaises(InvalidSession):
            self.gateway.resolve_client(RequestContext(session_id="no-such-session"))

    def test_fails_when_instance_has_no_registered_app(self):
        session = SessionFactory()

        with self.assertLogs("fediweb.mastodon.gateway", logging.WARNING):
            with self.assertRaises(InvalidSession):
                self.gateway.resolve_client(RequestContext(session_id=session.id))

    def test_returns_client_bound_to_session_and_app(self):
        session, app = given_session_with_app(access_token="*ACCESS*TOKEN*")

        result = self.gateway.resolve_client(RequestContext(session_id=session.id))

        self.assertIsInstance(result, AuthenticatedClient)
        self.assertEqual(result.session, session)
        self.assertEqual(result.api.server, app.instance_url)
        self.assertEqual(result.api.client_id, app.client_id)
        self.assertEqual(result.api.client_secret, app.client_secret)
        self.assertEqual(result.api.access_token, "*ACCESS*TOKEN*")

    def test_returns_client_with_blank_token_before_signin_completes(self):
        session, _ = given_session_with_app(access_token="")

        result = self.gateway.resolve_client(RequestContext(session_id=session.id))

        self.assertEqual(result.api.access_token, "")

    def test_creates_new_client_each_time(self):
        session, _ = given_session_with_app()
        ctx = RequestContext(session_id=session.id)

        result1 = self.gateway.resolve_client(ctx)
        result2 = self.gateway.resolve_client(ctx)

        self.assertIsNot(result1, result2)
        self.assertIsNot(result1.api, result2.api)

    def test_propagates_storage_errors(self):
        sessions = MagicMock(name="sessions")
        sessions.get_session.side_effect = StorageError("gone")
        gateway = make_gateway(sessions=sessions)

        with self.assertRaises(StorageError):
            gateway.resolve_client(RequestContext(session_id="abc"))


class TestBeginSignin(TestCase):

    def setUp(self):
        self.gateway = make_gateway()
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    @responses.activate
    def test_registers_app_and_returns_authorization_url(self):
        endpoint = stub_registration()

        redirect_url, session_id = self.gateway.begin_signin(RequestContext(), "masto.example.net")

        self.assertEqual(endpoint.call_count, 1)
        app = RegisteredApp.objects.get(instance_url="https://masto.example.net")
        self.assertEqual(app.client_id, "id-of-client")
        self.assertEqual(app.client_secret, "*SECRET*")

        parts = urlsplit(redirect_url)
        self.assertEqual(f"{parts.scheme}://{parts.netloc}{parts.path}", "https://masto.example.net/oauth/authorize")
        self.assertEqual(
            parse_qs(parts.query),
            {
                "scope": ["read write follow"],
                "client_id": ["id-of-client"],
                "response_type": ["code"],
                "redirect_uri": ["https://fedi.example.com/oauth_callback"],
            },
        )

        session = Session.objects.get(pk=session_id)
        self.assertEqual(session.instance_url, "https://masto.example.net")
        self.assertEqual(session.access_token, "")
        self.assertTrue(session.csrf_token)

    @responses.activate
    def test_normalizes_domain_before_storage_or_network(self):
        endpoint = stub_registration("https://sub.example.org")

        _, session_id = self.gateway.begin_signin(RequestContext(), "sub.example.org")

        self.assertEqual(endpoint.call_count, 1)
        self.assertEqual(Session.objects.get(pk=session_id).instance_url, "https://sub.example.org")
        self.assertTrue(RegisteredApp.objects.filter(instance_url="https://sub.example.org").exists())

    @responses.activate
    def test_explicit_http_instance_is_used_over_https(self):
        endpoint = stub_registration("https://sub.example.org")
        responses.get("https://sub.example.org/api/v1/accounts/verify_credentials", json={"id": "1", "acct": "alice"})

        _, session_id = self.gateway.begin_signin(RequestContext(), "http://sub.example.org/")
        client = self.gateway.resolve_client(RequestContext(session_id=session_id))

        self.assertEqual(endpoint.call_count, 1)
        self.assertEqual(client.session.instance_url, "https://sub.example.org")
        self.assertEqual(client.api.server, "https://sub.example.org")
        self.assertEqual(client.api.verify_credentials()["acct"], "alice")

    @responses.activate
    def test_uses_existing_app_without_registering_again(self):
        RegisteredAppFactory(instance_url="https://masto.example.net", client_id="existing-client")

        redirect_url, _ = self.gateway.begin_signin(RequestContext(), "masto.example.net")

        self.assertEqual(len(responses.calls), 0)
        self.assertIn("client_id=existing-client", redirect_url)

    @responses.activate
    def test_second_signin_does_not_create_second_app(self):
        endpoint = stub_registration()

        _, session_id1 = self.gateway.begin_signin(RequestContext(), "masto.example.net")
        _, session_id2 = self.gateway.begin_signin(RequestContext(), "https://masto.example.net")

        self.assertEqual(endpoint.call_count, 1)
        self.assertEqual(RegisteredApp.objects.count(), 1)
        self.assertNotEqual(session_id1, session_id2)
        self.assertEqual(Session.objects.count(), 2)

    @responses.activate
    def test_concurrent_first_signins_keep_first_registration(self):
        # Both requests look up the app before either has stored it,
        # so both register; the registry keeps the first and both use it.
        responses.post(
            "https://masto.example.net/api/v1/apps",
            json={"client_id": "first-client", "client_secret": "*FIRST*"},
        )
        responses.post(
            "https://masto.example.net/api/v1/apps",
            json={"client_id": "second-client", "client_secret": "*SECOND*"},
        )

        with patch.object(RegisteredAppManager, "get_app", side_effect=AppNotFound("https://masto.example.net")):
            redirect_url1, _ = self.gateway.begin_signin(RequestContext(), "masto.example.net")
            redirect_url2, _ = self.gateway.begin_signin(RequestContext(), "masto.example.net")

        self.assertEqual(len(responses.calls), 2)
        self.assertEqual(RegisteredApp.objects.count(), 1)
        app = RegisteredApp.objects.get()
        self.assertEqual(app.client_id, "first-client")
        self.assertEqual(app.client_secret, "*FIRST*")
        self.assertIn("client_id=first-client", redirect_url1)
        self.assertIn("client_id=first-client", redirect_url2)

    @responses.activate
    def test_registration_failure_raises_and_leaves_session(self):
        responses.post(
            "https://masto.example.net/api/v1/apps",
            json={"error": "Too many requests"},
            status=429,
        )

        with self.assertRaises(RegistrationError) as cm:
            self.gateway.begin_signin(RequestContext(), "masto.example.net")

        self.assertEqual(cm.exception.status_code, 429)
        self.assertFalse(RegisteredApp.objects.exists())
        orphan = Session.objects.get()
        self.assertEqual(orphan.instance_url, "https://masto.example.net")
        self.assertFalse(orphan.is_active)

    def test_rejects_blank_instance(self):
        with self.assertRaises(InvalidArgument):
            self.gateway.begin_signin(RequestContext(), "  ")

        self.assertFalse(Session.objects.exists())


class TestCompleteSignin(TestCase):

    def setUp(self):
        self.gateway = make_gateway()

    @responses.activate
    def test_round_trip_stores_token_from_instance(self):
        stub_registration()
        endpoint = responses.post(
            "https://masto.example.net/oauth/token",
            json={"access_token": "*ACCESS*TOKEN*", "token_type": "Bearer"},
            match=[
                matchers.json_params_matcher(
                    {
                        "client_id": "id-of-client",
                        "client_secret": "*SECRET*",
                        "grant_type": "authorization_code",
                        "code": "...CODE...",
                        "redirect_uri": "https://fedi.example.com/oauth_callback",
                    }
                )
            ],
        )

        _, session_id = self.gateway.begin_signin(RequestContext(), "masto.example.net")
        result = self.gateway.complete_signin(RequestContext(session_id=session_id), "...CODE...")

        self.assertEqual(endpoint.call_count, 1)
        self.assertEqual(result, "*ACCESS*TOKEN*")
        session = Session.objects.get(pk=session_id)
        self.assertEqual(session.access_token, "*ACCESS*TOKEN*")
        self.assertTrue(session.is_active)

    @responses.activate
    def test_overwrites_previous_token(self):
        session, app = given_session_with_app(access_token="*OLD*TOKEN*")
        responses.post(f"{app.instance_url}/oauth/token", json={"access_token": "*NEW*TOKEN*"})

        self.gateway.complete_signin(RequestContext(session_id=session.id), "...CODE...")

        session.refresh_from_db()
        self.assertEqual(session.access_token, "*NEW*TOKEN*")

    @responses.activate
    def test_empty_code_fails_without_network_call(self):
        session, _ = given_session_with_app(access_token="")

        with self.assertRaises(InvalidArgument):
            self.gateway.complete_signin(RequestContext(session_id=session.id), "")

        self.assertEqual(len(responses.calls), 0)

    @responses.activate
    def test_empty_code_fails_before_session_check(self):
        with self.assertRaises(InvalidArgument):
            self.gateway.complete_signin(RequestContext(), "")

    def test_fails_without_session(self):
        with self.assertRaises(InvalidSession):
            self.gateway.complete_signin(RequestContext(), "...CODE...")

    @responses.activate
    def test_token_exchange_failure_leaves_session_unchanged(self):
        session, app = given_session_with_app(access_token="")
        responses.post(
            f"{app.instance_url}/oauth/token",
            json={"error": "invalid_grant"},
            status=400,
        )

        with self.assertRaises(TokenExchangeError):
            self.gateway.complete_signin(RequestContext(session_id=session.id), "...CODE...")

        session.refresh_from_db()
        self.assertEqual(session.access_token, "")


class TestCheckCSRF(TestCase):

    def setUp(self):
        self.gateway = make_gateway()
        session, _ = given_session_with_app(csrf_token="Abc123-token")
        self.authed = self.gateway.resolve_client(RequestContext(session_id=session.id))

    def check(self, csrf_token):
        self.gateway.check_csrf(RequestContext(session_id=self.authed.session.id, csrf_token=csrf_token), self.authed)

    def test_succeeds_on_exact_match(self):
        self.check("Abc123-token")  # Does not raise.

    def test_fails_when_absent(self):
        with self.assertRaises(InvalidCSRFToken):
            self.check(None)

    def test_fails_when_empty(self):
        with self.assertRaises(InvalidCSRFToken):
            self.check("")

    def test_fails_on_case_difference(self):
        with self.assertRaises(InvalidCSRFToken):
            self.check("abc123-token")

    def test_fails_on_prefix(self):
        with self.assertRaises(InvalidCSRFToken):
            self.check("Abc123")

    def test_fails_on_trailing_byte(self):
        with self.assertRaises(InvalidCSRFToken):
            self.check("Abc123-token ")

    def test_fails_when_session_has_no_token(self):
        self.authed.session.csrf_token = ""

        with self.assertRaises(InvalidCSRFToken):
            self.check("")


class TestGuardedCall(TestCase):

    def setUp(self):
        self.content = MagicMock(name="content")
        self.gateway = make_gateway(self.content)
        self.session, _ = given_session_with_app(csrf_token="*CSRF*")

    def test_read_calls_fn_with_client_and_arguments(self):
        fn = MagicMock(return_value="*RESULT*")

        result = self.gateway.guarded_call(RequestContext(session_id=self.session.id), READ, fn, "a", b="c")

        self.assertEqual(result, "*RESULT*")
        (client, *args), kwargs = fn.call_args
        self.assertEqual(client.session, self.session)
        self.assertEqual(args, ["a"])
        self.assertEqual(kwargs, {"b": "c"})

    def test_read_does_not_need_csrf_token(self):
        fn = MagicMock()

        self.gateway.guarded_call(RequestContext(session_id=self.session.id), READ, fn)

        self.assertTrue(fn.called)

    def test_mutate_needs_csrf_token(self):
        fn = MagicMock()

        with self.assertRaises(InvalidCSRFToken):
            self.gateway.guarded_call(RequestContext(session_id=self.session.id), MUTATE, fn)

        self.assertFalse(fn.called)

    def test_mutate_with_csrf_token_calls_fn(self):
        fn = MagicMock()

        self.gateway.guarded_call(RequestContext(session_id=self.session.id, csrf_token="*CSRF*"), MUTATE, fn, "42")

        self.assertTrue(fn.called)

    def test_invalid_session_never_reaches_fn(self):
        fn = MagicMock()

        with self.assertRaises(InvalidSession):
            self.gateway.guarded_call(RequestContext(csrf_token="*CSRF*"), MUTATE, fn)

        self.assertFalse(fn.called)

    def test_propagates_errors_from_fn_unchanged(self):
        error = RemoteError("boom", status_code=500)
        fn = MagicMock(side_effect=error)

        with self.assertRaises(RemoteError) as cm:
            self.gateway.guarded_call(RequestContext(session_id=self.session.id), READ, fn)

        self.assertIs(cm.exception, error)


class TestContentOperations(TestCase):
    """The gateway forwards each operation to the content service with the right checks."""

    reads = ["timeline", "thread", "notifications", "user", "liked_by", "retweeted_by", "following", "followers", "search", "user_settings"]
    mutations = ["like", "unlike", "retweet", "unretweet", "post", "follow", "unfollow", "save_settings"]

    def setUp(self):
        self.content = MagicMock(name="content")
        self.gateway = make_gateway(self.content)
        self.session, _ = given_session_with_app(csrf_token="*CSRF*")

    def test_reads_forward_without_csrf_token(self):
        for name in self.reads:
            with self.subTest(name):
                result = getattr(self.gateway, name)(RequestContext(session_id=self.session.id), "42", x=1)

                operation = getattr(self.content, name)
                self.assertEqual(result, operation.return_value)
                (client, *args), kwargs = operation.call_args
                self.assertEqual(client.session, self.session)
                self.assertEqual(args, ["42"])
                self.assertEqual(kwargs, {"x": 1})

    def test_mutations_refuse_without_csrf_token(self):
        for name in self.mutations:
            with self.subTest(name):
                with self.assertRaises(InvalidCSRFToken):
                    getattr(self.gateway, name)(RequestContext(session_id=self.session.id), "42")

                self.assertFalse(getattr(self.content, name).called)

    def test_mutations_refuse_with_wrong_csrf_token(self):
        for name in self.mutations:
            with self.subTest(name):
                with self.assertRaises(InvalidCSRFToken):
                    getattr(self.gateway, name)(RequestContext(session_id=self.session.id, csrf_token="*csrf*"), "42")

                self.assertFalse(getattr(self.content, name).called)

    def test_mutations_forward_with_csrf_token(self):
        for name in self.mutations:
            with self.subTest(name):
                getattr(self.gateway, name)(RequestContext(session_id=self.session.id, csrf_token="*CSRF*"), "42")

                self.assertTrue(getattr(self.content, name).called)

    def test_all_operations_refuse_without_session(self):
        for name in self.reads + self.mutations:
            with self.subTest(name):
                with self.assertRaises(InvalidSession):
                    getattr(self.gateway, name)(RequestContext(csrf_token="*CSRF*"), "42")


class TestFromSettings(TestCase):

    @override_settings(
        FEDIWEB_CLIENT_NAME="Test Client",
        FEDIWEB_CLIENT_WEBSITE="https://fedi.example.org/",
        FEDIWEB_CLIENT_SCOPES="read write",
        FEDIWEB_REQUEST_TIMEOUT=5.0,
    )
    def test_reads_settings(self):
        content = MagicMock()

        gateway = AuthGateway.from_settings(content)

        self.assertIs(gateway.content, content)
        self.assertEqual(gateway.client_name, "Test Client")
        self.assertEqual(gateway.scopes, ["read", "write"])
        self.assertEqual(gateway.website, "https://fedi.example.org")
        self.assertEqual(gateway.callback_url, "https://fedi.example.org/oauth_callback")
        self.assertEqual(gateway.timeout, 5.0)
