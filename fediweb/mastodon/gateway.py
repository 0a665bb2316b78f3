"""The gateway between browser sessions and Mastodon instances.

Every request for content passes through `AuthGateway`, which turns the
session cookie in to a client for the right instance and (for requests
that change things) checks the CSRF token, before handing over to the
content service. Content service operations can therefore assume the
caller is who they say they are.

Signing in is a three-step dance:

- `begin_signin` creates a session, registers our app with the instance
  if this is the first time anyone has signed in from there, and returns
  the URL of the instance’s authorization page
- the person signs in on their instance, which redirects them back to us
- `complete_signin` exchanges the code from the redirect for an access token
  and stores it in the session
"""

import enum
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.utils.crypto import constant_time_compare

from .client import MastodonClient, exchange_token, register_application
from .errors import AppNotFound, InvalidArgument, InvalidCSRFToken, InvalidSession, RegistrationError, SessionNotFound
from .models import RegisteredApp, Session
from .protocol import callback_path, default_scopes, instance_url, token_path

logger = logging.getLogger(__name__)


class OperationKind(enum.Enum):
    READ = "read"
    MUTATE = "mutate"


READ = OperationKind.READ
MUTATE = OperationKind.MUTATE


class AuthenticatedClient:
    """A session together with a client for its instance.

    Created afresh for each request and not shared.
    """

    def __init__(self, session, api):
        self.session = session
        self.api = api

    def __repr__(self):
        return f"AuthenticatedClient({self.session.instance_url!r})"


class AuthGateway:
    """Checks credentials then forwards to the content service."""

    def __init__(self, content, client_name, scopes, website, sessions=None, apps=None, timeout=None):
        """Create an instance.

        Arguments --
            content -- the content service operations are forwarded to
            client_name -- name we register our app with on each instance
            scopes -- list of OAuth2 scopes we ask for
            website -- absolute URL of our home page (like `https://fedi.example.com`)
            sessions -- manager of Session records (defaults to Session.objects)
            apps -- manager of RegisteredApp records (defaults to RegisteredApp.objects)
            timeout -- seconds to wait for instances, or None to wait indefinitely
        """
        self.content = content
        self.client_name = client_name
        self.scopes = scopes
        self.website = website.rstrip("/")
        self.sessions = sessions if sessions is not None else Session.objects
        self.apps = apps if apps is not None else RegisteredApp.objects
        self.timeout = timeout

    @classmethod
    def from_settings(cls, content):
        scopes = getattr(settings, "FEDIWEB_CLIENT_SCOPES", None) or default_scopes
        return cls(
            content,
            client_name=settings.FEDIWEB_CLIENT_NAME,
            scopes=scopes.split() if isinstance(scopes, str) else list(scopes),
            website=settings.FEDIWEB_CLIENT_WEBSITE,
            timeout=getattr(settings, "FEDIWEB_REQUEST_TIMEOUT", None),
        )

    @property
    def callback_url(self):
        return self.website + callback_path

    def resolve_client(self, ctx):
        """Return an AuthenticatedClient for the session named in the context.

        The access token may be blank if the sign-in has not been completed.
        Raises InvalidSession if there is no session ID, no such session,
        or no app registered with the session’s instance.
        """
        if not ctx.session_id:
            raise InvalidSession()
        try:
            session = self.sessions.get_session(ctx.session_id)
        except SessionNotFound:
            raise InvalidSession() from None
        try:
            app = self.apps.get_app(session.instance_url)
        except AppNotFound:
            logger.warning(f"session for {session.instance_url} has no registered app")
            raise InvalidSession() from None

        api = MastodonClient(
            app.instance_url,
            app.client_id,
            app.client_secret,
            session.access_token,
            timeout=self.timeout,
        )
        return AuthenticatedClient(session, api)

    def begin_signin(self, ctx, instance_domain):
        """Start signing in to this instance.

        Arguments --
            ctx -- RequestContext (any existing session is ignored)
            instance_domain -- what the person typed, like `mastodon.social`

        Returns --
            pair (redirect_url, session_id): send the browser to the former
            after setting the session cookie to the latter.

        The session is stored before the app is registered,
        so if registration fails it remains, without an access token.
        """
        if not instance_domain or not instance_domain.strip():
            raise InvalidArgument("instance is required")
        url = instance_url(instance_domain)

        session = self.sessions.new_session(url)
        session = self.sessions.add_session(session)

        app = self.find_or_register_app(url)

        query = urlencode(
            {
                "scope": " ".join(self.scopes),
                "client_id": app.client_id,
                "response_type": "code",
                "redirect_uri": self.callback_url,
            }
        )
        return f"{app.authorize_url}?{query}", session.id

    def find_or_register_app(self, url):
        """Return the app registered with this instance, registering it first if need be."""
        try:
            return self.apps.get_app(url)
        except AppNotFound:
            pass

        try:
            client_id, client_secret = register_application(
                url,
                self.client_name,
                self.scopes,
                self.website,
                self.callback_url,
                timeout=self.timeout,
            )
        except RegistrationError as e:
            logger.error(f"Could not enroll with {url}: {e}")
            raise
        logger.info(f"Enrolled with {url} as {client_id}")

        return self.apps.add_app(
            RegisteredApp(
                instance_url=url,
                client_id=client_id,
                client_secret=client_secret,
            )
        )

    def complete_signin(self, ctx, code):
        """Exchange the code the instance sent us for an access token.

        Returns --
            the access token, which has also been saved in the session
        """
        if not code:
            raise InvalidArgument("authorization code is required")
        client = self.resolve_client(ctx)
        session, api = client.session, client.api

        token = exchange_token(
            api.server + token_path,
            api.client_id,
            api.client_secret,
            code,
            self.callback_url,
            timeout=self.timeout,
        )

        session.access_token = token
        self.sessions.add_session(session)
        logger.info(f"Signed in to {session.instance_url}")
        return token

    def check_csrf(self, ctx, client):
        """Raise InvalidCSRFToken unless the request’s token is exactly the session’s."""
        expected = client.session.csrf_token
        if not ctx.csrf_token or not expected or not constant_time_compare(ctx.csrf_token, expected):
            raise InvalidCSRFToken()

    def guarded_call(self, ctx, kind, fn, *args, **kwargs):
        """Call fn with an authenticated client followed by the remaining arguments.

        Changes (kind MUTATE) also require a valid CSRF token.
        Errors are propagated unchanged.
        """
        client = self.resolve_client(ctx)
        if kind is OperationKind.MUTATE:
            self.check_csrf(ctx, client)
        return fn(client, *args, **kwargs)

    # Content operations, in the same order as ContentService.

    def timeline(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.timeline, *args, **kwargs)

    def thread(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.thread, *args, **kwargs)

    def notifications(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.notifications, *args, **kwargs)

    def user(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.user, *args, **kwargs)

    def liked_by(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.liked_by, *args, **kwargs)

    def retweeted_by(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.retweeted_by, *args, **kwargs)

    def following(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.following, *args, **kwargs)

    def followers(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.followers, *args, **kwargs)

    def search(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.search, *args, **kwargs)

    def user_settings(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, READ, self.content.user_settings, *args, **kwargs)

    def like(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.like, *args, **kwargs)

    def unlike(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.unlike, *args, **kwargs)

    def retweet(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.retweet, *args, **kwargs)

    def unretweet(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.unretweet, *args, **kwargs)

    def post(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.post, *args, **kwargs)

    def follow(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.follow, *args, **kwargs)

    def unfollow(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.unfollow, *args, **kwargs)

    def save_settings(self, ctx, *args, **kwargs):
        return self.guarded_call(ctx, MUTATE, self.content.save_settings, *args, **kwargs)
