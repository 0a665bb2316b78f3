from django.db import DatabaseError, models
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.translation import gettext_lazy as _
import logging

from .errors import AppNotFound, SessionNotFound, StorageError
from .preferences import UserSettings
from .protocol import authorize_path


logger = logging.getLogger(__name__)

SESSION_ID_LENGTH = 43
CSRF_TOKEN_LENGTH = 43

# Each Mastodon instance issues us a client ID the first time anyone signs in from it.
# Sessions then refer to the app by the instance URL rather than by foreign key,
# so that a session can exist before its app has been registered.


class RegisteredAppManager(models.Manager):

    def get_app(self, instance_url):
        """Return the app registered with this instance or raise AppNotFound."""
        try:
            return self.get(instance_url=instance_url)
        except self.model.DoesNotExist:
            raise AppNotFound(instance_url) from None
        except DatabaseError as e:
            raise StorageError(f"could not retrieve app for {instance_url}") from e

    def add_app(self, app):
        """Store credentials for this instance.

        If credentials are already stored for the instance they are kept and
        those passed in are discarded: the first registration wins.

        Returns --
            the RegisteredApp instance that is stored, which is what callers must use.
        """
        try:
            stored, is_new = self.get_or_create(
                instance_url=app.instance_url,
                defaults={
                    'client_id': app.client_id,
                    'client_secret': app.client_secret,
                },
            )
        except DatabaseError as e:
            raise StorageError(f"could not store app for {app.instance_url}") from e
        if not is_new and stored.client_id != app.client_id:
            logger.warning(f"{app.instance_url}: already registered as {stored.client_id}; discarding {app.client_id}")
        return stored


class RegisteredApp(models.Model):
    """OAuth2 client credentials issued to us by a Mastodon instance."""

    instance_url = models.CharField(
        _('instance URL'),
        max_length=255,
        primary_key=True,
        help_text=_('Base URL of the Mastodon instance, like https://mastodon.social'),
    )
    client_id = models.CharField(
        _('client ID'),
        max_length=255,
        help_text=_('OAuth2 credential supplied by Mastodon instance when enrolling the app.'),
    )
    client_secret = models.CharField(
        _('client secret'),
        max_length=255,
        help_text=_('OAuth2 credential supplied by Mastodon instance when enrolling the app.'),
    )
    created = models.DateTimeField(_('created'), default=timezone.now)
    modified = models.DateTimeField(_('modified'), auto_now=True)

    objects = RegisteredAppManager()

    class Meta:
        verbose_name = _('registered app')
        verbose_name_plural = _('registered apps')

    def __str__(self):
        return self.instance_url

    @property
    def authorize_url(self):
        return f'{self.instance_url}{authorize_path}'


class SessionManager(models.Manager):

    def new_session(self, instance_url):
        """Return an unsaved session for this instance with fresh ID and CSRF token."""
        return self.model(
            id=get_random_string(SESSION_ID_LENGTH),
            instance_url=instance_url,
            csrf_token=get_random_string(CSRF_TOKEN_LENGTH),
        )

    def get_session(self, session_id):
        """Return the session with this ID or raise SessionNotFound."""
        try:
            return self.get(pk=session_id)
        except self.model.DoesNotExist:
            raise SessionNotFound(session_id) from None
        except DatabaseError as e:
            raise StorageError("could not retrieve session") from e

    def add_session(self, session):
        """Create or overwrite the stored session with this one’s ID."""
        try:
            stored, _ = self.update_or_create(
                pk=session.pk,
                defaults={
                    'instance_url': session.instance_url,
                    'access_token': session.access_token,
                    'csrf_token': session.csrf_token,
                    'settings': session.settings,
                },
            )
        except DatabaseError as e:
            raise StorageError(f"could not store session for {session.instance_url}") from e
        return stored


class Session(models.Model):
    """Binds the value of a browser cookie to an account on a Mastodon instance.

    Created without an access token when someone asks to sign in,
    and acquires the token when the instance calls us back.
    Signing out forgets the cookie but not the session.
    """

    id = models.CharField(
        _('ID'),
        max_length=64,
        primary_key=True,
    )
    instance_url = models.CharField(
        _('instance URL'),
        max_length=255,
        help_text=_('Base URL of the Mastodon instance the account is on.'),
    )
    access_token = models.TextField(
        _('access token'),
        blank=True,
        default='',
        help_text=_('Bearer token issued by the instance; blank until sign-in completes.'),
    )
    csrf_token = models.CharField(
        _('CSRF token'),
        max_length=64,
        help_text=_('Included in every form and checked on every change.'),
    )
    settings = models.JSONField(
        _('settings'),
        default=dict,
        blank=True,
    )
    created = models.DateTimeField(_('created'), default=timezone.now)
    modified = models.DateTimeField(_('modified'), auto_now=True)

    objects = SessionManager()

    class Meta:
        verbose_name = _('session')
        verbose_name_plural = _('sessions')

    def __str__(self):
        return f'{self.instance_url} ({self.created:%Y-%m-%d %H:%M})'

    @property
    def is_active(self):
        """Whether the OAuth2 dance has completed for this session."""
        return bool(self.access_token)

    @property
    def user_settings(self):
        return UserSettings.from_dict(self.settings)

    @user_settings.setter
    def user_settings(self, value):
        self.settings = value.as_dict()
