from django.contrib.admin.utils import quote
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from .factories import RegisteredAppFactory, SessionFactory


class TestAdminHidesSecrets(TestCase):

    def setUp(self):
        user = get_user_model().objects.create_superuser("admin", "admin@example.com", "*PASSWORD*")
        self.client.force_login(user)

    def test_registered_app_change_page_omits_client_secret(self):
        app = RegisteredAppFactory(client_id="id-of-client", client_secret="*CLIENT*SECRET*")

        response = self.client.get(reverse("admin:mastodon_registeredapp_change", args=[quote(app.pk)]))

        self.assertContains(response, "id-of-client")
        self.assertNotContains(response, "*CLIENT*SECRET*")

    def test_session_change_page_omits_tokens(self):
        session = SessionFactory(access_token="*ACCESS*TOKEN*", csrf_token="*CSRF*TOKEN*")

        response = self.client.get(reverse("admin:mastodon_session_change", args=[quote(session.pk)]))

        self.assertContains(response, session.instance_url)
        self.assertNotContains(response, "*ACCESS*TOKEN*")
        self.assertNotContains(response, "*CSRF*TOKEN*")
