from django.apps import AppConfig


class MastodonConfig(AppConfig):
    name = "fediweb.mastodon"
