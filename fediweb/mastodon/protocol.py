"""Mastodon protocol.

Implementation of the subset of the Mastodon client API we use.
Which is registering apps, the OAuth2 code grant, and the handful of
timeline, status and account calls a web front end needs.

Paths are relative to the instance URL (like `https://mastodon.social`).
"""

default_scopes = [
    "read",
    "write",
    "follow",
]

callback_path = "/oauth_callback"  # Our end of the OAuth2 dance.

apps_path = "/api/v1/apps"  # POST client_name, redirect_uris, scopes, website
authorize_path = "/oauth/authorize"  # GET response_type=code, client_id, redirect_uri, scope
token_path = "/oauth/token"  # POST grant_type=authorization_code
verify_credentials_path = "/api/v1/accounts/verify_credentials"  # GET
timeline_paths = {
    "home": "/api/v1/timelines/home",
    "local": "/api/v1/timelines/public",
    "twkn": "/api/v1/timelines/public",
}
status_path = "/api/v1/statuses/{id}"
status_context_path = "/api/v1/statuses/{id}/context"
favourite_path = "/api/v1/statuses/{id}/favourite"  # POST
unfavourite_path = "/api/v1/statuses/{id}/unfavourite"  # POST
reblog_path = "/api/v1/statuses/{id}/reblog"  # POST
unreblog_path = "/api/v1/statuses/{id}/unreblog"  # POST
favourited_by_path = "/api/v1/statuses/{id}/favourited_by"
reblogged_by_path = "/api/v1/statuses/{id}/reblogged_by"
statuses_path = "/api/v1/statuses"  # POST
media_path = "/api/v1/media"  # POST
account_path = "/api/v1/accounts/{id}"
account_statuses_path = "/api/v1/accounts/{id}/statuses"
following_path = "/api/v1/accounts/{id}/following"
followers_path = "/api/v1/accounts/{id}/followers"
follow_path = "/api/v1/accounts/{id}/follow"  # POST
unfollow_path = "/api/v1/accounts/{id}/unfollow"  # POST
notifications_path = "/api/v1/notifications"
search_path = "/api/v2/search"

visibilities = ["public", "unlisted", "private", "direct"]


def instance_url(domain):
    """Given what a person typed in to identify their instance, return its base URL.

    Always HTTPS, since OAuth2 requires it; an `http://` prefix is upgraded.

        >>> instance_url('sub.example.org')
        'https://sub.example.org'
    """
    url = domain.strip()
    if url.startswith("http://"):
        url = url[len("http://"):]
    if not url.startswith("https://"):
        url = "https://" + url
    return url.rstrip("/")
