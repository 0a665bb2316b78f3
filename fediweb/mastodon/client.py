"""Talking to Mastodon instances over HTTP.

Functions `register_application` and `exchange_token` are the two halves
of the handshake that need no access token. Everything after that goes
through a `MastodonClient` bound to one instance and one access token.
"""

import logging
from urllib.parse import parse_qs, urlsplit

import requests
import requests_oauthlib
from oauthlib.oauth2 import OAuth2Error

from .errors import RegistrationError, RemoteError, TokenExchangeError
from .protocol import (
    account_path,
    account_statuses_path,
    apps_path,
    favourite_path,
    favourited_by_path,
    follow_path,
    followers_path,
    following_path,
    media_path,
    notifications_path,
    reblog_path,
    reblogged_by_path,
    search_path,
    status_context_path,
    status_path,
    statuses_path,
    timeline_paths,
    unfavourite_path,
    unfollow_path,
    unreblog_path,
    verify_credentials_path,
)

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Accept": "application/json",
}


def register_application(server, client_name, scopes, website, redirect_uris, timeout=None):
    """Ask this Mastodon instance for client credentials.

    Arguments --
        server -- base URL of the instance (like `https://mastodon.social`)
        client_name -- what the instance will show people when they authorize us
        scopes -- list of OAuth2 scopes we will ask for
        website -- our home page
        redirect_uris -- where the instance sends people back to after authorizing

    Returns --
        pair (client_id, client_secret)
    """
    try:
        r = requests.post(
            f"{server}{apps_path}",
            data={
                "client_name": client_name,
                "redirect_uris": redirect_uris,
                "scopes": " ".join(scopes),
                "website": website,
            },
            headers=dict(JSON_HEADERS),
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise RegistrationError(f"could not reach {server}", detail=str(e)) from e

    body = _json_body(r, RegistrationError, f"could not register with {server}")
    try:
        return body["client_id"], body["client_secret"]
    except (KeyError, TypeError) as e:
        raise RegistrationError(
            f"no credentials in response from {server}", status_code=r.status_code, detail=r.text
        ) from e


def exchange_token(token_url, client_id, client_secret, code, redirect_uri, timeout=None):
    """Exchange an authorization code for an access token.

    Returns --
        the access token (a string)
    """
    try:
        r = requests.post(
            token_url,
            json={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
            headers=dict(JSON_HEADERS),
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise TokenExchangeError(f"could not reach {token_url}", detail=str(e)) from e

    body = _json_body(r, TokenExchangeError, f"could not get token from {token_url}")
    token = body.get("access_token") if isinstance(body, dict) else None
    if not token:
        raise TokenExchangeError(
            f"no access token in response from {token_url}", status_code=r.status_code, detail=r.text
        )
    return token


def _json_body(r, error_class, message):
    """Return the decoded JSON of a successful response or raise error_class."""
    if not 200 <= r.status_code < 300:
        try:
            body = r.json()
            detail = body.get("error_description") or body.get("error") or r.text
        except (ValueError, AttributeError):
            detail = r.text
        raise error_class(message, status_code=r.status_code, detail=detail)
    try:
        return r.json()
    except ValueError as e:
        raise error_class(message, status_code=r.status_code, detail="response is not JSON") from e


class Page:
    """A list of things from the instance along with pagination IDs from the Link header."""

    def __init__(self, items, max_id=None, min_id=None):
        self.items = items
        self.max_id = max_id
        self.min_id = min_id

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    @classmethod
    def from_response(cls, r):
        max_id = min_id = None
        if (url := r.links.get("next", {}).get("url")):
            max_id = _query_param(url, "max_id")
        if (url := r.links.get("prev", {}).get("url")):
            min_id = _query_param(url, "min_id") or _query_param(url, "since_id")
        return cls(r.json(), max_id=max_id, min_id=min_id)


def _query_param(url, name):
    values = parse_qs(urlsplit(url).query).get(name)
    return values[0] if values else None


class MastodonClient:
    """Client for one account on one Mastodon instance."""

    def __init__(self, server, client_id, client_secret, access_token, timeout=None):
        self.server = server
        self.client_id = client_id
        self.client_secret = client_secret
        self.access_token = access_token
        self.timeout = timeout
        self._oauth = None

    def __repr__(self):
        return f"MastodonClient({self.server!r}, {self.client_id!r})"

    @property
    def oauth(self):
        """The OAuth2 session used to make authenticated requests."""
        if self._oauth is None:
            if self.access_token:
                self._oauth = requests_oauthlib.OAuth2Session(
                    self.client_id,
                    token={
                        "access_token": self.access_token,
                        "token_type": "Bearer",
                    },
                )
            else:
                self._oauth = requests_oauthlib.OAuth2Session(self.client_id)
        return self._oauth

    def url(self, path, **kwargs):
        return self.server + path.format(**kwargs)

    def request(self, method, path, path_params=None, **kwargs):
        """Make a request and return the response, raising RemoteError if it failed."""
        url = self.url(path, **(path_params or {}))
        logger.debug(f"{method} {url}")
        try:
            r = self.oauth.request(method, url, headers=dict(JSON_HEADERS), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteError(f"could not reach {self.server}", detail=str(e)) from e
        except OAuth2Error as e:
            raise RemoteError(f"could not authenticate with {self.server}", detail=e.description) from e
        if not 200 <= r.status_code < 300:
            try:
                detail = r.json().get("error")
            except (ValueError, AttributeError):
                detail = r.text
            raise RemoteError(f"{method} {url} failed", status_code=r.status_code, detail=detail)
        return r

    def get(self, path, query=None, **params):
        return self.request("GET", path, params, params=_without_blanks(query)).json()

    def get_page(self, path, query=None, **params):
        return Page.from_response(self.request("GET", path, params, params=_without_blanks(query)))

    def post(self, path, data=None, **params):
        return self.request("POST", path, params, json=data).json()

    def verify_credentials(self):
        """The account this client is signed in as."""
        return self.get(verify_credentials_path)

    def get_timeline(self, kind="home", max_id=None, since_id=None, min_id=None, limit=20):
        try:
            path = timeline_paths[kind]
        except KeyError:
            raise ValueError(f"{kind}: unknown timeline") from None
        query = {"max_id": max_id, "since_id": since_id, "min_id": min_id, "limit": limit}
        if kind == "local":
            query["local"] = "true"
        return self.get_page(path, query)

    def get_status(self, id):
        return self.get(status_path, id=id)

    def get_status_context(self, id):
        return self.get(status_context_path, id=id)

    def favourite(self, id):
        return self.post(favourite_path, id=id)

    def unfavourite(self, id):
        return self.post(unfavourite_path, id=id)

    def reblog(self, id):
        return self.post(reblog_path, id=id)

    def unreblog(self, id):
        return self.post(unreblog_path, id=id)

    def get_favourited_by(self, id):
        return self.get(favourited_by_path, id=id)

    def get_reblogged_by(self, id):
        return self.get(reblogged_by_path, id=id)

    def post_status(self, status, in_reply_to_id=None, visibility=None, sensitive=False, media_ids=None):
        data = {"status": status}
        if in_reply_to_id:
            data["in_reply_to_id"] = in_reply_to_id
        if visibility:
            data["visibility"] = visibility
        if sensitive:
            data["sensitive"] = True
        if media_ids:
            data["media_ids"] = media_ids
        return self.post(statuses_path, data)

    def upload_media(self, name, stream, media_type):
        """Upload an attachment and return the media record (which has the `id` to post with)."""
        return self.request("POST", media_path, files={"file": (name, stream, media_type)}).json()

    def get_account(self, id):
        return self.get(account_path, id=id)

    def get_account_statuses(self, id, max_id=None, min_id=None, limit=20):
        return self.get_page(account_statuses_path, {"max_id": max_id, "min_id": min_id, "limit": limit}, id=id)

    def get_following(self, id, max_id=None, min_id=None, limit=20):
        return self.get_page(following_path, {"max_id": max_id, "min_id": min_id, "limit": limit}, id=id)

    def get_followers(self, id, max_id=None, min_id=None, limit=20):
        return self.get_page(followers_path, {"max_id": max_id, "min_id": min_id, "limit": limit}, id=id)

    def follow(self, id):
        return self.post(follow_path, id=id)

    def unfollow(self, id):
        return self.post(unfollow_path, id=id)

    def get_notifications(self, max_id=None, min_id=None, limit=20):
        return self.get_page(notifications_path, {"max_id": max_id, "min_id": min_id, "limit": limit})

    def search(self, q, type=None, offset=0, limit=20):
        return self.get(search_path, {"q": q, "type": type, "offset": offset, "limit": limit, "resolve": "true"})


def _without_blanks(query):
    """Drop parameters that are None or empty strings."""
    if query is None:
        return None
    return {k: v for k, v in query.items() if v is not None and v != ""}
