"""What the gateway needs to know about the request it is handling."""

from dataclasses import dataclass
from typing import Optional

from django.conf import settings


@dataclass(frozen=True)
class RequestContext:
    """Credentials carried by one request.

    Attributes --
        session_id -- value of the session cookie, if any
        csrf_token -- value of the `csrf_token` form field, if any
    """

    session_id: Optional[str] = None
    csrf_token: Optional[str] = None

    @classmethod
    def from_request(cls, request):
        """Extract the session cookie and (for POST requests) the CSRF token."""
        session_id = request.COOKIES.get(session_cookie_name()) or None
        csrf_token = (request.POST.get("csrf_token") or None) if request.method == "POST" else None
        return cls(session_id=session_id, csrf_token=csrf_token)


def session_cookie_name():
    return getattr(settings, "FEDIWEB_SESSION_COOKIE_NAME", "session_id")
