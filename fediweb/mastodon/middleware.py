"""Middleware for the mastodon app."""

from .context import RequestContext


class SessionContextMiddleware:
    """Middleware to add a fedi_context attribute to requests.

    This is the only place the session cookie and CSRF field are read;
    everything downstream is passed the RequestContext.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.fedi_context = RequestContext.from_request(request)
        return self.get_response(request)
