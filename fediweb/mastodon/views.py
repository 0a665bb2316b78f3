"""Views for reading and writing to a Mastodon account.

Signing in with OAuth2 requires the following views:

- Form for entering the domain name of the instance
  - Form submission creates a session and registers our app with the instance
    if need be, sets the session cookie, and redirects to the authorization page
- Callback from the Mastodon instance
  - Supplied with code
  - Synchronous call to instance server to convert code to access token
  - Stores token in the session

All the other views go through the gateway, which checks the session
(and the CSRF token, for changes) before calling the content service.
"""

from functools import wraps
import logging

from django.conf import settings
from django.http import HttpResponseNotAllowed, HttpResponseRedirect
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .context import RequestContext, session_cookie_name
from .errors import (
    GatewayError,
    InvalidArgument,
    InvalidCSRFToken,
    InvalidSession,
    RemoteError,
    StorageError,
)
from .forms import PostForm, SettingsForm, SigninForm
from .gateway import AuthGateway
from .service import ContentService

logger = logging.getLogger(__name__)


def get_gateway():
    """Gateway wrapping the content service, configured from settings."""
    return AuthGateway.from_settings(ContentService())


def context_of(request):
    """The RequestContext set by SessionContextMiddleware."""
    ctx = getattr(request, "fedi_context", None)
    return ctx if ctx is not None else RequestContext.from_request(request)


def status_for_error(e):
    if isinstance(e, (InvalidSession, InvalidCSRFToken)):
        return 403
    if isinstance(e, InvalidArgument):
        return 400
    if isinstance(e, RemoteError):
        return 502
    return 500


def handles_gateway_errors(view):
    """Decorator that renders the error page for errors from the gateway.

    Someone without a session who asks for a page is sent to sign in instead.
    """

    @wraps(view)
    def wrapped_view(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except GatewayError as e:
            if request.method == "GET" and (
                isinstance(e, InvalidSession) or isinstance(e, RemoteError) and e.status_code == 401
            ):
                return redirect("mastodon:signin")
            status = status_for_error(e)
            if isinstance(e, StorageError):
                logger.exception(f"{request.path}: {e}")
            else:
                logger.warning(f"{request.path}: {e}")
            return render(request, "mastodon/error.html", {"error": e}, status=status)

    return wrapped_view


def back_to_referer(request, fragment=None):
    """Redirect to the page the form was on."""
    url = request.META.get("HTTP_REFERER") or reverse("mastodon:timeline", kwargs={"kind": "home"})
    if fragment:
        url = f"{url.split('#')[0]}#{fragment}"
    return HttpResponseRedirect(url)


@require_GET
def root(request):
    if request.COOKIES.get(session_cookie_name()):
        return redirect("mastodon:timeline", kind="home")
    return redirect("mastodon:signin")


@csrf_exempt
@handles_gateway_errors
def signin(request):
    """Show sign-in form, or on POST start the OAuth2 dance."""
    if request.method == "GET":
        return render(request, "mastodon/signin.html", {"form": SigninForm()})
    if request.method != "POST":
        return HttpResponseNotAllowed(["GET", "POST"])

    form = SigninForm(request.POST)
    if not form.is_valid():
        return render(request, "mastodon/signin.html", {"form": form}, status=400)

    redirect_url, session_id = get_gateway().begin_signin(context_of(request), form.cleaned_data["instance"])
    response = HttpResponseRedirect(redirect_url)
    response.set_cookie(
        session_cookie_name(),
        session_id,
        max_age=getattr(settings, "FEDIWEB_SESSION_COOKIE_AGE", 365 * 24 * 60 * 60),
        secure=request.is_secure(),
        httponly=True,
        samesite="Lax",
    )
    return response


@require_GET
@handles_gateway_errors
def oauth_callback(request):
    """Called by Mastodon instance to complete OAuth2 flow."""
    get_gateway().complete_signin(context_of(request), request.GET.get("code"))
    return redirect("mastodon:timeline", kind="home")


@require_GET
def signout(request):
    """Forget the session cookie.

    The session record itself is not deleted.
    """
    response = redirect("mastodon:root")
    response.delete_cookie(session_cookie_name())
    return response


@require_GET
@handles_gateway_errors
def timeline(request, kind):
    data = get_gateway().timeline(
        context_of(request),
        kind,
        max_id=request.GET.get("max_id"),
        since_id=request.GET.get("since_id"),
        min_id=request.GET.get("min_id"),
    )
    if kind == "home":
        data["post_form"] = PostForm(initial={"visibility": data["user_settings"].default_visibility})
    return render(request, "mastodon/timeline.html", data)


@require_GET
@handles_gateway_errors
def thread(request, id):
    data = get_gateway().thread(context_of(request), id, reply=bool(request.GET.get("reply")))
    user_settings = data["user_settings"]
    data["post_form"] = PostForm(
        initial={
            "content": data["reply_text"],
            "reply_to_id": id,
            "visibility": (
                data["status"].get("visibility") if user_settings.copy_scope else user_settings.default_visibility
            ),
        }
    )
    return render(request, "mastodon/thread.html", data)


@require_GET
@handles_gateway_errors
def notifications(request):
    data = get_gateway().notifications(
        context_of(request),
        max_id=request.GET.get("max_id"),
        min_id=request.GET.get("min_id"),
    )
    return render(request, "mastodon/notifications.html", data)


@require_GET
@handles_gateway_errors
def user(request, id):
    data = get_gateway().user(
        context_of(request),
        id,
        max_id=request.GET.get("max_id"),
        min_id=request.GET.get("min_id"),
    )
    return render(request, "mastodon/user.html", data)


@require_GET
@handles_gateway_errors
def liked_by(request, id):
    data = get_gateway().liked_by(context_of(request), id)
    return render(request, "mastodon/accounts.html", {"title": "Liked by", **data})


@require_GET
@handles_gateway_errors
def retweeted_by(request, id):
    data = get_gateway().retweeted_by(context_of(request), id)
    return render(request, "mastodon/accounts.html", {"title": "Retweeted by", **data})


@require_GET
@handles_gateway_errors
def following(request, id):
    data = get_gateway().following(
        context_of(request),
        id,
        max_id=request.GET.get("max_id"),
        min_id=request.GET.get("min_id"),
    )
    return render(request, "mastodon/accounts.html", {"title": "Following", **data})


@require_GET
@handles_gateway_errors
def followers(request, id):
    data = get_gateway().followers(
        context_of(request),
        id,
        max_id=request.GET.get("max_id"),
        min_id=request.GET.get("min_id"),
    )
    return render(request, "mastodon/accounts.html", {"title": "Followers", **data})


@require_GET
@handles_gateway_errors
def search(request):
    offset = request.GET.get("offset") or "0"
    if not offset.isdigit():
        raise InvalidArgument(f"{offset!r}: offset must be a number")
    data = get_gateway().search(
        context_of(request),
        request.GET.get("q", ""),
        type=request.GET.get("type"),
        offset=int(offset),
    )
    return render(request, "mastodon/search.html", data)


@csrf_exempt
@handles_gateway_errors
def user_settings(request):
    """Show settings form, or on POST save the settings."""
    gateway = get_gateway()
    ctx = context_of(request)
    if request.method == "GET":
        data = gateway.user_settings(ctx)
        data["form"] = SettingsForm.from_user_settings(data["user_settings"])
        return render(request, "mastodon/settings.html", data)
    if request.method != "POST":
        return HttpResponseNotAllowed(["GET", "POST"])

    form = SettingsForm(request.POST)
    if not form.is_valid():
        raise InvalidArgument(form.errors.as_text())
    gateway.save_settings(ctx, form.to_user_settings())
    return back_to_referer(request)


@csrf_exempt
@require_POST
@handles_gateway_errors
def post(request):
    form = PostForm(request.POST)
    if not form.is_valid():
        raise InvalidArgument(form.errors.as_text())
    reply_to_id = form.cleaned_data["reply_to_id"]
    id = get_gateway().post(
        context_of(request),
        form.cleaned_data["content"],
        reply_to_id=reply_to_id,
        visibility=form.cleaned_data["visibility"],
        is_nsfw=form.cleaned_data["is_nsfw"],
        files=request.FILES.getlist("attachments"),
    )
    if reply_to_id:
        return HttpResponseRedirect(reverse("mastodon:thread", kwargs={"id": reply_to_id}) + f"#status-{id}")
    return HttpResponseRedirect(reverse("mastodon:timeline", kwargs={"kind": "home"}) + f"#status-{id}")


def status_action(operation):
    """Make a view that applies this gateway operation to a status and returns to the referring page."""

    @csrf_exempt
    @require_POST
    @handles_gateway_errors
    def view(request, id):
        getattr(get_gateway(), operation)(context_of(request), id)
        return back_to_referer(request, f"status-{request.POST.get('retweeted_by_id') or id}")

    view.__name__ = operation
    return view


def account_action(operation):
    """Make a view that applies this gateway operation to an account."""

    @csrf_exempt
    @require_POST
    @handles_gateway_errors
    def view(request, id):
        getattr(get_gateway(), operation)(context_of(request), id)
        return back_to_referer(request)

    view.__name__ = operation
    return view


like = status_action("like")
unlike = status_action("unlike")
retweet = status_action("retweet")
unretweet = status_action("unretweet")
follow = account_action("follow")
unfollow = account_action("unfollow")
