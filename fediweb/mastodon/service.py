"""Content operations performed on behalf of a signed-in person.

These trust their caller (the gateway) to have checked the session and
CSRF token. Each takes an AuthenticatedClient as its first argument and
returns plain data for a template.
"""

from .errors import InvalidArgument
from .models import Session
from .protocol import timeline_paths, visibilities


class ContentService:

    max_media = 4

    def __init__(self, sessions=None):
        self.sessions = sessions if sessions is not None else Session.objects

    def page(self, client, **data):
        """Data for a page, plus what every page needs to render its forms."""
        data["session_csrf_token"] = client.session.csrf_token
        data["user_settings"] = client.session.user_settings
        return data

    def timeline(self, client, kind="home", max_id=None, since_id=None, min_id=None):
        if kind not in timeline_paths:
            raise InvalidArgument(f"{kind}: unknown timeline")
        page = client.api.get_timeline(kind, max_id=max_id, since_id=since_id, min_id=min_id)
        return self.page(
            client,
            kind=kind,
            statuses=page.items,
            next_max_id=page.max_id,
            prev_min_id=page.min_id,
        )

    def thread(self, client, id, reply=False):
        """The status with this ID along with its ancestors and descendants.

        If reply is true also returns text to start a reply with,
        mentioning the author and everyone they mentioned.
        """
        status = client.api.get_status(id)
        context = client.api.get_status_context(id)
        reply_text = ""
        if reply:
            accts = [status["account"]["acct"]] + [m["acct"] for m in status.get("mentions", [])]
            reply_text = "".join(f"@{acct} " for acct in dict.fromkeys(accts))
        return self.page(
            client,
            status=status,
            ancestors=context.get("ancestors", []),
            descendants=context.get("descendants", []),
            reply=reply,
            reply_text=reply_text,
        )

    def notifications(self, client, max_id=None, min_id=None):
        page = client.api.get_notifications(max_id=max_id, min_id=min_id)
        return self.page(
            client,
            notifications=page.items,
            next_max_id=page.max_id,
            prev_min_id=page.min_id,
        )

    def user(self, client, id, max_id=None, min_id=None):
        account = client.api.get_account(id)
        page = client.api.get_account_statuses(id, max_id=max_id, min_id=min_id)
        return self.page(
            client,
            account=account,
            statuses=page.items,
            next_max_id=page.max_id,
            prev_min_id=page.min_id,
        )

    def liked_by(self, client, id):
        return self.page(client, id=id, accounts=client.api.get_favourited_by(id))

    def retweeted_by(self, client, id):
        return self.page(client, id=id, accounts=client.api.get_reblogged_by(id))

    def following(self, client, id, max_id=None, min_id=None):
        page = client.api.get_following(id, max_id=max_id, min_id=min_id)
        return self.page(client, id=id, accounts=page.items, next_max_id=page.max_id, prev_min_id=page.min_id)

    def followers(self, client, id, max_id=None, min_id=None):
        page = client.api.get_followers(id, max_id=max_id, min_id=min_id)
        return self.page(client, id=id, accounts=page.items, next_max_id=page.max_id, prev_min_id=page.min_id)

    def search(self, client, q, type=None, offset=0):
        results = client.api.search(q, type=type or None, offset=offset) if q else {}
        return self.page(
            client,
            q=q,
            type=type,
            offset=offset,
            accounts=results.get("accounts", []),
            statuses=results.get("statuses", []),
            hashtags=results.get("hashtags", []),
        )

    def user_settings(self, client):
        return self.page(client)

    def like(self, client, id):
        """Favourite this status and return its new favourites count."""
        status = client.api.favourite(id)
        return status.get("favourites_count", 0)

    def unlike(self, client, id):
        status = client.api.unfavourite(id)
        return status.get("favourites_count", 0)

    def retweet(self, client, id):
        """Reblog this status and return its new reblogs count."""
        status = client.api.reblog(id)
        # Mastodon returns a new status wrapping the one reblogged.
        return (status.get("reblog") or status).get("reblogs_count", 0)

    def unretweet(self, client, id):
        status = client.api.unreblog(id)
        return status.get("reblogs_count", 0)

    def post(self, client, content, reply_to_id=None, visibility=None, is_nsfw=False, files=None):
        """Create a status, uploading attachments first.

        Arguments --
            files -- uploaded files (Django UploadedFile instances); only the first four are used

        Returns --
            ID of the new status
        """
        if visibility and visibility not in visibilities:
            visibility = None
        media_ids = []
        for f in (files or [])[:self.max_media]:
            media = client.api.upload_media(f.name, f, f.content_type)
            media_ids.append(media["id"])
        status = client.api.post_status(
            content,
            in_reply_to_id=reply_to_id or None,
            visibility=visibility,
            sensitive=is_nsfw,
            media_ids=media_ids,
        )
        return status["id"]

    def follow(self, client, id):
        client.api.follow(id)

    def unfollow(self, client, id):
        client.api.unfollow(id)

    def save_settings(self, client, user_settings):
        session = client.session
        session.user_settings = user_settings
        self.sessions.add_session(session)
        return user_settings

