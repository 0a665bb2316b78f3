"""Forms for signing in, posting and settings."""

from django import forms

from .preferences import UserSettings
from .protocol import visibilities

VISIBILITY_CHOICES = [(v, v.capitalize()) for v in visibilities]


class SigninForm(forms.Form):
    instance = forms.CharField(
        max_length=255,
        help_text="Domain name of your instance, like mastodon.social",
    )


class PostForm(forms.Form):
    """Form for creating a status.

    Attachments are taken from `request.FILES` separately
    since there may be more than one.
    """

    content = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'cols': 80, 'rows': 5}),
    )
    reply_to_id = forms.CharField(
        required=False,
        widget=forms.HiddenInput,
    )
    visibility = forms.ChoiceField(
        required=False,
        choices=VISIBILITY_CHOICES,
    )
    is_nsfw = forms.BooleanField(required=False)


class SettingsForm(forms.Form):
    visibility = forms.ChoiceField(
        choices=VISIBILITY_CHOICES,
        initial="public",
    )
    copy_scope = forms.BooleanField(required=False)
    thread_in_new_tab = forms.BooleanField(required=False)
    mask_nsfw = forms.BooleanField(required=False)

    @classmethod
    def from_user_settings(cls, user_settings):
        """Unbound form showing these settings."""
        return cls(initial={
            'visibility': user_settings.default_visibility,
            'copy_scope': user_settings.copy_scope,
            'thread_in_new_tab': user_settings.thread_in_new_tab,
            'mask_nsfw': user_settings.mask_nsfw,
        })

    def to_user_settings(self):
        return UserSettings(
            default_visibility=self.cleaned_data['visibility'],
            copy_scope=self.cleaned_data['copy_scope'],
            thread_in_new_tab=self.cleaned_data['thread_in_new_tab'],
            mask_nsfw=self.cleaned_data['mask_nsfw'],
        )
