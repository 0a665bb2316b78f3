"""Per-session preferences for how pages are shown."""

from dataclasses import asdict, dataclass, fields


@dataclass
class UserSettings:
    default_visibility: str = "public"
    copy_scope: bool = True
    thread_in_new_tab: bool = False
    mask_nsfw: bool = True

    @classmethod
    def from_dict(cls, data):
        """Create instance from stored JSON, ignoring keys we do not know about."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in names})

    def as_dict(self):
        return asdict(self)
