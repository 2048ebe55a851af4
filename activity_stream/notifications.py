"""
Plain-text notification summaries for activity events.
"""
from dataclasses import dataclass
from typing import Optional

from .models.user import User
from .store import ActivityStore
from .users import display_name

NEW_AT_MENTION = "new_at_mention"


@dataclass
class Notification:
    text: str
    link: str


def mentions_link(store: ActivityStore, user: User) -> str:
    settings = store.settings
    return f"{settings.root_domain}/{settings.members_slug}/{user.user_nicename}/{settings.activity_slug}/mentions/"


def format_notifications(
    store: ActivityStore,
    action: str,
    item_id: int,
    secondary_item_id: Optional[int],
    total_items: int,
    user: User,
) -> Optional[Notification]:
    """
    Summarise ``total_items`` pending notifications of ``action`` for ``user``.

    For mentions, ``item_id`` is the activity and ``secondary_item_id`` the
    user who wrote it. Unknown actions give None.
    """
    notification = None
    if action == NEW_AT_MENTION:
        link = mentions_link(store, user)
        if int(total_items) > 1:
            text = f"You have {int(total_items)} new activity mentions"
        else:
            text = f"{display_name(store.db, secondary_item_id)} mentioned you in an activity update"
        notification = store.hooks.apply_filters(
            "mention_notification",
            Notification(text=text, link=link),
            total_items,
            item_id,
            secondary_item_id,
        )

    store.hooks.do_action("activity_format_notifications", action, item_id, secondary_item_id, total_items)
    return notification
