"""Command handlers for the profile picker.

Each handler works on a (ProfileStore, IdentitySynchronizer) pair and returns
a UIUpdate describing what the front end should do next. The handlers never
render anything themselves, so the same logic drives the interactive picker,
the one-shot CLI commands, and the tests.
"""

import logging
from dataclasses import dataclass

from gitid.identity_sync import ActiveState, IdentitySynchronizer, StatusSummary, is_current
from gitid.interaction_handler import (
    ACTION_ADD,
    ACTION_DELETE,
    ACTION_REFRESH,
    ACTION_SWITCH,
    InteractionHandler,
    ProfileRow,
)
from gitid.profile_store import Profile, ProfileStore

logger = logging.getLogger(__name__)

PICKER_TITLE = "Select a profile to switch to"
CURRENT_MARKER = " (current)"

LEVEL_INFO = "info"
LEVEL_WARNING = "warning"


@dataclass(frozen=True)
class UIUpdate:
    """Result of a handler.

    Attributes:
        message: Notice to show, or None for a silent outcome
        level: "info" or "warning"
        rows: Rebuilt picker rows when the picker stays open
        close: Whether the picker should be dismissed
        changed: Whether git/npm or the store were modified
        status: Freshly queried status line to redraw, if any
    """

    message: str | None = None
    level: str = LEVEL_INFO
    rows: list[ProfileRow] | None = None
    close: bool = True
    changed: bool = False
    status: StatusSummary | None = None


def describe(profile: Profile, current: bool) -> str:
    """Row description: email, registry if any, current marker."""
    text = profile.email
    if profile.registry:
        text += f" | {profile.registry}"
    if current:
        text += CURRENT_MARKER
    return text


def switched_message(name: str, email: str, registry: str | None) -> str:
    message = f"Switched to: {name} <{email}>"
    if registry:
        message += f" | registry: {registry}"
    return message


class ProfileActions:
    """Switch, delete, add and refresh handlers."""

    def __init__(self, store: ProfileStore, sync: IdentitySynchronizer):
        self.store = store
        self.sync = sync

    def build_rows(self, active: ActiveState) -> list[ProfileRow]:
        rows = []
        for profile in self.store.profiles:
            current = is_current(profile, active)
            actions = (ACTION_SWITCH,) if current else (ACTION_SWITCH, ACTION_DELETE)
            rows.append(
                ProfileRow(
                    profile=profile,
                    label=profile.name,
                    description=describe(profile, current),
                    is_current=current,
                    actions=actions,
                )
            )
        return rows

    def switch(self, profile: Profile) -> UIUpdate:
        """Apply a stored profile exactly as stored, registry included."""
        self.sync.apply(profile.name, profile.email, profile.registry)
        return UIUpdate(
            message=switched_message(profile.name, profile.email, profile.registry),
            changed=True,
        )

    def delete(self, profile: Profile, active: ActiveState) -> UIUpdate:
        """Remove a non-current profile and rebuild rows against the same active state."""
        if is_current(profile, active):
            logger.debug(f"Refusing to delete current profile {profile.name} <{profile.email}>")
            return UIUpdate(rows=self.build_rows(active), close=False)

        if not self.store.exists(profile.name, profile.email):
            return UIUpdate(rows=self.build_rows(active), close=False)

        self.store.remove(profile.name, profile.email)
        return UIUpdate(
            message=f"Deleted: {profile.name} <{profile.email}>",
            rows=self.build_rows(active),
            close=False,
            changed=True,
        )

    def add(self, name: str | None, email: str | None, registry: str | None = None) -> UIUpdate:
        """Apply a new identity unless it is incomplete or already stored."""
        if not name or not email:
            return UIUpdate()

        if self.store.exists(name, email):
            return UIUpdate(
                message=f"Profile already exists: {name} <{email}>",
                level=LEVEL_WARNING,
            )

        registry = registry or None
        self.sync.apply(name, email, registry)
        return UIUpdate(message=switched_message(name, email, registry), changed=True)

    def add_flow(
        self,
        handler: InteractionHandler,
        name: str | None = None,
        email: str | None = None,
        registry: str | None = None,
    ) -> UIUpdate:
        """Prompt for whatever of name, email and registry is missing, then add.

        An empty name or email ends the flow with no side effects.
        """
        name = name or handler.prompt_text("New git user name", placeholder="user.name")
        if not name:
            return UIUpdate()
        email = email or handler.prompt_text("New git email", placeholder="user.email")
        if not email:
            return UIUpdate()
        if registry is None:
            registry = handler.prompt_text(
                "npm registry name or URL (optional)",
                placeholder="e.g. taobao or https://registry.npmmirror.com/",
            )

        update = self.add(name, email, registry)
        notify(handler, update)
        return update

    def refresh(self) -> UIUpdate:
        """Re-query git and npm and return the new status line."""
        active = self.sync.query_active()
        return UIUpdate(
            message="Git identity and npm registry refreshed",
            status=self.sync.status_summary(active),
        )

    def manage(self, handler: InteractionHandler) -> UIUpdate:
        """Run the picker until the user switches, adds, refreshes or dismisses.

        Returns:
            The last UIUpdate (changed=True if anything was modified)
        """
        active = self.sync.query_active()
        rows = self.build_rows(active)
        changed = False

        while True:
            selection = handler.pick(PICKER_TITLE, rows)
            if selection is None:
                return UIUpdate(changed=changed)

            if selection.action == ACTION_SWITCH and selection.index is not None:
                update = self.switch(rows[selection.index].profile)
            elif selection.action == ACTION_DELETE and selection.index is not None:
                update = self.delete(rows[selection.index].profile, active)
            elif selection.action == ACTION_ADD:
                update = self.add_flow(handler)
                return UIUpdate(changed=changed or update.changed)
            elif selection.action == ACTION_REFRESH:
                update = self.refresh()
            else:
                logger.debug(f"Ignoring unknown picker selection: {selection}")
                continue

            notify(handler, update)
            changed = changed or update.changed
            if update.close:
                return UIUpdate(changed=changed, status=update.status)
            if update.rows is not None:
                rows = update.rows


def notify(handler: InteractionHandler, update: UIUpdate) -> None:
    if not update.message:
        return
    if update.level == LEVEL_WARNING:
        handler.show_warning(update.message)
    else:
        handler.show_info(update.message)


__all__ = [
    "CURRENT_MARKER",
    "LEVEL_INFO",
    "LEVEL_WARNING",
    "PICKER_TITLE",
    "ProfileActions",
    "UIUpdate",
    "describe",
    "notify",
]
