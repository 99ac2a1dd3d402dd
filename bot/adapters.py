"""discord.py implementations of the whitelist collaborator ports."""
from __future__ import annotations

import logging

import discord

from config.settings import settings
from storage.community_config import CommunityConfigStore
from whitelist.errors import (
    NotificationFailed,
    ReviewQueueNotConfigured,
    RoleUpdateFailed,
    SurfaceUnavailable,
    WhitelistError,
)
from whitelist.models import ApplicationStatus, ConversationRef, DecisionAction, MessageRef
from whitelist.review import ReviewCard

from .routing import NOTE_INPUT_ID, Route, build_custom_id

logger = logging.getLogger(__name__)

DM_INSTRUCTION = (
    "I couldn't open a private thread or send you a direct message. "
    "Enable **direct messages from server members** in this server's privacy settings, "
    "then press **Continue whitelist**."
)
THREAD_INSTRUCTION = (
    "I lost access to your whitelist thread. Press **Continue whitelist** to reopen it."
)

ARCHIVE_DURATIONS = (60, 1440, 4320, 10080)

STATUS_COLOURS = {
    ApplicationStatus.SUBMITTED: discord.Colour.blurple(),
    ApplicationStatus.APPROVED: discord.Colour.green(),
    ApplicationStatus.REJECTED: discord.Colour.red(),
    ApplicationStatus.ADJUST: discord.Colour.orange(),
    ApplicationStatus.EXPIRED: discord.Colour.dark_grey(),
}

BUTTON_STYLES = {
    DecisionAction.APPROVE: discord.ButtonStyle.success,
    DecisionAction.REJECT: discord.ButtonStyle.danger,
    DecisionAction.ADJUST: discord.ButtonStyle.secondary,
}


class _ThreadNotPossible(Exception):
    pass


async def _resolve_channel(client: discord.Client, channel_id: str) -> discord.abc.Snowflake:
    channel = client.get_channel(int(channel_id))
    if channel is None:
        channel = await client.fetch_channel(int(channel_id))
    return channel


def build_embed(card: ReviewCard) -> discord.Embed:
    embed = discord.Embed(title=card.title, colour=STATUS_COLOURS.get(card.status, discord.Colour.default()))
    for item in card.fields:
        embed.add_field(name=item.name, value=item.value, inline=item.inline)
    if card.footer:
        embed.set_footer(text=card.footer)
    return embed


def build_decision_view(card: ReviewCard) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for control in card.controls:
        view.add_item(
            discord.ui.Button(
                label=control.label,
                style=BUTTON_STYLES[control.action],
                custom_id=build_custom_id(Route.DECISION, control.action.value, card.application_id),
                disabled=control.disabled,
            )
        )
    return view


def build_panel_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label="Start whitelist",
            style=discord.ButtonStyle.primary,
            custom_id=build_custom_id(Route.START),
        )
    )
    view.add_item(
        discord.ui.Button(
            label="Continue whitelist",
            style=discord.ButtonStyle.secondary,
            custom_id=build_custom_id(Route.RESUME),
        )
    )
    return view


class NoteModal(discord.ui.Modal):
    """Collects the reviewer note for Reject and Adjust.

    Submissions are routed by custom id in ``WhitelistBot.on_interaction``.
    """

    def __init__(self, action: DecisionAction, application_id: str) -> None:
        title = "Rejection reason" if action == DecisionAction.REJECT else "Adjustment request"
        super().__init__(title=title, custom_id=build_custom_id(Route.NOTE, action.value, application_id))
        self.note = discord.ui.TextInput(
            label="Reason (will be recorded)" if action == DecisionAction.REJECT else "What should the applicant change?",
            style=discord.TextStyle.paragraph,
            required=True,
            max_length=settings.NOTE_MAX_LENGTH,
            custom_id=NOTE_INPUT_ID,
        )
        self.add_item(self.note)


class DiscordSurfaces:
    """Private thread under the community's parent channel, DM as fallback."""

    def __init__(self, client: discord.Client, config_store: CommunityConfigStore) -> None:
        self._client = client
        self._config = config_store

    async def open(self, community_id: str, applicant_id: str, application_id: str) -> ConversationRef:
        guild = self._client.get_guild(int(community_id))
        parent_id = self._config.get(community_id).parent_channel_id
        if guild is not None and parent_id:
            try:
                return await self._open_thread(guild, int(parent_id), int(applicant_id), application_id)
            except (_ThreadNotPossible, discord.HTTPException) as exc:
                logger.info("thread for %s not possible, falling back to DM: %s", application_id, exc)
        return await self._open_dm(int(applicant_id))

    async def _open_thread(
        self, guild: discord.Guild, parent_id: int, applicant_id: int, application_id: str
    ) -> ConversationRef:
        parent = guild.get_channel(parent_id) or await guild.fetch_channel(parent_id)
        if not isinstance(parent, discord.TextChannel):
            raise _ThreadNotPossible(f"parent {parent_id} is not a text channel")
        perms = parent.permissions_for(guild.me)
        if not (perms.create_private_threads and perms.send_messages_in_threads):
            raise _ThreadNotPossible("missing thread permissions")
        member = guild.get_member(applicant_id) or await guild.fetch_member(applicant_id)
        duration = settings.THREAD_AUTO_ARCHIVE_MINUTES
        thread = await parent.create_thread(
            name=f"wl-{member.name}-{application_id[:6]}",
            type=discord.ChannelType.private_thread,
            invitable=False,
            auto_archive_duration=duration if duration in ARCHIVE_DURATIONS else 1440,
            reason="Whitelist interview",
        )
        await thread.add_user(member)
        return ConversationRef(kind="thread", channel_id=str(thread.id), parent_id=str(parent.id))

    async def _open_dm(self, applicant_id: int) -> ConversationRef:
        try:
            user = self._client.get_user(applicant_id) or await self._client.fetch_user(applicant_id)
            channel = user.dm_channel or await user.create_dm()
        except discord.HTTPException as exc:
            raise SurfaceUnavailable(f"direct message to {applicant_id} unavailable: {exc}", DM_INSTRUCTION) from exc
        return ConversationRef(kind="dm", channel_id=str(channel.id))

    async def send(self, ref: ConversationRef, text: str) -> None:
        instruction = DM_INSTRUCTION if ref.kind == "dm" else THREAD_INSTRUCTION
        try:
            channel = await _resolve_channel(self._client, ref.channel_id)
            await channel.send(text)  # type: ignore[union-attr]
        except discord.HTTPException as exc:
            raise SurfaceUnavailable(f"cannot write to {ref.kind} {ref.channel_id}: {exc}", instruction) from exc

    async def close(self, ref: ConversationRef, reason: str) -> None:
        if ref.kind != "thread":
            return
        try:
            channel = await _resolve_channel(self._client, ref.channel_id)
            if isinstance(channel, discord.Thread):
                await channel.edit(locked=True, archived=True, reason=reason)
        except discord.HTTPException as exc:
            logger.info("thread %s not closed: %s", ref.channel_id, exc)


class DiscordMessenger:
    """Staff queue cards rendered as an embed with decision buttons."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _text_channel(self, channel_id: str) -> discord.TextChannel:
        try:
            channel = await _resolve_channel(self._client, channel_id)
        except discord.HTTPException as exc:
            raise ReviewQueueNotConfigured("unknown", detail=f"channel {channel_id} unreachable: {exc}") from exc
        if not isinstance(channel, discord.TextChannel):
            raise ReviewQueueNotConfigured(
                str(getattr(getattr(channel, "guild", None), "id", "unknown")),
                detail=f"channel {channel_id} is not a text channel",
            )
        return channel

    async def post_card(self, channel_id: str, card: ReviewCard) -> MessageRef:
        channel = await self._text_channel(channel_id)
        try:
            message = await channel.send(
                content="New whitelist application for review:",
                embed=build_embed(card),
                view=build_decision_view(card),
            )
        except discord.HTTPException as exc:
            raise ReviewQueueNotConfigured(str(channel.guild.id), detail=f"cannot post to {channel_id}: {exc}") from exc
        return MessageRef(channel_id=str(channel.id), message_id=str(message.id))

    async def update_card(self, ref: MessageRef, card: ReviewCard) -> None:
        try:
            channel = await _resolve_channel(self._client, ref.channel_id)
            message = await channel.fetch_message(int(ref.message_id))  # type: ignore[union-attr]
            await message.edit(embed=build_embed(card), view=build_decision_view(card))
        except discord.HTTPException as exc:
            raise WhitelistError(f"card {ref.message_id} not updated: {exc}") from exc

    async def post_text(self, channel_id: str, text: str) -> None:
        try:
            channel = await _resolve_channel(self._client, channel_id)
            await channel.send(text)  # type: ignore[union-attr]
        except discord.HTTPException as exc:
            raise WhitelistError(f"cannot post to {channel_id}: {exc}") from exc


class DiscordRoles:
    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _member(self, community_id: str, member_id: str) -> discord.Member:
        guild = self._client.get_guild(int(community_id))
        if guild is None:
            raise RoleUpdateFailed(f"guild {community_id} not available")
        try:
            return guild.get_member(int(member_id)) or await guild.fetch_member(int(member_id))
        except discord.HTTPException as exc:
            raise RoleUpdateFailed(f"member {member_id} not found: {exc}") from exc

    async def grant(self, community_id: str, member_id: str, role_id: str) -> None:
        member = await self._member(community_id, member_id)
        try:
            await member.add_roles(discord.Object(id=int(role_id)), reason="Whitelist")
        except discord.HTTPException as exc:
            raise RoleUpdateFailed(f"grant {role_id}: {exc}") from exc

    async def revoke(self, community_id: str, member_id: str, role_id: str) -> None:
        member = await self._member(community_id, member_id)
        if not any(role.id == int(role_id) for role in member.roles):
            return
        try:
            await member.remove_roles(discord.Object(id=int(role_id)), reason="Whitelist")
        except discord.HTTPException as exc:
            raise RoleUpdateFailed(f"revoke {role_id}: {exc}") from exc


class DiscordNotifier:
    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def notify(self, applicant_id: str, text: str) -> None:
        try:
            user = self._client.get_user(int(applicant_id)) or await self._client.fetch_user(int(applicant_id))
            await user.send(text)
        except discord.HTTPException as exc:
            raise NotificationFailed(f"direct message to {applicant_id} failed: {exc}") from exc


__all__ = [
    "DM_INSTRUCTION",
    "DiscordMessenger",
    "DiscordNotifier",
    "DiscordRoles",
    "DiscordSurfaces",
    "NoteModal",
    "build_decision_view",
    "build_embed",
    "build_panel_view",
]
