"""Discord client wiring platform events to the whitelist flow."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional

import discord
from discord import app_commands
from discord.ext import tasks

from config.settings import settings
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore
from storage.migrate import migrate
from whitelist import messages
from whitelist.catalog import DEFAULT_CATALOG, Catalog
from whitelist.decisions import DecisionResult, DecisionWorkflow
from whitelist.engine import InboundMessage, InterviewEngine, StartResult
from whitelist.expiry import sweep_idle
from whitelist.models import DecisionAction, Reviewer
from whitelist.ports import ConversationSurfaces
from whitelist.review import ReviewDispatcher

from .adapters import (
    DiscordMessenger,
    DiscordNotifier,
    DiscordRoles,
    DiscordSurfaces,
    NoteModal,
    build_panel_view,
)
from .routing import Route, modal_value, parse_custom_id

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[None]]

PANEL_TEXT = (
    "**Whitelist**\n\n"
    "Press **Start whitelist** to begin the interview. Answer carefully.\n"
    "A SteamID64 will be required."
)

DECISION_REPLIES = {
    "already_decided": "This application was already decided.",
    "not_reviewable": "This application is no longer awaiting review.",
    "not_found": "Application not found.",
    "note_required": "A note is required for this decision.",
}


def _decision_reply(result: DecisionResult) -> str:
    if result.kind != "decided" or result.application is None:
        return DECISION_REPLIES.get(result.kind, "Nothing to do.")
    text = f"Recorded: **{result.application.status.value}**."
    if not result.notified:
        text += " The applicant could not be notified by direct message."
    if result.role_errors:
        text += " Some role changes failed; check the bot's role permissions."
    return text


def _start_reply(result: StartResult) -> str:
    if not result.ok:
        return result.instruction or messages.GENERIC_ERROR
    ref = result.conversation
    if ref is not None and ref.kind == "thread":
        return messages.started(f"<#{ref.channel_id}>")
    return messages.started("your direct messages")


async def sweep_once(store: ApplicationStore, surfaces: ConversationSurfaces) -> int:
    """Run one idle-expiry pass; failures are logged, never raised."""

    try:
        expired = await sweep_idle(store, surfaces)
    except Exception:
        logger.exception("idle sweep failed")
        return 0
    if expired:
        logger.info("expired %d idle applications", len(expired))
    return len(expired)


class WhitelistBot(discord.Client):
    def __init__(
        self,
        *,
        store: Optional[ApplicationStore] = None,
        config_store: Optional[CommunityConfigStore] = None,
        catalog: Catalog = DEFAULT_CATALOG,
    ) -> None:
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)

        self.store = store or ApplicationStore()
        self.config_store = config_store or CommunityConfigStore()
        self.surfaces = DiscordSurfaces(self, self.config_store)
        messenger = DiscordMessenger(self)
        roles = DiscordRoles(self)
        self.dispatcher = ReviewDispatcher(self.store, self.config_store, messenger, catalog)
        self.engine = InterviewEngine(
            self.store,
            self.surfaces,
            self.dispatcher,
            config_store=self.config_store,
            roles=roles,
            catalog=catalog,
        )
        self.decisions = DecisionWorkflow(
            self.store,
            self.config_store,
            self.dispatcher,
            messenger,
            roles,
            DiscordNotifier(self),
            surfaces=self.surfaces,
        )
        self._handlers: Dict[Route, Handler] = {
            Route.START: self._on_start,
            Route.RESUME: self._on_resume,
            Route.DECISION: self._on_decision,
            Route.NOTE: self._on_note,
        }
        self._sweeper = tasks.loop(minutes=settings.EXPIRY_SWEEP_MINUTES)(self._sweep)

    async def setup_hook(self) -> None:
        migrate(self.store.path)
        self.tree.add_command(
            app_commands.Command(
                name="whitelist-panel",
                description="Publish the whitelist panel in this channel",
                callback=self._publish_panel,
            )
        )
        if settings.DISCORD_GUILD_ID:
            guild = discord.Object(id=int(settings.DISCORD_GUILD_ID))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()
        self._sweeper.start()

    async def close(self) -> None:
        self._sweeper.cancel()
        await super().close()

    async def on_ready(self) -> None:
        logger.info("ready as %s", self.user)

    # ------------------------------------------------------------------
    # Event boundary
    # ------------------------------------------------------------------
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type not in (discord.InteractionType.component, discord.InteractionType.modal_submit):
            return
        match = parse_custom_id((interaction.data or {}).get("custom_id"))
        if match is None:
            return
        try:
            await self._handlers[match.route](interaction, *match.args)
        except Exception:
            logger.exception("interaction %s failed", (interaction.data or {}).get("custom_id"))
            await self._apologize(interaction)

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        if not isinstance(message.channel, (discord.Thread, discord.DMChannel)):
            return
        inbound = InboundMessage(
            applicant_id=str(message.author.id),
            conversation_id=str(message.channel.id),
            text=message.content,
            community_id=str(message.guild.id) if message.guild else None,
        )
        try:
            await self.engine.handle_message(inbound)
        except Exception:
            logger.exception("message %s in %s failed", message.id, message.channel.id)
            try:
                await message.channel.send(messages.GENERIC_ERROR)
            except discord.HTTPException as exc:
                logger.warning("apology not delivered: %s", exc)

    async def _apologize(self, interaction: discord.Interaction) -> None:
        try:
            if interaction.response.is_done():
                await interaction.followup.send(messages.GENERIC_ERROR, ephemeral=True)
            else:
                await interaction.response.send_message(messages.GENERIC_ERROR, ephemeral=True)
        except discord.HTTPException as exc:
            logger.warning("apology not delivered: %s", exc)

    # ------------------------------------------------------------------
    # Route handlers
    # ------------------------------------------------------------------
    async def _on_start(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await interaction.response.send_message("Use this button inside the server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.engine.start(
            str(interaction.guild.id), str(interaction.user.id), interaction.user.display_name
        )
        await interaction.followup.send(_start_reply(result), ephemeral=True)

    async def _on_resume(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await interaction.response.send_message("Use this button inside the server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.engine.resume(str(interaction.guild.id), str(interaction.user.id))
        text = messages.NOTHING_TO_RESUME if result is None else _start_reply(result)
        await interaction.followup.send(text, ephemeral=True)

    def _is_staff(self, interaction: discord.Interaction) -> bool:
        member = interaction.user
        if interaction.guild is None or not isinstance(member, discord.Member):
            return False
        if member.guild_permissions.manage_guild:
            return True
        staff_role_id = self.config_store.get(str(interaction.guild.id)).staff_role_id
        return bool(staff_role_id) and any(role.id == int(staff_role_id) for role in member.roles)

    @staticmethod
    def _reviewer(interaction: discord.Interaction) -> Reviewer:
        return Reviewer(id=str(interaction.user.id), display_name=interaction.user.display_name)

    async def _on_decision(self, interaction: discord.Interaction, action: str, application_id: str) -> None:
        try:
            decision = DecisionAction(action)
        except ValueError:
            await interaction.response.send_message("Unknown action.", ephemeral=True)
            return
        if not self._is_staff(interaction):
            await interaction.response.send_message("Only staff can decide whitelist applications.", ephemeral=True)
            return
        if decision == DecisionAction.APPROVE:
            await interaction.response.defer(ephemeral=True, thinking=True)
            result = await self.decisions.act(decision, application_id, self._reviewer(interaction))
            await interaction.followup.send(_decision_reply(result), ephemeral=True)
            return
        result = await self.decisions.act(decision, application_id, self._reviewer(interaction))
        if result.kind == "needs_note":
            await interaction.response.send_modal(NoteModal(decision, application_id))
            return
        await interaction.response.send_message(_decision_reply(result), ephemeral=True)

    async def _on_note(self, interaction: discord.Interaction, action: str, application_id: str) -> None:
        try:
            decision = DecisionAction(action)
        except ValueError:
            await interaction.response.send_message("Unknown action.", ephemeral=True)
            return
        if decision == DecisionAction.APPROVE or not self._is_staff(interaction):
            await interaction.response.send_message("Only staff can decide whitelist applications.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.decisions.submit_note(
            decision, application_id, self._reviewer(interaction), modal_value(interaction.data)
        )
        await interaction.followup.send(_decision_reply(result), ephemeral=True)

    # ------------------------------------------------------------------
    # Panel and maintenance
    # ------------------------------------------------------------------
    async def _publish_panel(self, interaction: discord.Interaction) -> None:
        member = interaction.user
        if not isinstance(member, discord.Member) or not member.guild_permissions.manage_guild:
            await interaction.response.send_message("Only administrators can publish the panel.", ephemeral=True)
            return
        if not isinstance(interaction.channel, discord.TextChannel):
            await interaction.response.send_message("Use this command in a text channel.", ephemeral=True)
            return
        await interaction.channel.send(PANEL_TEXT, view=build_panel_view())
        await interaction.response.send_message("Whitelist panel published.", ephemeral=True)

    async def _sweep(self) -> None:
        await sweep_once(self.store, self.surfaces)


__all__ = ["WhitelistBot", "sweep_once"]
