"""Per-channel actions run for each incoming Discord message."""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

import discord

from . import config, logs, tracks
from .config import ChannelType
from .errors import ConfigError

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    REPLY = "Reply"
    ADD_TRACKS = "AddTracksToPlaylist"

    def __str__(self):
        return self.value


DEFAULT_CHANNEL_ACTIONS: Dict[str, List[ActionKind]] = {
    ChannelType.DEBUG.value: [ActionKind.REPLY],
    ChannelType.SONGS.value: [ActionKind.ADD_TRACKS],
}


class ChannelActions(Mapping):
    """Channel id -> ordered action kinds. Repeated kinds run repeatedly."""

    def __init__(self):
        self._actions: Dict[str, List[ActionKind]] = {}
        self._frozen = False

    def add(self, channel_id: str, kind: ActionKind) -> None:
        if self._frozen:
            raise RuntimeError("channel actions are frozen")
        self._actions.setdefault(str(channel_id), []).append(ActionKind(kind))

    def freeze(self) -> "ChannelActions":
        self._frozen = True
        return self

    def __getitem__(self, channel_id) -> Sequence[ActionKind]:
        return tuple(self._actions[str(channel_id)])

    def __iter__(self) -> Iterator[str]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)


def build_channel_actions(
    channel_ids: Mapping[str, str],
    actions_by_type: Optional[Mapping[str, Sequence[ActionKind]]] = None,
) -> ChannelActions:
    """Resolve channel types to ids and register their actions.

    Unknown channel types are logged and skipped, as are types whose id is
    not configured.
    """
    if actions_by_type is None:
        actions_by_type = DEFAULT_CHANNEL_ACTIONS
    known = {channel_type.value for channel_type in ChannelType}
    registry = ChannelActions()
    for channel_type, channel_id in channel_ids.items():
        channel_type = str(channel_type)
        log = logs.get_logger(__name__, **{logs.CHANNEL_TYPE: channel_type})
        if channel_type not in known:
            log.warning("Unknown channel type, skipping")
            continue
        if not channel_id:
            log.debug("No channel id configured")
            continue
        for kind in actions_by_type.get(channel_type, ()):
            registry.add(channel_id, kind)
            log.with_fields(**{logs.CHANNEL_ID: channel_id, logs.ACTION: str(kind)}).info(
                "Registered action"
            )
    return registry.freeze()


@dataclass(frozen=True)
class ActionContext:
    """The message being handled plus a logger carrying its fields."""

    message: Any
    log: logs.FieldLogger

    @property
    def content(self) -> str:
        return self.message.content


class Action:
    kind: ActionKind

    def __init__(self, ctx: ActionContext):
        self.ctx = ctx

    def __str__(self):
        return str(self.kind)

    async def execute(self) -> None:
        raise NotImplementedError


class ReplyAction(Action):
    """Reply to the message, echoing it unless a body is given."""

    kind = ActionKind.REPLY

    def __init__(self, ctx: ActionContext, body: Optional[str] = None):
        super().__init__(ctx)
        self.body = body

    def reply_text(self) -> str:
        if self.body is not None:
            return self.body
        return f"Echo: {self.ctx.content}"

    async def execute(self) -> None:
        reply = self.reply_text()
        log = self.ctx.log.with_fields(**{logs.REPLY: reply})
        try:
            await self.ctx.message.reply(reply)
        except discord.DiscordException:
            log.exception("Failed to send reply")
            return
        log.info("Sent reply")


class AddTracksAction(Action):
    """Push the Spotify track links of the message into the shared playlist."""

    kind = ActionKind.ADD_TRACKS

    def __init__(self, ctx: ActionContext, music, playlist_id: Callable[[], str] = config.playlist_id):
        super().__init__(ctx)
        self.music = music
        self.playlist_id = playlist_id

    async def execute(self) -> None:
        if self.music is None:
            raise ConfigError("spotify client is not configured")
        log = self.ctx.log
        urls, found = tracks.extract_track_urls(self.ctx.content)
        if not found:
            log.info("No Spotify tracks in message")
            return
        log = log.with_fields(**{logs.COUNT: len(urls), logs.TRACK_URLS: urls})
        log.info("Found Spotify tracks")

        playlist_id = self.playlist_id()
        await asyncio.to_thread(self.music.add_tracks_to_playlist, playlist_id, urls, log)


def create_action(kind: ActionKind, ctx: ActionContext, music=None) -> Action:
    kind = ActionKind(kind)
    if kind is ActionKind.REPLY:
        return ReplyAction(ctx)
    return AddTracksAction(ctx, music)
