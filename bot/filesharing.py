"""
bot/filesharing.py
Uploads code/text attachments posted in help threads to a secret GitHub gist
and replies with a link, which reads far better on mobile than raw files.
"""

from __future__ import annotations
import asyncio
import logging
import os
from typing import Optional

import aiohttp
import discord
from discord.ext import commands

from bot.help_threads import is_help_thread
from monitor import strings

log = logging.getLogger("helpbot.filesharing")

GIST_API_KEY = os.getenv("GIST_API_KEY", "")
SHARE_API    = "https://api.github.com/gists"
EXTENSION_FILTER = frozenset({
    "txt", "java", "gradle", "xml", "kt", "json", "fxml", "css", "c", "h", "cpp", "py", "yml",
})


class GistUploadError(RuntimeError):
    pass


def file_extension(filename: str) -> Optional[str]:
    if "." not in filename:
        return None
    return filename.rsplit(".", 1)[1].lower()


def is_attachment_relevant(filename: str) -> bool:
    return file_extension(filename) in EXTENSION_FILTER


def gist_file_name(filename: str) -> str:
    """Rename so GitHub highlights the file sensibly: txt → java, fxml → xml."""
    extension = file_extension(filename)
    if extension is None or extension == "txt":
        extension = "java"
    elif extension == "fxml":
        extension = "xml"
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    return f"{stem}.{extension}"


def build_gist_request(author_name: str, files: dict[str, str]) -> dict:
    return {
        "description": author_name,
        "public": False,
        "files": {name: {"content": content} for name, content in files.items()},
    }


async def upload_to_gist(session: aiohttp.ClientSession, api_key: str, payload: dict) -> str:
    headers = {
        "Accept": "application/json",
        "Authorization": f"token {api_key}",
    }
    async with session.post(SHARE_API, headers=headers, json=payload) as response:
        body = await response.text()
        if response.status < 200 or response.status >= 300:
            raise GistUploadError(f"Gist API unexpected response {response.status}: {body[:300]}")
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            raise GistUploadError("Unable to parse the gist API response") from e
    url = data.get("html_url") if isinstance(data, dict) else None
    if not url:
        raise GistUploadError("Gist API response has no html_url")
    return url


class FileSharing(commands.Cog):
    def __init__(self, bot: commands.Bot, api_key: str = GIST_API_KEY):
        self.bot = bot
        self.api_key = api_key
        self._tasks: set[asyncio.Task] = set()

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.webhook_id is not None:
            return
        if not is_help_thread(message.channel):
            return
        attachments = [a for a in message.attachments if is_attachment_relevant(a.filename)]
        if not attachments:
            return

        task = asyncio.create_task(self._process(message, attachments))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, message: discord.Message, attachments: list[discord.Attachment]) -> None:
        try:
            contents = await asyncio.gather(*(a.read() for a in attachments))
            files = {
                gist_file_name(a.filename): data.decode("utf-8", errors="replace")
                for a, data in zip(attachments, contents)
            }
            payload = build_gist_request(message.author.name, files)
            timeout = aiohttp.ClientTimeout(total=30)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                url = await upload_to_gist(session, self.api_key, payload)

            view = discord.ui.View()
            view.add_item(discord.ui.Button(label=strings.GIST_BUTTON_LABEL, url=url))
            await message.reply(strings.GIST_REPLY, view=view)
        except Exception:
            log.exception(
                "Unknown error while processing attachments. Channel: %s, Author: %s, Message ID: %s.",
                message.channel.id, message.author.id, message.id,
            )


async def setup(bot: commands.Bot) -> None:
    if not GIST_API_KEY:
        log.info("GIST_API_KEY not set, attachment sharing disabled.")
        return
    await bot.add_cog(FileSharing(bot))
