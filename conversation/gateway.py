"""
Conversation Gateway — ask the user a question, get one reply back.

Implementations:
- ConsoleConversation: interactive rich console
- ScriptedConversation: replays canned replies and records every prompt (demos, tests)

The reply "exit" is the universal cancellation sentinel; gateways pass it
through untouched and the engine interprets it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Iterable, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich import box

from shared.errors import ConversationError

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_SHAPE = re.compile(r"(.*)", re.I | re.S)


class ConversationGateway(Protocol):
    async def ask(self, prompt: str, response_shape: re.Pattern[str] = DEFAULT_RESPONSE_SHAPE) -> str:
        ...


def extract_reply(raw: str, response_shape: re.Pattern[str]) -> str | None:
    """Apply the expected shape to a raw reply; group 1 wins when the shape has one."""
    match = response_shape.fullmatch(raw.strip())
    if match is None:
        return None
    value = match.group(1) if response_shape.groups else match.group(0)
    return (value or "").strip()


class ConsoleConversation:
    """Prompts on a rich console; input is read off the event loop."""

    def __init__(self, console: Console | None = None, input_prompt: str = "[bold cyan]You → [/]"):
        self.console = console or Console()
        self.input_prompt = input_prompt

    async def ask(self, prompt: str, response_shape: re.Pattern[str] = DEFAULT_RESPONSE_SHAPE) -> str:
        self.console.print(
            Panel(Text(prompt, style="bold yellow"), title="❓ Question", border_style="yellow", box=box.ROUNDED)
        )
        while True:
            try:
                raw = await asyncio.to_thread(self.console.input, self.input_prompt)
            except (EOFError, KeyboardInterrupt) as e:
                raise ConversationError("Conversation closed before a reply was received") from e
            reply = extract_reply(raw, response_shape)
            if reply is not None:
                return reply
            self.console.print("[dim]That reply doesn't look right; please try again.[/dim]")


class ScriptedConversation:
    """Replays a fixed list of replies in order and records the prompts it was shown."""

    def __init__(self, replies: Iterable[str] = ()):
        self._replies = list(replies)
        self.prompts: list[str] = []

    @property
    def remaining(self) -> int:
        return len(self._replies)

    async def ask(self, prompt: str, response_shape: re.Pattern[str] = DEFAULT_RESPONSE_SHAPE) -> str:
        self.prompts.append(prompt)
        logger.debug("Scripted prompt #%d: %s", len(self.prompts), prompt)
        while self._replies:
            reply = extract_reply(self._replies.pop(0), response_shape)
            if reply is not None:
                return reply
        raise ConversationError(f"No scripted reply left for prompt: {prompt!r}")
