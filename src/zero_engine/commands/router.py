from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_chain: Callable[[str], Awaitable[None]],
        on_session: Callable[[str], Awaitable[None]],
        on_constraints: Callable[[str], Awaitable[None]],
        on_attach: Callable[[str], Awaitable[None]],
        on_translate: Callable[[str], Awaitable[None]],
        on_export: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._handlers: list[tuple[str, Callable[[str], Awaitable[None]]]] = [
            ("/chain", on_chain),
            ("/session", on_session),
            ("/constraints", on_constraints),
            ("/attach", on_attach),
            ("/translate", on_translate),
            ("/export", on_export),
        ]
        self._on_help = on_help
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        if trimmed == "/help":
            await self._on_help()
            return True

        name = trimmed.split(maxsplit=1)[0]
        for command, handler in self._handlers:
            if name == command:
                await handler(trimmed)
                return True

        self._on_unknown(trimmed)
        return True
