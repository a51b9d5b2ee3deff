from __future__ import annotations

import asyncio
import signal
from pathlib import Path

from loguru import logger

from zero_engine.commands.router import CommandRouter
from zero_engine.engine import ZeroEngine
from zero_engine.errors import TurnRejectedError, ZeroEngineError
from zero_engine.protocol import Stage
from zero_engine.rendering import Spinner, render_history, render_turn_footer
from zero_engine.services.session_controller import SessionController
from zero_engine.sessions.models import Attachment, Message
from zero_engine.sessions.transcript import transcript_filename


class ZeroConsole:
    """Terminal front end: routes local commands and streams protocol turns."""

    LINE_PREFIX = "assistant> "
    USER_PROMPT = "you> "

    def __init__(self, engine: ZeroEngine):
        self._engine = engine
        self._pending_attachment: Attachment | None = None
        self._session_controller = SessionController(line_prefix=self.LINE_PREFIX)
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_chain=self._handle_chain_command,
            on_session=self._handle_session_command,
            on_constraints=self._handle_constraints_command,
            on_attach=self._handle_attach_command,
            on_translate=self._handle_translate_command,
            on_export=self._handle_export_command,
            on_unknown=self._on_unknown_command,
        )

    @property
    def pending_attachment(self) -> Attachment | None:
        return self._pending_attachment

    def print_status(self) -> None:
        status = self._engine.status
        marker = "*" if status.active else "-"
        print(f"[{marker} {status.label}]")

    def print_active_session(self) -> None:
        session = self._engine.active_session
        if session is None:
            return
        print(f"Session: {session.name} (id={session.id})")
        for block in render_history(session.messages, user_prefix=self.USER_PROMPT, ai_prefix=self.LINE_PREFIX):
            print(block)
            print()

    async def run(self, user_input: str) -> None:
        if await self._command_router.try_handle(user_input):
            return
        await self._submit(user_input, chain_mode=False)

    async def _submit(self, text: str, *, chain_mode: bool) -> None:
        attachment = self._pending_attachment
        spinner = Spinner(prefix=self.LINE_PREFIX)
        printed = 0

        def on_update(message: Message) -> None:
            nonlocal printed
            spinner.stop()
            delta = message.content[printed:]
            printed = len(message.content)
            if delta:
                print(delta, end="", flush=True)

        loop = asyncio.get_running_loop()
        cancel_installed = True
        try:
            loop.add_signal_handler(signal.SIGINT, self._engine.cancel_turn)
        except (NotImplementedError, RuntimeError):
            cancel_installed = False

        spinner.start()
        try:
            final = await self._engine.submit(
                text,
                attachment=attachment,
                chain_mode=chain_mode,
                on_update=on_update,
            )
        except TurnRejectedError as ex:
            print(f"{self.LINE_PREFIX}{ex}")
            return
        finally:
            spinner.stop()
            if cancel_installed:
                loop.remove_signal_handler(signal.SIGINT)

        self._pending_attachment = None
        if printed == 0:
            print(final.content, end="")
        footer = render_turn_footer(final)
        print()
        if footer:
            print()
            print(footer)
        print()
        self.print_status()

    async def _on_help(self) -> None:
        p = self.LINE_PREFIX
        print(f"{p}Available commands:")
        print(f"{p}- /help")
        print(f"{p}- /chain <task>            run a task in Autonomous Chain mode")
        print(f"{p}- /session")
        print(f"{p}- /session list")
        print(f"{p}- /session new")
        print(f"{p}- /session resume <id>")
        print(f"{p}- /session name <title>")
        print(f"{p}- /session delete <id>")
        print(f"{p}- /constraints")
        print(f"{p}- /constraints add <rule>")
        print(f"{p}- /constraints remove <n>")
        print(f"{p}- /constraints clear")
        print(f"{p}- /attach <path> | /attach clear")
        print(f"{p}- /translate <language> [n]  translate the n-th latest AI message (default 1)")
        print(f"{p}- /export [path]")
        print(f"{p}Press Ctrl+C during a turn to cancel it. Type 'exit' to quit.")

    def _on_unknown_command(self, trimmed: str) -> None:
        print(f"{self.LINE_PREFIX}Unknown local command: {trimmed}")

    async def _handle_chain_command(self, command: str) -> None:
        task = command.partition("/chain")[2].strip()
        if not task:
            print(f"{self.LINE_PREFIX}Usage: /chain <task>")
            return
        if self._engine.stage != Stage.AWAITING_TASK:
            print(f"{self.LINE_PREFIX}Autonomous Chain mode only applies to a new task.")
            return
        await self._submit(task, chain_mode=True)

    async def _handle_session_command(self, command: str) -> None:
        p = self.LINE_PREFIX
        parts = command.split()
        session = self._engine.active_session

        if len(parts) == 1:
            if session is None:
                print(f"{p}Current session: none")
                return
            print(f"{p}Current session: {session.name} (id={session.id})")
            for line in self._session_controller.format_summary_lines(session):
                print(line)
            return

        action = parts[1]
        try:
            if action == "list":
                print(f"{p}Sessions:")
                active_id = session.id if session else None
                for line in self._session_controller.format_session_list(
                    self._engine.sessions, active_session_id=active_id
                ):
                    print(line)
                return

            if action == "new":
                with Spinner(prefix=p, label=" Initializing..."):
                    created = await self._engine.new_session()
                print(f"Started new session (id={created.id})")
                self.print_active_session()
                return

            if action == "resume" and len(parts) >= 3:
                self._engine.activate_session(parts[2])
                self.print_active_session()
                self.print_status()
                return

            if action == "name" and len(parts) >= 3 and session is not None:
                title = command.partition("name")[2].strip()
                renamed = self._engine.rename_session(session.id, title)
                print(f"{p}Session named: {renamed.name}")
                return

            if action == "delete" and len(parts) >= 3:
                active = await self._engine.delete_session(parts[2])
                print(f"{p}Deleted session {parts[2]}. Active session: {active.name} (id={active.id})")
                return
        except (ZeroEngineError, ValueError) as ex:
            print(f"{p}{ex}")
            return

        print(
            f"{p}Usage: /session | /session list | /session new | /session resume <id> | "
            "/session name <title> | /session delete <id>"
        )

    async def _handle_constraints_command(self, command: str) -> None:
        p = self.LINE_PREFIX
        rest = command.partition("/constraints")[2].strip()
        action, _, argument = rest.partition(" ")
        argument = argument.strip()
        constraints = self._engine.standing_constraints

        if not action:
            if not constraints:
                print(f"{p}No standing constraints.")
                return
            print(f"{p}Standing constraints:")
            for i, rule in enumerate(constraints, start=1):
                print(f"{p}{i}. {rule}")
            return

        if action == "add" and argument:
            self._engine.set_standing_constraints([*constraints, argument])
            print(f"{p}Added constraint {len(constraints) + 1}.")
            return

        if action == "clear":
            self._engine.set_standing_constraints([])
            print(f"{p}Standing constraints cleared.")
            return

        if action == "remove" and argument:
            try:
                index = int(argument)
            except ValueError:
                index = 0
            if not 1 <= index <= len(constraints):
                print(f"{p}No constraint numbered {argument}")
                return
            removed = constraints.pop(index - 1)
            self._engine.set_standing_constraints(constraints)
            print(f"{p}Removed constraint: {removed}")
            return

        print(f"{p}Usage: /constraints | /constraints add <rule> | /constraints remove <n> | /constraints clear")

    async def _handle_attach_command(self, command: str) -> None:
        p = self.LINE_PREFIX
        target = command.partition("/attach")[2].strip()
        if not target:
            if self._pending_attachment is None:
                print(f"{p}Usage: /attach <path> | /attach clear")
            else:
                a = self._pending_attachment
                print(f"{p}Pending attachment: {a.name} ({a.mime_type}, {a.size} bytes)")
            return
        if target == "clear":
            self._pending_attachment = None
            print(f"{p}Attachment cleared.")
            return
        try:
            attachment = Attachment.from_path(Path(target).expanduser())
        except OSError as ex:
            logger.warning(f"Could not attach {target}: {ex}")
            print(f"{p}Could not read {target}: {ex}")
            return
        self._pending_attachment = attachment
        print(f"{p}Attached {attachment.name} ({attachment.mime_type}, {attachment.size} bytes) to the next message.")

    async def _handle_translate_command(self, command: str) -> None:
        p = self.LINE_PREFIX
        parts = command.split()
        if len(parts) < 2:
            print(f"{p}Usage: /translate <language> [n]")
            return
        language = parts[1]
        nth = 1
        if len(parts) >= 3:
            try:
                nth = int(parts[2])
            except ValueError:
                print(f"{p}Usage: /translate <language> [n]")
                return

        session = self._engine.active_session
        ai_messages = [m for m in session.messages if m.author == "ai"] if session else []
        if not 1 <= nth <= len(ai_messages):
            print(f"{p}No AI message number {nth}")
            return
        target = ai_messages[-nth]

        try:
            with Spinner(prefix=p, label=" Translating..."):
                translated = await self._engine.translate(target.id, language)
        except (TurnRejectedError, ValueError) as ex:
            print(f"{p}{ex}")
            return
        translation = translated.translation
        if translation is None:
            raise RuntimeError(f"Message {translated.id} has no translation")
        print(f"-- Translated Output ({translation.lang}) --")
        print(translation.content)
        print()

    async def _handle_export_command(self, command: str) -> None:
        p = self.LINE_PREFIX
        target = command.partition("/export")[2].strip()
        transcript = self._engine.export_transcript()
        if not transcript:
            print(f"{p}Nothing to export.")
            return
        path = Path(target).expanduser() if target else Path.cwd() / transcript_filename()
        if path.is_dir():
            path = path / transcript_filename()
        try:
            path.write_text(transcript, encoding="utf-8")
        except OSError as ex:
            logger.error(f"Export to {path} failed: {ex}")
            print(f"{p}Export failed: {ex}")
            return
        logger.info(f"Exported transcript to {path}")
        print(f"{p}Exported session log to {path}")
