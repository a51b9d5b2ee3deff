from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import replace

from loguru import logger

from zero_engine.context import AppContext
from zero_engine.engine_config import EngineConfig
from zero_engine.errors import InitializationError, StreamTimeoutError, TurnCancelledError, TurnRejectedError
from zero_engine.parsing import parse_response
from zero_engine.prompt_composer import PromptComposer, build_translation_prompt
from zero_engine.protocol import EngineStatus, Stage, engine_status
from zero_engine.provider import LLMProvider, StreamChunk
from zero_engine.sessions.models import (
    DEFAULT_SESSION_NAME,
    Attachment,
    ExchangeTurn,
    Message,
    Session,
    Translation,
    derive_session_name,
    text_part,
)
from zero_engine.streaming import StreamState, apply_chunk, message_from_state

ERROR_SESSION_ID = "error_session"
TURN_ERROR_CONTENT = (
    "[Error]\nAn unexpected error occurred while processing your request. Please try again. "
    "If the issue continues, simplify your prompt or check the log for technical details."
)
INIT_ERROR_CONTENT = (
    "Error: Could not initialize the ZERO Engine. Please check your API key and configuration, then restart."
)
TRANSLATION_ERROR_CONTENT = "Error: Translation failed."


class MonotonicClock:
    """Millisecond timestamps that never repeat within a process."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        now = time.time_ns() // 1_000_000
        self._last = now if now > self._last else self._last + 1
        return self._last


async def _next_chunk(iterator: AsyncIterator[StreamChunk]) -> StreamChunk:
    return await iterator.__anext__()


class ZeroEngine:
    def __init__(
        self,
        config: EngineConfig,
        context: AppContext,
        provider: LLMProvider | None,
        *,
        composer: PromptComposer | None = None,
    ) -> None:
        self._config = config
        self._context = context
        self._provider = provider
        self._composer = composer or PromptComposer(
            directive=config.directive,
            source_cache=context.source_cache,
        )
        self._message_ids = MonotonicClock()
        self._session_clock = MonotonicClock()
        self._run_lock = asyncio.Lock()
        self._cancel_event: asyncio.Event | None = None

    @property
    def context(self) -> AppContext:
        return self._context

    @property
    def stage(self) -> Stage:
        return self._context.state.stage

    @property
    def status(self) -> EngineStatus:
        return engine_status(self.stage)

    @property
    def is_loading(self) -> bool:
        return self._context.state.is_loading or self._run_lock.locked()

    @property
    def sessions(self) -> list[Session]:
        return self._context.session_store.sessions

    @property
    def active_session(self) -> Session | None:
        return self._context.session_store.active_session

    @property
    def standing_constraints(self) -> list[str]:
        return list(self._context.standing_constraints)

    def set_standing_constraints(self, constraints: list[str]) -> None:
        self._context.standing_constraints = [c.strip() for c in constraints if c.strip()]
        logger.info(f"Standing constraints updated ({len(self._context.standing_constraints)} rule(s))")

    async def initialize(self) -> None:
        store = self._context.session_store
        try:
            if self._provider is None:
                raise InitializationError("No model provider is configured")
            if not store.load():
                await self._create_session()
            self._context.state.mark_ready()
        except Exception as ex:
            logger.error(f"Initialization failed: {ex}")
            self._install_error_session()

    async def new_session(self) -> Session:
        if self._context.state.stage == Stage.PROCESSING:
            raise TurnRejectedError("Cannot create a session while a turn is in flight")
        if self._provider is None:
            raise InitializationError("No model provider is configured")
        if self._context.state.stage == Stage.ERROR and self._context.session_store.load():
            self._context.state.reset()
        session = await self._create_session()
        self._context.state.reset()
        return session

    def activate_session(self, session_id: str) -> Session:
        if self._context.state.stage == Stage.PROCESSING:
            raise TurnRejectedError("Cannot switch sessions while a turn is in flight")
        if self._context.state.stage == Stage.ERROR:
            raise TurnRejectedError("Cannot switch sessions until the engine has initialized")
        session = self._context.session_store.activate(session_id)
        logger.info(
            f"Model context rebuilt from {len(session.model_exchange_history)} exchange turn(s) "
            f"for session {session_id}"
        )
        self._context.state.reset()
        return session

    def rename_session(self, session_id: str, name: str) -> Session:
        if self._context.state.stage == Stage.ERROR:
            raise TurnRejectedError("Cannot rename sessions until the engine has initialized")
        return self._context.session_store.rename(session_id, name)

    async def delete_session(self, session_id: str) -> Session:
        store = self._context.session_store
        if self._context.state.stage == Stage.ERROR:
            raise TurnRejectedError("Cannot delete sessions until the engine has initialized")
        if self._context.state.stage == Stage.PROCESSING and session_id == store.active_session_id:
            raise TurnRejectedError("Cannot delete the session of the turn in flight")
        was_active = session_id == store.active_session_id
        if store.delete(session_id) is None:
            try:
                await self._create_session()
                self._context.state.reset()
            except Exception as ex:
                logger.error(f"Could not replace the last deleted session: {ex}")
                self._install_error_session()
        elif was_active:
            self._context.state.reset()
        active = store.active_session
        if active is None:
            raise RuntimeError("No active session after delete")
        return active

    def export_transcript(self) -> str:
        return self._context.session_store.export_active_transcript()

    def cancel_turn(self) -> None:
        if self._cancel_event is not None:
            self._cancel_event.set()

    async def submit(
        self,
        text: str,
        *,
        attachment: Attachment | None = None,
        chain_mode: bool = False,
        on_update: Callable[[Message], None] | None = None,
    ) -> Message:
        """Run one protocol turn and return the final AI message.

        A failed turn still returns: the AI message then holds the generic
        error section and the stage is back to ``awaiting_task``.
        """
        if self.is_loading:
            raise TurnRejectedError("A turn is already in flight")

        async with self._run_lock:
            store = self._context.session_store
            state = self._context.state
            session = store.active_session
            if session is None or self._provider is None:
                raise TurnRejectedError("No active session")

            started_from = state.begin_turn(text, has_attachment=attachment is not None)
            user_message = Message(id=self._message_ids.next(), author="user", content=text, attachment=attachment)
            ai_message = Message(id=self._message_ids.next(), author="ai", content="", citations=[])
            meta_question = False

            self._cancel_event = asyncio.Event()
            try:
                meta_question = self._composer.is_meta_question(text, started_from)
                chain_mode = chain_mode and started_from == Stage.AWAITING_TASK and not meta_question
                prompt = self._composer.compose(
                    text,
                    started_from,
                    self._context.standing_constraints,
                    chain_mode,
                    meta_question,
                )
                parts = [text_part(prompt)]
                if attachment is not None:
                    parts.append(attachment.to_part())

                store.replace(session.with_messages([*session.messages, user_message, ai_message]))
                logger.info(
                    f"Turn started in session {session.id} (from={started_from.value}, "
                    f"chain={chain_mode}, meta={meta_question}, attachment={attachment is not None})"
                )
                result = await self._stream_turn(
                    session.id,
                    ai_message,
                    session.model_exchange_history,
                    parts,
                    on_update,
                )
                self._complete_turn(session.id, text, parts, result)
            except asyncio.CancelledError:
                self._fail_turn(session.id, ai_message)
                raise
            except Exception as ex:
                logger.error(f"Turn failed in session {session.id}: {type(ex).__name__}: {ex}")
                return self._fail_turn(session.id, ai_message)
            finally:
                self._cancel_event = None

            stage = state.complete_turn(result.text, chain_mode=chain_mode, meta_question=meta_question)
            logger.info(f"Turn completed in session {session.id} ({len(result.text)} chars) -> {stage.value}")
            completed = store.get(session.id).find_message(ai_message.id)
            if completed is None:
                raise RuntimeError(f"Message {ai_message.id} vanished from session {session.id}")
            return completed

    async def translate(self, message_id: int, language: str) -> Message:
        if self._context.state.stage == Stage.PROCESSING:
            raise TurnRejectedError("Translation is unavailable while a turn is in flight")
        if self._provider is None:
            raise TurnRejectedError("No model provider is configured")
        store = self._context.session_store
        session = store.active_session
        message = session.find_message(message_id) if session else None
        if session is None or message is None:
            raise ValueError(f"Message does not exist: {message_id}")

        store.replace(session.with_message(replace(message, is_translating=True)))
        try:
            translated = await self._provider.create_message(
                self._config.translation_model,
                build_translation_prompt(message.content, language),
            )
            translation = Translation(lang=language, content=translated)
        except Exception as ex:
            logger.warning(f"Translation of message {message_id} to {language} failed: {ex}")
            translation = Translation(lang=language, content=TRANSLATION_ERROR_CONTENT)

        current = store.get(session.id)
        latest = current.find_message(message_id) or message
        updated = replace(latest, is_translating=False, translation=translation)
        store.replace(current.with_message(updated))
        return updated

    async def _create_session(self) -> Session:
        if self._provider is None:
            raise InitializationError("No model provider is configured")
        store = self._context.session_store
        parts = [text_part(self._config.directive)]
        result = StreamState()
        async for chunk in self._iterate(self._provider.stream_chat(
            self._config.model,
            [],
            parts,
            search_grounding=self._config.search_grounding,
        )):
            result = apply_chunk(result, chunk)

        created_at = self._session_clock.next()
        session = Session(
            id=f"session_{created_at}",
            name=DEFAULT_SESSION_NAME,
            created_at=created_at,
            messages=[
                Message(
                    id=self._message_ids.next(),
                    author="ai",
                    content=result.text,
                    parsed_data=result.parsed,
                )
            ],
            model_exchange_history=[
                ExchangeTurn(role="user", parts=parts),
                ExchangeTurn(role="model", parts=[text_part(result.text)]),
            ],
        )
        store.add(session)
        logger.info(f"Created session {session.id}")
        return session

    async def _stream_turn(
        self,
        session_id: str,
        ai_message: Message,
        history: list[ExchangeTurn],
        parts: list[dict],
        on_update: Callable[[Message], None] | None,
    ) -> StreamState:
        if self._provider is None:
            raise InitializationError("No model provider is configured")
        store = self._context.session_store
        result = StreamState()
        async for chunk in self._iterate(self._provider.stream_chat(
            self._config.model,
            history,
            parts,
            search_grounding=self._config.search_grounding,
        )):
            result = apply_chunk(result, chunk)
            updated = message_from_state(ai_message, result)
            store.replace(store.get(session_id).with_message(updated))
            if on_update is not None:
                on_update(updated)
        return result

    async def _iterate(self, stream: AsyncIterator[StreamChunk]) -> AsyncIterator[StreamChunk]:
        """Yield chunks, bounded by the idle timeout and the cancel event."""
        iterator = stream.__aiter__()
        timeout = self._config.stream_idle_timeout_seconds
        try:
            while True:
                next_task = asyncio.create_task(_next_chunk(iterator))
                waiters: set[asyncio.Future] = {next_task}
                cancel_task: asyncio.Task | None = None
                if self._cancel_event is not None:
                    cancel_task = asyncio.create_task(self._cancel_event.wait())
                    waiters.add(cancel_task)
                try:
                    done, _ = await asyncio.wait(
                        waiters,
                        timeout=timeout if timeout > 0 else None,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    if cancel_task is not None:
                        cancel_task.cancel()
                    if not next_task.done():
                        next_task.cancel()
                        await asyncio.gather(next_task, return_exceptions=True)

                if next_task not in done:
                    if self._cancel_event is not None and self._cancel_event.is_set():
                        raise TurnCancelledError()
                    raise StreamTimeoutError(timeout)
                try:
                    chunk = next_task.result()
                except StopAsyncIteration:
                    return
                yield chunk
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def _complete_turn(self, session_id: str, user_text: str, parts: list[dict], result: StreamState) -> None:
        store = self._context.session_store
        session = store.get(session_id)
        name = session.name
        if session.user_message_count == 1 and name == DEFAULT_SESSION_NAME:
            name = derive_session_name(user_text) or name
        history = [
            *session.model_exchange_history,
            ExchangeTurn(role="user", parts=parts),
            ExchangeTurn(role="model", parts=[text_part(result.text)]),
        ]
        store.replace(replace(session, name=name, model_exchange_history=history))

    def _fail_turn(self, session_id: str, ai_message: Message) -> Message:
        store = self._context.session_store
        failed = replace(
            ai_message,
            content=TURN_ERROR_CONTENT,
            parsed_data=parse_response(TURN_ERROR_CONTENT),
        )
        self._context.state.fail_turn()
        try:
            store.replace(store.get(session_id).with_message(failed))
        except Exception as ex:
            logger.error(f"Could not record the failed turn in session {session_id}: {ex}")
        return failed

    def _install_error_session(self) -> None:
        error_session = Session(
            id=ERROR_SESSION_ID,
            name="Error",
            created_at=self._session_clock.next(),
            messages=[Message(id=self._message_ids.next(), author="ai", content=INIT_ERROR_CONTENT)],
        )
        self._context.session_store.reset([error_session], error_session.id, persist=False)
        self._context.state.fail()
