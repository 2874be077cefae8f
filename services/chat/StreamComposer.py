"""Streaming composer.

Turns a lazy stream of generated text fragments plus the retrieved sources
into the chat event stream: content frames while tokens arrive, exactly one
sources frame at the end, or a single error frame if anything fails midway.
"""

from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from pydantic import BaseModel

from services.chat.EventStream import encode_frame
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ContentFrame, ErrorFrame, SourceCitation, SourceItem, SourcesFrame

STREAM_ERROR_MESSAGE = "An error occurred"


class ComposerState(Enum):
    STREAMING_TOKENS = "streaming_tokens"
    EMITTING_SOURCES = "emitting_sources"
    CLOSED = "closed"
    ERROR = "error"


class StreamComposer:
    """Composes the frame stream of one chat answer. Single use."""

    def __init__(
        self,
        helper_config: HelperConfig,
        fragments: AsyncIterator[str],
        sources: list[SourceItem],
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._fragments = fragments
        self._sources = sources
        self._is_disconnected = is_disconnected
        self._state = ComposerState.STREAMING_TOKENS
        self._started = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def state(self) -> ComposerState:
        return self._state

    ##########################################
    ################ FRAMES ##################
    ##########################################

    async def frames(self) -> AsyncIterator[str]:
        """Yield the encoded frames of the answer.

        Order: zero or more content frames, then one sources frame. On failure a
        single error frame replaces everything that would have followed. The
        fragment iterator is closed on every exit path, including when the
        consumer stops reading.

        Yields:
            str: Encoded frames, ready to write to the response.

        Raises:
            RuntimeError: If frames() was already called on this composer.
        """
        if self._started:
            raise RuntimeError("StreamComposer.frames() can only be consumed once.")
        self._started = True

        try:
            async for frame in self._compose():
                yield frame
        finally:
            await self._close_fragments()
            self._state = ComposerState.CLOSED

    async def _compose(self) -> AsyncIterator[str]:
        try:
            while True:
                if await self._consumer_gone():
                    return
                try:
                    fragment = await anext(self._fragments)
                except StopAsyncIteration:
                    break
                if fragment:
                    yield self._emit(ContentFrame(content=fragment))

            if await self._consumer_gone():
                return
            self._state = ComposerState.EMITTING_SOURCES
            yield self._emit(SourcesFrame(sources=self._get_citations()))
            self._state = ComposerState.CLOSED
        except Exception as e:
            self.logging.error("Chat stream failed in state '%s': %s", self._state.value, e)
            self._state = ComposerState.ERROR
            yield self._emit(ErrorFrame(error=STREAM_ERROR_MESSAGE))
            self._state = ComposerState.CLOSED

    def _emit(self, payload: BaseModel) -> str:
        if self._state == ComposerState.CLOSED:
            raise RuntimeError("Cannot emit a frame on a closed stream.")
        return encode_frame(payload)

    ##########################################
    ############### INTERNAL #################
    ##########################################

    def _get_citations(self) -> list[SourceCitation]:
        return [
            SourceCitation(file_name=source.file_name, chunk_index=source.chunk_index, score=source.score)
            for source in self._sources
        ]

    async def _consumer_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        if await self._is_disconnected():
            self.logging.info("Client disconnected, stopping the chat stream.")
            self._state = ComposerState.CLOSED
            return True
        return False

    async def _close_fragments(self) -> None:
        aclose = getattr(self._fragments, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            self.logging.warning("Closing the generation stream failed: %s", e)
