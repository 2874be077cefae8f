import pytest

from services.chat.EventStream import EventStreamDecoder, encode_frame
from services.chat.StreamComposer import ComposerState, StreamComposer
from shared.models.chat import ContentFrame, SourceItem

SOURCES = [
    SourceItem(text="Rent is due on the first.", file_name="rent.txt", chunk_index=0, score=0.91),
    SourceItem(text="Late fees apply.", file_name="rent.txt", chunk_index=3, score=0.42),
]


class Fragments:
    """Async iterator over fragments that records whether it was closed."""

    def __init__(self, items):
        self._items = list(items)
        self.closed = False
        self.pulled = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        self.pulled += 1
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.closed = True


async def _collect(composer: StreamComposer) -> list[dict]:
    decoder = EventStreamDecoder()
    frames: list[dict] = []
    async for frame in composer.frames():
        frames.extend(decoder.feed(frame))
    return frames


async def test_content_frames_then_exactly_one_sources_frame(helper_config):
    fragments = Fragments(["Rent ", "", "is due."])
    composer = StreamComposer(helper_config, fragments, SOURCES)

    frames = await _collect(composer)

    assert frames == [
        {"content": "Rent "},
        {"content": "is due."},
        {"sources": [
            {"fileName": "rent.txt", "chunkIndex": 0, "score": 0.91},
            {"fileName": "rent.txt", "chunkIndex": 3, "score": 0.42},
        ], "done": True},
    ]
    assert composer.state == ComposerState.CLOSED
    assert fragments.closed


async def test_failure_midway_emits_single_error_frame(helper_config):
    fragments = Fragments(["Rent ", RuntimeError("upstream reset")])
    composer = StreamComposer(helper_config, fragments, SOURCES)

    frames = await _collect(composer)

    assert frames == [{"content": "Rent "}, {"error": "An error occurred"}]
    assert not any("sources" in frame for frame in frames)
    assert composer.state == ComposerState.CLOSED
    assert fragments.closed


async def test_disconnect_stops_pulling_without_more_frames(helper_config):
    fragments = Fragments(["a", "b", "c", "d"])
    checks = {"count": 0}

    async def is_disconnected() -> bool:
        checks["count"] += 1
        return checks["count"] > 2

    composer = StreamComposer(helper_config, fragments, SOURCES, is_disconnected=is_disconnected)

    frames = await _collect(composer)

    assert frames == [{"content": "a"}, {"content": "b"}]
    assert fragments.pulled == 2
    assert fragments.closed
    assert composer.state == ComposerState.CLOSED


async def test_consumer_closing_early_closes_fragments(helper_config):
    fragments = Fragments(["a", "b", "c"])
    composer = StreamComposer(helper_config, fragments, SOURCES)

    stream = composer.frames()
    first = await anext(stream)
    await stream.aclose()

    assert first == 'data: {"content": "a"}\n\n'
    assert fragments.closed
    assert composer.state == ComposerState.CLOSED


async def test_frames_can_only_be_consumed_once(helper_config):
    composer = StreamComposer(helper_config, Fragments(["a"]), SOURCES)
    await _collect(composer)

    with pytest.raises(RuntimeError):
        await _collect(composer)


async def test_emitting_after_close_is_rejected(helper_config):
    composer = StreamComposer(helper_config, Fragments([]), [])
    await _collect(composer)

    with pytest.raises(RuntimeError):
        composer._emit(ContentFrame(content="late"))


async def test_empty_answer_still_ends_with_sources(helper_config):
    frames = await _collect(StreamComposer(helper_config, Fragments([]), SOURCES[:1]))
    assert frames == [{"sources": [{"fileName": "rent.txt", "chunkIndex": 0, "score": 0.91}], "done": True}]


##########################################
############## WIRE FORMAT ###############
##########################################

def test_encode_frame_format():
    assert encode_frame({"content": "Hi"}) == 'data: {"content": "Hi"}\n\n'
    assert encode_frame(ContentFrame(content="Grüße")) == 'data: {"content": "Grüße"}\n\n'


def test_decoder_buffers_partial_frames():
    decoder = EventStreamDecoder()
    wire = encode_frame({"content": "Hello"}) + encode_frame({"sources": [], "done": True})

    assert decoder.feed(wire[:10]) == []
    assert decoder.feed(wire[10:30]) == [{"content": "Hello"}]
    assert decoder.feed(wire[30:]) == [{"sources": [], "done": True}]
    assert not decoder.has_pending()


def test_decoder_handles_split_multibyte_characters():
    decoder = EventStreamDecoder()
    raw = encode_frame({"content": "Grüße"}).encode("utf-8")
    split = raw.index("ü".encode("utf-8")) + 1

    assert decoder.feed(raw[:split]) == []
    assert decoder.feed(raw[split:]) == [{"content": "Grüße"}]


def test_decoder_rejects_malformed_json():
    decoder = EventStreamDecoder()
    with pytest.raises(ValueError):
        decoder.feed("data: {not json}\n\n")
