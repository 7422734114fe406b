import sys
import types
from types import SimpleNamespace

import numpy as np
import pytest

from scribe.asr.base import BlockFinal, TokenUpdate
from scribe.asr.local_whisper import LocalWhisperEngine, load_whisper_model
from scribe.config import Settings
from scribe.errors import FinalPassError, RecognitionError
from tests.conftest import SAMPLE_RATE


def segment(text, start, end, tokens=(1, 2), words=None):
    return SimpleNamespace(text=text, start=start, end=end, tokens=list(tokens), words=words)


def word(text, start, end):
    return SimpleNamespace(word=text, start=start, end=end)


class FakeWhisperModel:
    def __init__(self, segments, error=None):
        self.segments = segments
        self.error = error
        self.calls = []

    def transcribe(self, audio, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return iter(self.segments), SimpleNamespace(language="en")


@pytest.fixture
def audio():
    return np.full(SAMPLE_RATE, 0.1, dtype=np.float32)


async def collect(engine, audio):
    return [event async for event in engine.recognize(audio, "en")]


class TestStreaming:
    @pytest.mark.asyncio
    async def test_updates_then_final(self, audio):
        model = FakeWhisperModel([segment(" Hello", 0, 0.5), segment(" world.", 0.5, 1.0, tokens=(3,))])
        engine = LocalWhisperEngine(model=model, settings=Settings())

        events = await collect(engine, audio)

        assert [type(e) for e in events] == [TokenUpdate, TokenUpdate, BlockFinal]
        assert events[0].text == "Hello"
        assert events[0].num_tokens == 2
        assert events[0].tokens_per_second > 0
        assert events[1].text == "Hello world."
        assert events[1].num_tokens == 3
        assert events[1].tokens_per_second > 0
        assert events[2].text == "Hello world."

    @pytest.mark.asyncio
    async def test_single_segment_block_reports_rate(self, audio):
        model = FakeWhisperModel([segment(" Just one segment.", 0, 1.0, tokens=(1, 2, 3))])
        engine = LocalWhisperEngine(model=model, settings=Settings())

        events = await collect(engine, audio)

        update = events[0]
        assert isinstance(update, TokenUpdate)
        assert update.num_tokens == 3
        assert update.tokens_per_second is not None
        assert update.tokens_per_second > 0

    @pytest.mark.asyncio
    async def test_streaming_decode_options(self, audio):
        model = FakeWhisperModel([])
        engine = LocalWhisperEngine(model=model, settings=Settings(STREAMING_MAX_NEW_TOKENS=64))

        events = await collect(engine, audio)

        assert events == [BlockFinal(text="")]
        kwargs = model.calls[0]
        assert kwargs["max_new_tokens"] == 64
        assert kwargs["without_timestamps"] is True
        assert kwargs["language"] == "en"

    @pytest.mark.asyncio
    async def test_decode_error(self, audio):
        engine = LocalWhisperEngine(model=FakeWhisperModel([], error=RuntimeError("boom")), settings=Settings())
        with pytest.raises(RecognitionError):
            await collect(engine, audio)


class TestFinalPass:
    @pytest.mark.asyncio
    async def test_word_chunks(self, audio):
        words = [word(" Hello", 0.0, 0.4), word(" there", 0.5, 0.9)]
        model = FakeWhisperModel([segment(" Hello there", 0.0, 0.9, words=words), segment(" Bye", 2.0, 2.5)])
        engine = LocalWhisperEngine(model=model, settings=Settings(LOCAL_WHISPER_WORD_TIMESTAMPS=True))

        chunks = await engine.transcribe(audio, "en")

        assert [(c.text, c.start, c.end) for c in chunks] == [
            ("Hello", 0.0, 0.4),
            ("there", 0.5, 0.9),
            ("Bye", 2.0, 2.5),
        ]
        assert model.calls[0]["word_timestamps"] is True
        assert model.calls[0]["vad_filter"] is True

    @pytest.mark.asyncio
    async def test_segment_chunks_skip_blank(self, audio):
        model = FakeWhisperModel([segment(" One.", 0.0, 1.0), segment("  ", 1.0, 1.5), segment(" Two.", 1.5, 2.0)])
        engine = LocalWhisperEngine(model=model, settings=Settings(LOCAL_WHISPER_WORD_TIMESTAMPS=False))

        chunks = await engine.transcribe(audio)

        assert [c.text for c in chunks] == ["One.", "Two."]

    @pytest.mark.asyncio
    async def test_error_wrapped(self, audio):
        engine = LocalWhisperEngine(model=FakeWhisperModel([], error=RuntimeError("oom")), settings=Settings())
        with pytest.raises(FinalPassError):
            await engine.transcribe(audio)

    def test_sample_rate(self):
        assert LocalWhisperEngine(model=FakeWhisperModel([]), settings=Settings()).sample_rate == 16000


class RecordingWhisperModel(FakeWhisperModel):
    instances = []

    def __init__(self, name, device=None, compute_type=None):
        super().__init__([segment("", 0.0, 0.0)])
        self.name = name
        self.device = device
        self.compute_type = compute_type
        self.audio = []
        RecordingWhisperModel.instances.append(self)

    def transcribe(self, audio, **kwargs):
        self.audio.append(audio)
        return super().transcribe(audio, **kwargs)


@pytest.fixture
def fake_faster_whisper(monkeypatch):
    RecordingWhisperModel.instances = []
    module = types.ModuleType("faster_whisper")
    module.WhisperModel = RecordingWhisperModel
    monkeypatch.setitem(sys.modules, "faster_whisper", module)
    return RecordingWhisperModel


class TestLoadWhisperModel:
    def test_warm_up_decodes_one_silent_second(self, fake_faster_whisper):
        settings = Settings(LOCAL_WHISPER_MODEL="tiny", LOCAL_WHISPER_WARMUP=True)

        model = load_whisper_model(settings)

        assert model is fake_faster_whisper.instances[0]
        assert model.name == "tiny"
        assert len(model.calls) == 1
        assert model.calls[0]["max_new_tokens"] == 1
        assert len(model.audio[0]) == SAMPLE_RATE
        assert not np.any(model.audio[0])

    def test_warm_up_disabled(self, fake_faster_whisper):
        model = load_whisper_model(Settings(LOCAL_WHISPER_WARMUP=False))
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_engine_loads_lazily_once(self, fake_faster_whisper, audio):
        engine = LocalWhisperEngine(settings=Settings(LOCAL_WHISPER_WARMUP=False))
        assert fake_faster_whisper.instances == []

        await engine.transcribe(audio)
        await engine.transcribe(audio)

        assert len(fake_faster_whisper.instances) == 1
