from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from obstacle_guide.app.services.speech import LoggingSpeaker, TTSSpeaker, build_speaker


class FakeEngine:
    """Stands in for a pyttsx3 engine; ``runAndWait`` blocks until released."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.fail_on = fail_on
        self.properties: List[Tuple[str, object]] = []
        self.said: List[str] = []
        self.started = threading.Event()
        self.release = threading.Event()
        self.stopped = False

    def setProperty(self, name: str, value: object) -> None:
        self.properties.append((name, value))

    def say(self, text: str) -> None:
        if text == self.fail_on:
            raise RuntimeError("audio device busy")
        self.said.append(text)

    def runAndWait(self) -> None:
        self.started.set()
        self.release.wait(timeout=5.0)

    def stop(self) -> None:
        self.stopped = True


def test_logging_speaker_counts_phrases(caplog) -> None:
    speaker = LoggingSpeaker()

    with caplog.at_level("INFO"):
        assert speaker.speak("Warning") is True
        assert speaker.speak("Warning") is True
    speaker.close()

    assert speaker.spoken == 2
    assert "Speech: Warning" in caplog.text


def test_speak_returns_while_engine_is_busy() -> None:
    engine = FakeEngine()
    speaker = TTSSpeaker(engine_factory=lambda: engine)

    assert speaker.speak("Warning") is True
    assert engine.started.wait(timeout=2.0)
    assert speaker.speak("Warning") is True

    engine.release.set()
    speaker.close()

    assert speaker.spoken == ["Warning", "Warning"]
    assert engine.stopped


def test_new_phrase_replaces_pending_one() -> None:
    engine = FakeEngine()
    speaker = TTSSpeaker(engine_factory=lambda: engine)

    speaker.speak("one")
    assert engine.started.wait(timeout=2.0)
    speaker.speak("two")
    speaker.speak("three")

    engine.release.set()
    speaker.close()

    assert speaker.spoken == ["one", "three"]
    assert engine.said == ["one", "three"]


def test_rate_and_voice_are_applied() -> None:
    engine = FakeEngine()
    engine.release.set()
    speaker = TTSSpeaker(rate=150, voice="english", engine_factory=lambda: engine)

    speaker.speak("Warning")
    speaker.close()

    assert engine.properties == [("rate", 150), ("voice", "english")]
    assert speaker.spoken == ["Warning"]


def test_engine_init_failure_is_logged(caplog) -> None:
    def broken_factory():
        raise OSError("no speech driver")

    speaker = TTSSpeaker(engine_factory=broken_factory)
    speaker._thread.join(timeout=2.0)

    assert speaker.speak("Warning") is False
    assert "Could not initialise text-to-speech engine" in caplog.text
    speaker.close()


def test_playback_errors_do_not_stop_the_worker(caplog) -> None:
    engine = FakeEngine(fail_on="broken")
    engine.release.set()
    speaker = TTSSpeaker(engine_factory=lambda: engine)

    speaker.speak("broken")
    speaker.close()

    assert speaker.spoken == []
    assert "Text-to-speech playback failed" in caplog.text
    assert engine.stopped


def test_speak_after_close_is_refused() -> None:
    engine = FakeEngine()
    engine.release.set()
    speaker = TTSSpeaker(engine_factory=lambda: engine)
    speaker.close()

    assert speaker.speak("Warning") is False
    assert speaker.spoken == []


def test_build_speaker_respects_mute() -> None:
    assert isinstance(build_speaker(False), LoggingSpeaker)


def test_build_speaker_uses_pyttsx3(monkeypatch) -> None:
    engine = FakeEngine()
    engine.release.set()
    monkeypatch.setattr("obstacle_guide.app.services.speech.pyttsx3.init", lambda: engine)

    speaker = build_speaker(True, rate=180)
    speaker.speak("Warning")
    speaker.close()

    assert isinstance(speaker, TTSSpeaker)
    assert engine.properties == [("rate", 180)]
    assert engine.said == ["Warning"]
