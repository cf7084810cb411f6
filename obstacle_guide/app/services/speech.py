"""Speech output consumers for spoken warnings."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Protocol

import pyttsx3

LOGGER = logging.getLogger(__name__)


class Speaker(Protocol):
    def speak(self, text: str) -> bool:
        ...

    def close(self) -> None:
        ...


class LoggingSpeaker:
    """Records phrases in the log instead of vocalizing them."""

    def __init__(self) -> None:
        self.spoken = 0

    def speak(self, text: str) -> bool:
        self.spoken += 1
        LOGGER.info("Speech: %s", text)
        return True

    def close(self) -> None:
        return None


class TTSSpeaker:
    """Plays phrases through pyttsx3 on a worker thread so the frame loop never waits.

    Only one phrase is held pending: a new phrase replaces one that has not
    started playing yet, mirroring a flush-the-queue speech policy.
    """

    def __init__(
        self,
        rate: Optional[int] = None,
        voice: Optional[str] = None,
        engine_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.rate = rate
        self.voice = voice
        self.spoken: List[str] = []
        self._engine_factory = engine_factory or pyttsx3.init
        self._pending: Optional[str] = None
        self._closed = False
        self._condition = threading.Condition()
        self._thread = threading.Thread(target=self._run, name="tts-speaker", daemon=True)
        self._thread.start()

    def speak(self, text: str) -> bool:
        with self._condition:
            if self._closed:
                return False
            if self._pending is not None:
                LOGGER.debug("Dropping pending phrase %r in favour of %r", self._pending, text)
            self._pending = text
            self._condition.notify()
        return True

    def close(self, timeout: float = 5.0) -> None:
        """Stop accepting phrases, let a pending one finish, and join the worker."""

        with self._condition:
            self._closed = True
            self._condition.notify()
        self._thread.join(timeout)
        if self._thread.is_alive():
            LOGGER.warning("Speech worker still busy after %.1fs", timeout)

    def _build_engine(self) -> Any:
        engine = self._engine_factory()
        if self.rate is not None:
            engine.setProperty("rate", self.rate)
        if self.voice is not None:
            engine.setProperty("voice", self.voice)
        return engine

    def _next_phrase(self) -> Optional[str]:
        with self._condition:
            while self._pending is None and not self._closed:
                self._condition.wait()
            text, self._pending = self._pending, None
            return text

    def _run(self) -> None:
        # pyttsx3 engines must be driven from the thread that created them.
        try:
            engine = self._build_engine()
        except Exception:
            LOGGER.exception("Could not initialise text-to-speech engine; warnings will not be spoken")
            with self._condition:
                self._closed = True
            return

        while True:
            text = self._next_phrase()
            if text is None:
                break
            try:
                engine.say(text)
                engine.runAndWait()
                self.spoken.append(text)
            except Exception:
                LOGGER.exception("Text-to-speech playback failed for %r", text)

        try:
            engine.stop()
        except Exception:
            LOGGER.exception("Exception thrown while trying to stop text-to-speech engine")


def build_speaker(enabled: bool, rate: Optional[int] = None, voice: Optional[str] = None) -> Speaker:
    """Return a pyttsx3 speaker when speech is enabled, else a logging speaker."""

    if enabled:
        return TTSSpeaker(rate=rate, voice=voice)
    return LoggingSpeaker()
