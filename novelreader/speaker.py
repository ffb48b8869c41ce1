"""Text to speech through the macOS ``say`` command."""

from __future__ import annotations

import subprocess
import sys

SAY_COMMAND = "say"


class SpeechError(RuntimeError):
    """Raised when speech cannot be started or ends with an error."""


class Speech:
    """A ``say`` process that is speaking in the background."""

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process

    def wait(self) -> None:
        """Block until speaking ends; raise SpeechError if it failed."""
        returncode = self._process.wait()
        if returncode > 0:
            raise SpeechError(
                f"'say' command finished with error: exit status {returncode}"
            )
        if returncode < 0:
            raise SpeechError(
                f"'say' command finished with error: signal {-returncode}"
            )


def speak_async(text: str) -> Speech:
    """Start speaking ``text`` and return without waiting for it to finish."""
    if sys.platform != "darwin":
        raise SpeechError("TTS functionality is only supported on macOS")
    if not text:
        raise SpeechError("cannot speak empty text")
    try:
        process = subprocess.Popen([SAY_COMMAND, text])
    except OSError as exc:
        raise SpeechError(f"failed to start 'say' command: {exc}") from exc
    return Speech(process)


def speak(text: str) -> None:
    """Speak ``text`` and wait until it has been read out."""
    speak_async(text).wait()