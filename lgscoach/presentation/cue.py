# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audible/vibration cue accompanying a notification."""

import sys
from dataclasses import dataclass
from typing import TextIO

from lgscoach.core.exceptions import CueUnsupportedError


@dataclass(frozen=True)
class CueSpec:
    """Cue parameters for platforms that can vibrate or synthesize a tone.

    Attributes:
        vibration_pattern: Alternating vibrate/pause durations in ms.
        frequency_hz: Beep frequency.
        gain: Beep volume (0-1).
        duration: Beep length in seconds.
    """

    vibration_pattern: tuple[int, ...] = (300, 200, 300, 200, 300)
    frequency_hz: int = 1000
    gain: float = 0.3
    duration: float = 0.5


class TerminalCue:
    """Rings the terminal bell.

    A terminal cannot vibrate or synthesize the tone in CueSpec; the
    bell stands in for both.
    """

    def __init__(self, stream: TextIO | None = None, spec: CueSpec | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.spec = spec or CueSpec()

    def play(self) -> None:
        """Play the cue.

        Raises:
            CueUnsupportedError: If the stream is not a terminal.
        """
        isatty = getattr(self.stream, "isatty", None)
        if isatty is None or not isatty():
            raise CueUnsupportedError("Output is not a terminal")
        self.stream.write("\a")
        self.stream.flush()
