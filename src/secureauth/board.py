"""Refresh codes for a set of labelled secrets once per time window."""

import logging
import time
from typing import Callable, Iterable, List, Optional, Tuple

from secureauth.totp import (
    CODE_DIGITS,
    DEFAULT_WINDOW_SECONDS,
    TotpResult,
    compute_code,
    current_counter,
    time_remaining,
)


logger = logging.getLogger(__name__)

LABEL_SEPARATOR = ":"
PLACEHOLDER = "--- ---"


def parse_entry(entry: str, index: int) -> Tuple[str, str]:
    """
    Split a "Label:SECRET" entry into its label and secret.

    Base32 never contains ':', so an entry without one is a bare secret
    and gets a positional label such as "#1".

    Args:
        entry: Raw entry from the command line or environment.
        index: 1-based position of the entry, used for unlabelled secrets.

    Returns:
        (label, secret) tuple.
    """
    label, sep, secret = entry.partition(LABEL_SEPARATOR)
    if not sep:
        return f"#{index}", entry.strip()
    label = label.strip() or f"#{index}"
    return label, secret.strip()


def format_display(code: Optional[str]) -> str:
    """Group a 6-digit code as "123 456"; anything else shows a placeholder."""
    if not code or len(code) != CODE_DIGITS:
        return PLACEHOLDER
    return f"{code[:3]} {code[3:]}"


class CodeBoard:
    """
    Holds labelled secrets in memory and keeps their current codes.

    Codes are regenerated whenever the time-step counter moves on, which
    covers the first second of every window even if a tick was missed.
    """

    def __init__(
        self,
        entries: Iterable[Tuple[str, str]],
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self.entries = list(entries)
        self.window_seconds = window_seconds
        self._clock = clock or time.time
        self._counter: Optional[int] = None
        # One result per entry, in entry order; labels need not be unique
        self.results: List[TotpResult] = []
        self.time_left = window_seconds

    def refresh(self, now: Optional[float] = None) -> List[TotpResult]:
        """Generate a fresh code for every entry."""
        if now is None:
            now = self._clock()

        results = []
        for label, secret in self.entries:
            result = compute_code(secret, self.window_seconds, now)
            if not result.ok:
                logger.warning("No code for %s: %s", label, result.status.value)
            results.append(result)

        self.results = results
        self._counter = current_counter(self.window_seconds, now)
        self.time_left = time_remaining(self.window_seconds, now)
        return results

    def tick(self) -> bool:
        """
        Read the clock once and refresh if a new window has started.

        Returns:
            True if the codes were regenerated.
        """
        now = self._clock()
        if current_counter(self.window_seconds, now) != self._counter:
            self.refresh(now)
            return True
        self.time_left = time_remaining(self.window_seconds, now)
        return False

    @property
    def codes(self) -> List[str]:
        """Rendered code or sentinel for each entry, in entry order."""
        return [result.render() for result in self.results]

    def rows(self) -> List[Tuple[str, str]]:
        """Return (label, display code) pairs in entry order."""
        if not self.results:
            return [(label, PLACEHOLDER) for label, _ in self.entries]
        return [
            (label, format_display(result.code))
            for (label, _), result in zip(self.entries, self.results)
        ]
