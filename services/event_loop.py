"""Event plumbing between an input source and a TypingSession.

The host (terminal UI, test harness) supplies events through an EventSource;
the Runner turns a timeout into a tick, and the SessionDriver applies events
to a session until it finishes.
"""

import logging
import queue
from typing import Optional, Protocol, Union

from pydantic import BaseModel

from models.session_scorer import SessionResult
from models.typing_session import TICK_RATE_MS, TypingSession

logger = logging.getLogger(__name__)

BACKSPACE = "backspace"


class KeyEvent(BaseModel):
    """A key press: a single printable character or a named key such as "backspace"."""

    key: str

    model_config = {"frozen": True}

    @property
    def is_printable(self) -> bool:
        return len(self.key) == 1 and self.key.isprintable()


class ResizeEvent(BaseModel):
    width: int = 0
    height: int = 0

    model_config = {"frozen": True}


class TickEvent(BaseModel):
    model_config = {"frozen": True}


Event = Union[KeyEvent, ResizeEvent, TickEvent]


class EventSource(Protocol):
    def next_event(self, timeout: float) -> Optional[Event]:
        """Return the next event, or None if ``timeout`` seconds pass without one."""
        ...


class QueueEventSource:
    """Thread-safe event source fed by ``put``; producers may live on other threads."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Event]" = queue.Queue()

    def put(self, event: Event) -> None:
        self._queue.put(event)

    def put_text(self, text: str) -> None:
        for char in text:
            self.put(KeyEvent(key=char))

    def next_event(self, timeout: float) -> Optional[Event]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


class Runner:
    """Pull one event at a time, substituting a tick when the source times out."""

    def __init__(self, source: EventSource, tick_rate_ms: int = TICK_RATE_MS) -> None:
        self.source = source
        self.tick_rate_ms = tick_rate_ms

    def step(self) -> Event:
        event = self.source.next_event(self.tick_rate_ms / 1000.0)
        return event if event is not None else TickEvent()


class SessionDriver:
    """Feed events from a Runner into a TypingSession."""

    def __init__(self, session: TypingSession, runner: Runner) -> None:
        self.session = session
        self.runner = runner

    def handle(self, event: Event) -> None:
        if isinstance(event, KeyEvent):
            if event.key == BACKSPACE:
                self.session.backspace()
            elif event.is_printable:
                self.session.on_keypress_start()
                self.session.write(event.key)
            else:
                logger.debug("Ignoring key %r", event.key)
        elif isinstance(event, TickEvent):
            self.session.on_tick()

    def run(self, max_steps: Optional[int] = None) -> Optional[SessionResult]:
        """Process events until the session finishes.

        Returns the result, or None if ``max_steps`` ran out first.
        """
        steps = 0
        while not self.session.has_finished():
            if max_steps is not None and steps >= max_steps:
                return None
            self.handle(self.runner.step())
            steps += 1
        return self.session.finish()
