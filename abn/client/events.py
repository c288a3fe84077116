"""
Client events.

State events are what the middleware emits when one of its substores
changes. Bus events are what the UI loop consumes: terminal input, state
changes and a periodic tick, all funneled into one queue by EventBus.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional, Union

logger = logging.getLogger(__name__)


# Événements du middleware

@dataclass(frozen=True)
class TasksUpdate:
    pass


@dataclass(frozen=True)
class PropsUpdate:
    pass


@dataclass(frozen=True)
class ViewsUpdate:
    pass


@dataclass(frozen=True)
class ScriptUpdate:
    script_id: int


@dataclass(frozen=True)
class ServerStatus:
    status: str  # "ok" | "error"
    message: str = ""


StateEvent = Union[TasksUpdate, PropsUpdate, ViewsUpdate, ScriptUpdate, ServerStatus]


# Événements de la boucle UI

@dataclass(frozen=True)
class TermEvent:
    payload: Any


@dataclass(frozen=True)
class StateChanged:
    event: StateEvent


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class InputError:
    error: Exception


@dataclass(frozen=True)
class InputClosed:
    pass


Event = Union[TermEvent, StateChanged, Tick, InputError, InputClosed]


class EventBus:
    """Single consumer select over input, state events and a tick."""

    def __init__(
        self,
        input_stream: Optional[AsyncIterator[Any]] = None,
        state_events: Optional["asyncio.Queue[StateEvent]"] = None,
        tick_rate_ms: int = 500,
    ):
        self.input_stream = input_stream
        self.state_events = state_events
        self.tick_rate_ms = tick_rate_ms
        self._queue: "asyncio.Queue[Event]" = asyncio.Queue()
        self._producers: List[asyncio.Task] = []

    @property
    def started(self) -> bool:
        return bool(self._producers)

    def start(self) -> None:
        if self.started:
            return
        if self.input_stream is not None:
            self._producers.append(asyncio.create_task(self._pump_input()))
        if self.state_events is not None:
            self._producers.append(asyncio.create_task(self._pump_state()))
        if self.tick_rate_ms > 0:
            self._producers.append(asyncio.create_task(self._tick()))

    async def next(self) -> Event:
        self.start()
        return await self._queue.get()

    async def close(self) -> None:
        for producer in self._producers:
            producer.cancel()
        if self._producers:
            await asyncio.wait(self._producers)
        self._producers = []

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def _pump_input(self) -> None:
        try:
            async for payload in self.input_stream:
                self._queue.put_nowait(TermEvent(payload))
            self._queue.put_nowait(InputClosed())
        except Exception as e:
            # le flux terminal est externe: on remonte l'erreur à la boucle
            logger.error(f"terminal input failed: {e}")
            self._queue.put_nowait(InputError(e))

    async def _pump_state(self) -> None:
        while True:
            event = await self.state_events.get()
            self._queue.put_nowait(StateChanged(event))

    async def _tick(self) -> None:
        period = self.tick_rate_ms / 1000
        while True:
            await asyncio.sleep(period)
            self._queue.put_nowait(Tick())
