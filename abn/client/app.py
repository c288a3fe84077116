"""UI run loop. The terminal and the widgets are external collaborators."""

import logging
from typing import Callable, Optional, Protocol

from abn.client.api import ApiClient
from abn.client.events import Event, EventBus, InputClosed, InputError, ServerStatus, StateChanged, TermEvent
from abn.client.state import State
from abn.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Terminal(Protocol):
    def enable(self) -> None: ...

    def restore(self) -> None: ...

    def draw(self, state: State, status: Optional[ServerStatus]) -> None: ...


# (app, payload) -> redraw?
InputHandler = Callable[["App", object], bool]


class App:
    def __init__(
        self,
        state: State,
        bus: EventBus,
        terminal: Terminal,
        on_input: Optional[InputHandler] = None,
    ):
        self.state = state
        self.bus = bus
        self.terminal = terminal
        self.on_input = on_input
        self.exit = False
        self.status: Optional[ServerStatus] = None
        self.renders = 0

    def quit(self) -> None:
        self.exit = True

    def render(self) -> None:
        self.terminal.draw(self.state, self.status)
        self.renders += 1

    def handle_event(self, event: Event) -> bool:
        """Apply one event. Returns True when the screen must be redrawn."""
        if isinstance(event, TermEvent):
            if self.on_input is None:
                return False
            return bool(self.on_input(self, event.payload))
        if isinstance(event, StateChanged):
            if isinstance(event.event, ServerStatus):
                self.status = event.event
            return True
        if isinstance(event, InputError):
            logger.error(f"input stream closed: {event.error}")
            self.quit()
            return False
        if isinstance(event, InputClosed):
            logger.info("input stream ended")
            self.quit()
            return False
        # Tick: pas d'animation pour l'instant
        return False

    async def run(self) -> None:
        self.terminal.enable()
        try:
            self.render()
            while not self.exit:
                event = await self.bus.next()
                if self.handle_event(event):
                    self.render()
        finally:
            # toujours rendre le terminal, même sur exception / annulation
            self.terminal.restore()
            self.state.abandon()
            await self.bus.close()


def build_app(
    terminal: Terminal,
    input_stream=None,
    on_input: Optional[InputHandler] = None,
    settings: Optional[Settings] = None,
    transport=None,
) -> App:
    """Wire api client, state and bus from the [client] settings."""
    settings = settings or get_settings()
    api = ApiClient(settings.SERVER_URL, settings.REQUEST_TIMEOUT, transport=transport)
    state = State(api)
    bus = EventBus(input_stream, state.subscribe(), settings.TICK_RATE_MS)
    return App(state, bus, terminal, on_input)
