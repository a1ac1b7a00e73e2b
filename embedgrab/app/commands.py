import threading
from dataclasses import dataclass
from typing import Protocol, Type, Dict, Any, TypeVar, Optional

# --- Commands ---
@dataclass
class Command:
    pass

@dataclass
class ResolveStream(Command):
    url: str
    max_retries: Optional[int] = None
    cancel_event: Optional[threading.Event] = None

@dataclass
class ResolveEntry(Command):
    record: dict
    max_retries: Optional[int] = None
    cancel_event: Optional[threading.Event] = None

@dataclass
class InspectDocument(Command):
    text: str
    platform: Optional[str] = None

@dataclass
class ShowConfig(Command):
    key: Optional[str] = None

@dataclass
class SetConfig(Command):
    key: str
    value: str


# --- Bus ---
C = TypeVar("C", bound=Command)

class CommandHandler(Protocol[C]):
    def __call__(self, command: C) -> Any:
        ...

class CommandBus:
    def __init__(self):
        self._handlers: Dict[Type[Command], CommandHandler] = {}

    def register(self, command_type: Type[C], handler: CommandHandler[C]):
        self._handlers[command_type] = handler

    def handle(self, command: Command) -> Any:
        handler = self._handlers.get(type(command))
        if not handler:
            raise ValueError(f"No handler registered for {type(command)}")
        return handler(command)
