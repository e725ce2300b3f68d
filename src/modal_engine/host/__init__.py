"""Host editor protocol and the in-memory reference host."""

from .document import TextDocument
from .memory import InMemoryEditor, Notification
from .protocol import EditorHost, Position, Selection

__all__ = [
    "EditorHost",
    "InMemoryEditor",
    "Notification",
    "Position",
    "Selection",
    "TextDocument",
]
