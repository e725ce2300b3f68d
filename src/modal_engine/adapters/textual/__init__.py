"""Textual adapter: routes ``TextArea`` keystrokes through the engine.

``controller`` has no Textual dependency; ``host`` and ``app`` need the
``textual`` package.
"""

from .controller import TextualModalAdapter, TextualUIHooks

__all__ = ["TextualModalAdapter", "TextualUIHooks"]
