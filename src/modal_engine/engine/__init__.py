"""Keystroke state machine."""

from .key_engine import KeyEngine

__all__ = ["KeyEngine"]
