"""Interfaces for external collaborators of the analysis pipeline."""

from .text_completer import TextCompleter

__all__ = ["TextCompleter"]
