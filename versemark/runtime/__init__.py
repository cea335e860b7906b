"""Runtime services for managing study state and operations."""

from .editor import AnnotationEditor
from .notes import NoteService
from .renderer import VerseRenderer

__all__ = ["AnnotationEditor", "NoteService", "VerseRenderer"]
