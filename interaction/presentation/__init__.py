"""
Presentation engines.

PygletPresenter is imported lazily by callers so that the rest of the
package can be used without opening a display.
"""

from .base import PresentationEngine, CompletionCallback

__all__ = [
    'PresentationEngine',
    'CompletionCallback',
]
