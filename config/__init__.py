"""
Configuration structures for the dyadic interaction client.

This module contains the data class holding coordinator address, stimuli,
timings and screen texts.
"""

from .interaction import InteractionConfig

__all__ = ['InteractionConfig']
