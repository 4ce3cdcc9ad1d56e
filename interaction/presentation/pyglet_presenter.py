"""
PygletPresenter implementation.

Draws one step at a time in a pyglet window: a text or image stimulus, an
optional prompt and a row of clickable buttons.
"""

from typing import List, Optional, Tuple
import logging
import os
import time

import pyglet
from pyglet.image.codecs import ImageDecodeException

from ..execution.step import INDEFINITE, LeafKind, StepDescriptor
from .base import CompletionCallback, PresentationEngine

logger = logging.getLogger(__name__)

BUTTON_WIDTH = 180
BUTTON_HEIGHT = 60
BUTTON_SPACING = 40
IMAGE_BUTTON_SIZE = 160


class PygletPresenter(PresentationEngine):
    """
    Presentation engine backed by a single pyglet window.

    Responses are mouse clicks on buttons. A step ends on the first click
    when ``response_ends_trial`` is set, otherwise when its duration runs out
    (keeping the first click as the response).
    """

    def __init__(self, width: int = 1024, height: int = 768, fullscreen: bool = False,
                 image_dir: str = "images", rng=None):
        """
        Initialize presenter.

        Args:
            width: Window width (ignored when fullscreen)
            height: Window height (ignored when fullscreen)
            fullscreen: Open fullscreen
            image_dir: Directory for image buttons (<choice>.jpg)
            rng: random.Random used for shuffling
        """
        super().__init__(rng)
        if fullscreen:
            self.window = pyglet.window.Window(fullscreen=True, caption="Dyadic Interaction")
        else:
            self.window = pyglet.window.Window(width, height, caption="Dyadic Interaction")
        self.image_dir = image_dir

        self._batch = pyglet.graphics.Batch()
        self._drawables = []
        self._button_rects: List[Tuple[float, float, float, float]] = []
        self._current: Optional[StepDescriptor] = None
        self._on_complete: Optional[CompletionCallback] = None
        self._start_time = 0.0
        self._response: Optional[int] = None
        self._rt: Optional[float] = None

        self.window.push_handlers(on_draw=self._on_draw, on_mouse_press=self._on_mouse_press)

    # ==================== ENGINE INTERFACE ====================

    def run(self, descriptor: StepDescriptor, on_complete: CompletionCallback) -> None:
        if self._current is not None:
            logger.warning(f"Step '{self._current.name}' replaced before completing")
            self._clear()

        self._current = descriptor
        self._on_complete = on_complete
        self._response = None
        self._rt = None
        self._build(descriptor)
        self._start_time = time.time()

        if descriptor.duration is not None and descriptor.duration is not INDEFINITE:
            pyglet.clock.schedule_once(self._on_timeout, descriptor.duration)

    def force_complete(self, descriptor: StepDescriptor) -> None:
        if descriptor is not self._current:
            return
        self._complete(None, None)

    def close(self):
        self.window.close()

    # ==================== DRAWING ====================

    def _build(self, descriptor: StepDescriptor):
        width, height = self.window.width, self.window.height
        self._batch = pyglet.graphics.Batch()
        self._drawables = []
        self._button_rects = []

        if descriptor.kind is LeafKind.IMAGE and descriptor.stimulus:
            sprite = self._load_sprite(descriptor.stimulus)
            if sprite is not None:
                sprite.x = (width - sprite.width) // 2
                sprite.y = height // 2
                self._drawables.append(sprite)
        elif descriptor.stimulus:
            self._drawables.append(pyglet.text.Label(
                descriptor.stimulus,
                font_name='Arial',
                font_size=24,
                x=width // 2,
                y=height * 2 // 3,
                anchor_x='center',
                anchor_y='center',
                multiline=True,
                width=int(width * 0.8),
                align='center',
                batch=self._batch
            ))

        if descriptor.prompt:
            self._drawables.append(pyglet.text.Label(
                descriptor.prompt,
                font_name='Arial',
                font_size=20,
                x=width // 2,
                y=height // 2 - 40,
                anchor_x='center',
                anchor_y='center',
                batch=self._batch
            ))

        self._build_buttons(descriptor)

    def _build_buttons(self, descriptor: StepDescriptor):
        choices = descriptor.choices
        if not choices:
            return

        size_w = IMAGE_BUTTON_SIZE if descriptor.choice_images else BUTTON_WIDTH
        size_h = IMAGE_BUTTON_SIZE if descriptor.choice_images else BUTTON_HEIGHT
        total = len(choices) * size_w + (len(choices) - 1) * BUTTON_SPACING
        x = (self.window.width - total) // 2
        y = self.window.height // 6

        for choice in choices:
            self._button_rects.append((x, y, size_w, size_h))
            # Hidden buttons keep the layout but draw nothing
            if not descriptor.hidden_choices:
                self._drawables.append(pyglet.shapes.Rectangle(
                    x, y, size_w, size_h, color=(80, 80, 80), batch=self._batch
                ))
                if descriptor.choice_images:
                    sprite = self._load_sprite(os.path.join(self.image_dir, f"{choice}.jpg"))
                    if sprite is not None:
                        sprite.scale = min(size_w / sprite.width, size_h / sprite.height)
                        sprite.x, sprite.y = x, y
                        self._drawables.append(sprite)
                else:
                    self._drawables.append(pyglet.text.Label(
                        choice,
                        font_name='Arial',
                        font_size=18,
                        x=x + size_w // 2,
                        y=y + size_h // 2,
                        anchor_x='center',
                        anchor_y='center',
                        batch=self._batch
                    ))
            x += size_w + BUTTON_SPACING

    def _load_sprite(self, path: str):
        try:
            image = pyglet.image.load(path)
        except (FileNotFoundError, ImageDecodeException) as e:
            logger.warning(f"Could not load image {path}: {e}")
            return None
        return pyglet.sprite.Sprite(image, batch=self._batch)

    def _on_draw(self):
        self.window.clear()
        self._batch.draw()

    # ==================== RESPONSES ====================

    def _on_mouse_press(self, x, y, button, modifiers):
        descriptor = self._current
        if descriptor is None or descriptor.hidden_choices:
            return

        for index, (bx, by, bw, bh) in enumerate(self._button_rects):
            if bx <= x <= bx + bw and by <= y <= by + bh:
                rt = (time.time() - self._start_time) * 1000
                if descriptor.response_ends_trial:
                    self._complete(index, rt)
                elif self._response is None:
                    self._response, self._rt = index, rt
                return

    def _on_timeout(self, dt):
        self._complete(self._response, self._rt)

    def _complete(self, response: Optional[int], rt: Optional[float]):
        pyglet.clock.unschedule(self._on_timeout)
        callback = self._on_complete
        self._clear()
        if callback:
            callback(response, rt)

    def _clear(self):
        self._current = None
        self._on_complete = None
        self._batch = pyglet.graphics.Batch()
        self._drawables = []
        self._button_rects = []
