import logging
import tkinter as tk
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

BASE_WINDOW_WIDTH = 1000
BASE_WINDOW_HEIGHT = 760


class ExtractorComponent(ABC):
    """One panel of the extractor window. Shown and hidden by the app per state."""

    def __init__(self, app, config: Optional[Dict[str, Any]] = None):
        self.frame: Optional[tk.Frame] = None
        self.app = app
        self.config = config or {}
        self.logger = logging.getLogger(self.name)

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the component"""
        pass

    def _scale(self) -> float:
        """Scale factor from current window size, clamped to 0.75x..1.5x"""
        root = getattr(self.app, 'root', None)
        if root is None or not root.winfo_exists():
            return 1.0
        width, height = root.winfo_width(), root.winfo_height()
        if width <= 1 or height <= 1:
            return 1.0
        scale = (width / BASE_WINDOW_WIDTH + height / BASE_WINDOW_HEIGHT) / 2
        return max(0.75, min(1.5, scale))

    def get_fonts(self) -> dict:
        scale = self._scale()
        return {
            'title': max(12, int(18 * scale)),
            'heading': max(10, int(14 * scale)),
            'body': max(9, int(11 * scale)),
            'small': max(8, int(9 * scale)),
        }

    def get_padding(self, size='medium') -> int:
        base = {'small': 4, 'medium': 8, 'large': 14}
        return max(2, int(base.get(size, base['medium']) * self._scale()))

    def create_label(self, parent, text="", font_size='body', bold=False, **kwargs) -> tk.Label:
        """Create a label using the named font sizes"""
        fonts = self.get_fonts()
        size = fonts.get(font_size, fonts['body']) if isinstance(font_size, str) else font_size
        family = kwargs.pop('font_family', 'Arial')
        font = (family, size, "bold") if bold else (family, size)
        return tk.Label(parent, text=text, font=font, **kwargs)

    @abstractmethod
    def initialize(self, parent: tk.Frame) -> None:
        """Build widgets inside parent"""
        self.frame = tk.Frame(parent)

    @abstractmethod
    def update(self) -> None:
        """Refresh widgets from app state"""
        pass

    def show(self) -> None:
        if self.frame and not self.frame.winfo_manager():
            padding = self.get_padding('medium')
            self.frame.pack(fill=tk.BOTH, expand=True, padx=padding, pady=padding)
        self.update()

    def hide(self) -> None:
        if self.frame and self.frame.winfo_manager():
            self.frame.pack_forget()

    def destroy(self) -> None:
        """Clean up resources"""
        try:
            if self.frame and self.frame.winfo_exists():
                self.frame.destroy()
            self.frame = None
            self.logger.debug(f"Component {self.name} destroyed")
        except Exception as e:
            self.logger.error(f"Error destroying component {self.name}: {e}")
