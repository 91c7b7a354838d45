import io
import logging
import tkinter as tk
from tkinter import ttk
from typing import Optional, Tuple

from PIL import Image, ImageTk, UnidentifiedImageError

from prayer_extractor.core.component_base import ExtractorComponent
from prayer_extractor.providers import provider_name

logger = logging.getLogger(__name__)


def make_thumbnail(image, size: Tuple[int, int] = (260, 360)) -> Optional[ImageTk.PhotoImage]:
    """PhotoImage preview of an ImagePayload, or None when it cannot be decoded."""
    data = getattr(image, "data", None)
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.thumbnail(size)
            return ImageTk.PhotoImage(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not render image preview: {e}")
        return None


class LoaderComponent(ExtractorComponent):
    name = "Loader"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('large')
        self._photo = None

        self.preview_label = tk.Label(self.frame)
        self.preview_label.pack(pady=padding)
        self.create_label(self.frame, text="Analyzing timetable…", font_size='heading', bold=True).pack()
        self.provider_label = self.create_label(self.frame, text="", font_size='small', fg="#666666")
        self.provider_label.pack(pady=(2, padding))
        self.progress = ttk.Progressbar(self.frame, mode="indeterminate", length=280)
        self.progress.pack()

    def show(self) -> None:
        super().show()
        self.progress.start(12)

    def hide(self) -> None:
        self.progress.stop()
        super().hide()

    def update(self) -> None:
        state = self.app.state
        self._photo = make_thumbnail(state.image_preview)
        self.preview_label.configure(image=self._photo or "")
        self.provider_label.configure(text=f"Extracting prayer times with {provider_name(state.provider)}. This can take a minute.")


class ErrorComponent(ExtractorComponent):
    name = "Error"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('large')

        box = tk.Frame(self.frame, relief=tk.GROOVE, borderwidth=1)
        box.pack(pady=padding * 2, ipadx=padding, ipady=padding)
        self.create_label(box, text="⚠", font_size='title', fg="#c62828").pack(pady=(padding, 0))
        self.create_label(box, text="Processing Failed", font_size='heading', bold=True).pack()
        self.message_label = self.create_label(box, text="", font_size='body', fg="#666666", wraplength=520, justify=tk.CENTER)
        self.message_label.pack(padx=padding, pady=padding)
        ttk.Button(box, text="Start Over", command=self.app.reset).pack(pady=(0, padding))

    def update(self) -> None:
        self.message_label.configure(text=self.app.state.error_message)
