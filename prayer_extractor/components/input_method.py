import tkinter as tk
from tkinter import ttk

from prayer_extractor.core.component_base import ExtractorComponent
from prayer_extractor.core.state import InputMethod


class InputMethodComponent(ExtractorComponent):
    name = "Input Method"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('large')

        self.create_label(self.frame, text="How would you like to add prayer times?", font_size='heading', bold=True).pack(pady=(padding, padding // 2))
        self.create_label(
            self.frame,
            text="Extract them from a photo of a printed timetable, or paste JSON you already have.",
            font_size='body',
            fg="#666666",
        ).pack(pady=(0, padding))

        buttons = tk.Frame(self.frame)
        buttons.pack(pady=padding)
        ttk.Button(
            buttons,
            text="📷  Upload Timetable Image",
            command=lambda: self.app.choose_method(InputMethod.IMAGE),
        ).pack(side=tk.LEFT, padx=padding, ipadx=10, ipady=10)
        ttk.Button(
            buttons,
            text="{ }  Paste JSON Data",
            command=lambda: self.app.choose_method(InputMethod.JSON),
        ).pack(side=tk.LEFT, padx=padding, ipadx=10, ipady=10)

    def update(self) -> None:
        pass
