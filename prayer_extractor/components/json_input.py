"""
Manual JSON input. Validation runs on submit; errors are shown inline and
the text stays editable for another attempt.
"""
import tkinter as tk
from tkinter import ttk

from prayer_extractor.core.component_base import ExtractorComponent
from prayer_extractor.core.errors import PrayerDataError
from prayer_extractor.core.validation import example_json

FORMAT_RULES = [
    "Must be an array of prayer time objects",
    "Each object must have: date, fajr, dhuhr, asr, maghrib, isha",
    'Date format: YYYY-MM-DD (e.g., "2025-01-01")',
    'Time format: HH:mm (e.g., "05:30")',
    "All fields must be strings",
]


class JsonInputComponent(ExtractorComponent):
    name = "JSON Input"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('medium')
        fonts = self.get_fonts()

        header = tk.Frame(self.frame)
        header.pack(fill=tk.X)
        self.create_label(header, text="Paste your prayer times data in JSON format", font_size='heading', bold=True).pack(side=tk.LEFT)
        self.clear_button = ttk.Button(header, text="Clear", command=self._clear)
        self.clear_button.pack(side=tk.RIGHT)
        ttk.Button(header, text="Load Example", command=self._load_example).pack(side=tk.RIGHT, padx=padding)

        text_frame = tk.Frame(self.frame)
        text_frame.pack(fill=tk.BOTH, expand=True, pady=padding)
        self.text = tk.Text(text_frame, height=16, wrap=tk.NONE, font=("Courier", fonts['body']), undo=True)
        scrollbar = ttk.Scrollbar(text_frame, orient="vertical", command=self.text.yview)
        self.text.configure(yscrollcommand=scrollbar.set)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.text.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.text.bind("<<Modified>>", self._on_modified)

        self.error_label = self.create_label(self.frame, text="", font_size='small', fg="#c62828", anchor="w", justify=tk.LEFT, wraplength=700)
        self.error_label.pack(fill=tk.X)

        self.submit_button = ttk.Button(self.frame, text="✅ Process JSON Data", command=self._submit)
        self.submit_button.pack(pady=padding)

        rules = tk.Frame(self.frame)
        rules.pack(fill=tk.X)
        self.create_label(rules, text="Format requirements", font_size='small', bold=True, anchor="w").pack(fill=tk.X)
        for rule in FORMAT_RULES:
            self.create_label(rules, text=f"• {rule}", font_size='small', fg="#666666", anchor="w").pack(fill=tk.X)

    def get_text(self) -> str:
        return self.text.get("1.0", tk.END).strip()

    def _on_modified(self, event=None) -> None:
        if self.text.edit_modified():
            self.error_label.configure(text="")
            self.text.edit_modified(False)
            self.update()

    def _load_example(self) -> None:
        self.text.delete("1.0", tk.END)
        self.text.insert("1.0", example_json())
        self.error_label.configure(text="")

    def _clear(self) -> None:
        self.text.delete("1.0", tk.END)
        self.error_label.configure(text="")

    def _submit(self) -> None:
        try:
            self.app.submit_json(self.get_text())
        except PrayerDataError as e:
            self.logger.info(f"JSON input rejected: {e.reason}")
            self.error_label.configure(text=e.reason)

    def update(self) -> None:
        has_text = bool(self.get_text())
        self.submit_button.state(["!disabled"] if has_text else ["disabled"])
        self.clear_button.state(["!disabled"] if has_text else ["disabled"])

    def reset(self) -> None:
        self._clear()
