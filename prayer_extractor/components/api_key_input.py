"""
Provider selection and API key entry. The key is re-validated on every
keystroke; it is only kept in the app's in-memory state.
"""
import tkinter as tk
from tkinter import ttk

from prayer_extractor.core.component_base import ExtractorComponent
from prayer_extractor.providers import PROVIDER_INFO

VALID_COLOR = "#2e7d32"
INVALID_COLOR = "#c62828"
HINT_COLOR = "#666666"


class ApiKeyInputComponent(ExtractorComponent):
    name = "API Key"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('medium')
        state = self.app.state

        self.create_label(self.frame, text="Choose an AI provider", font_size='heading', bold=True).pack(anchor="w")

        self.provider_var = tk.StringVar(value=state.provider)
        providers_frame = tk.Frame(self.frame)
        providers_frame.pack(fill=tk.X, pady=padding)
        for tag, info in PROVIDER_INFO.items():
            row = tk.Frame(providers_frame)
            row.pack(fill=tk.X, anchor="w")
            ttk.Radiobutton(
                row,
                text=info["name"],
                value=tag,
                variable=self.provider_var,
                command=self._on_change,
            ).pack(side=tk.LEFT)
            self.create_label(row, text=info["description"], font_size='small', fg=HINT_COLOR).pack(side=tk.LEFT, padx=padding)

        key_row = tk.Frame(self.frame)
        key_row.pack(fill=tk.X, pady=(padding, 0))
        self.key_label = self.create_label(key_row, text="API key", font_size='body', bold=True)
        self.key_label.pack(side=tk.LEFT)

        self.key_var = tk.StringVar(value=state.api_key)
        self.key_entry = ttk.Entry(key_row, textvariable=self.key_var, show="•", width=56)
        self.key_entry.pack(side=tk.LEFT, padx=padding, fill=tk.X, expand=True)
        self.key_var.trace_add("write", lambda *args: self._on_change())

        self.visible = False
        self.toggle_button = ttk.Button(key_row, text="Show", width=6, command=self._toggle_visibility)
        self.toggle_button.pack(side=tk.LEFT)

        self.message_label = self.create_label(self.frame, text="", font_size='small', anchor="w")
        self.message_label.pack(fill=tk.X, pady=(2, 0))
        self.instructions_label = self.create_label(self.frame, text="", font_size='small', fg=HINT_COLOR, anchor="w")
        self.instructions_label.pack(fill=tk.X)

    def _toggle_visibility(self) -> None:
        self.visible = not self.visible
        self.key_entry.configure(show="" if self.visible else "•")
        self.toggle_button.configure(text="Hide" if self.visible else "Show")

    def _on_change(self) -> None:
        self.app.on_api_key_change(self.provider_var.get(), self.key_var.get())
        self.update()

    def update(self) -> None:
        state = self.app.state
        if self.provider_var.get() != state.provider:
            self.provider_var.set(state.provider)
        if self.key_var.get() != state.api_key:
            self.key_var.set(state.api_key)

        info = PROVIDER_INFO.get(state.provider, {})
        self.key_label.configure(text=f"{info.get('name', 'API')} key ({info.get('key_format', '')})")
        self.instructions_label.configure(text=info.get("instructions", "Enter your API key"))

        if not state.api_key.strip():
            self.message_label.configure(text="API key is required", fg=HINT_COLOR)
        elif state.api_key_valid:
            self.message_label.configure(text="✓ API key format looks valid", fg=VALID_COLOR)
        else:
            self.message_label.configure(text=state.api_key_message or "", fg=INVALID_COLOR)
