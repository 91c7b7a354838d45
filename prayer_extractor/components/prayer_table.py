"""
Editable prayer times table with export actions.
Each cell writes straight into the working set; edits are not re-validated.
"""
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Dict, List

from prayer_extractor.core.component_base import ExtractorComponent
from prayer_extractor.core.exporter import SendStatus
from prayer_extractor.core.validation import COLUMN_HEADERS, REQUIRED_FIELDS

from .status import make_thumbnail

SEND_LABELS = {
    SendStatus.IDLE: "Send to Telegram Bot",
    SendStatus.SENDING: "Sending...",
    SendStatus.SUCCESS: "Sent Successfully!",
    SendStatus.ERROR: "Send Failed!",
}


class PrayerTableComponent(ExtractorComponent):
    name = "Prayer Table"

    def __init__(self, app, config=None):
        super().__init__(app, config)
        self._cell_vars: List[Dict[str, tk.StringVar]] = []
        self._row_widgets: List[tk.Widget] = []
        self._photo = None

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('medium')

        header = tk.Frame(self.frame)
        header.pack(fill=tk.X)
        self.title_label = self.create_label(header, text="Extracted Prayer Times", font_size='heading', bold=True)
        self.title_label.pack(side=tk.LEFT)
        ttk.Button(header, text="Export JSON", command=self.app.export_file).pack(side=tk.RIGHT)
        self.send_button = ttk.Button(header, text=SEND_LABELS[SendStatus.IDLE], command=self.app.send_to_bot)
        self.send_button.pack(side=tk.RIGHT, padx=padding)

        body = tk.Frame(self.frame)
        body.pack(fill=tk.BOTH, expand=True, pady=padding)

        self.preview_label = tk.Label(body)
        self.preview_label.pack(side=tk.LEFT, anchor="n", padx=(0, padding))

        # Scrollable grid of entries
        self.canvas_frame = canvas_frame = tk.Frame(body)
        canvas_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.canvas = tk.Canvas(canvas_frame, highlightthickness=0)
        scrollbar = ttk.Scrollbar(canvas_frame, orient="vertical", command=self.canvas.yview)
        self.canvas.configure(yscrollcommand=scrollbar.set)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.table_frame = tk.Frame(self.canvas)
        self.canvas.create_window((0, 0), window=self.table_frame, anchor="nw")
        self.table_frame.bind("<Configure>", lambda e: self.canvas.configure(scrollregion=self.canvas.bbox("all")))

        for col, field in enumerate(REQUIRED_FIELDS):
            self.create_label(self.table_frame, text=COLUMN_HEADERS[field], font_size='small', bold=True).grid(
                row=0, column=col, padx=2, pady=2, sticky="w"
            )

    def _on_cell_edit(self, index: int, field: str) -> None:
        value = self._cell_vars[index][field].get()
        self.app.update_record(index, field, value)

    def update(self) -> None:
        """Rebuild rows from the working set."""
        for w in self._row_widgets:
            w.destroy()
        self._row_widgets.clear()
        self._cell_vars.clear()

        state = self.app.state
        fonts = self.get_fonts()
        for i, record in enumerate(state.records):
            row_vars: Dict[str, tk.StringVar] = {}
            for col, field in enumerate(REQUIRED_FIELDS):
                var = tk.StringVar(value=record.get(field, ""))
                entry = ttk.Entry(
                    self.table_frame,
                    textvariable=var,
                    width=12 if field == "date" else 7,
                    font=("Courier", fonts['small']),
                )
                entry.grid(row=i + 1, column=col, padx=2, pady=1, sticky="w")
                var.trace_add("write", lambda *args, idx=i, f=field: self._on_cell_edit(idx, f))
                row_vars[field] = var
                self._row_widgets.append(entry)
            self._cell_vars.append(row_vars)

        self.title_label.configure(text=f"Extracted Prayer Times ({len(state.records)} days)")
        self._photo = make_thumbnail(state.image_preview, size=(220, 320))
        if self._photo:
            self.preview_label.configure(image=self._photo)
            self.preview_label.pack(side=tk.LEFT, anchor="n", padx=(0, self.get_padding("medium")), before=self.canvas_frame)
        else:
            self.preview_label.pack_forget()
        self.set_send_status(self.app.bot_sender.status)

    def set_send_status(self, status: str) -> None:
        if not self.frame or not self.frame.winfo_exists():
            return
        self.send_button.configure(text=SEND_LABELS.get(status, SEND_LABELS[SendStatus.IDLE]))
        self.send_button.state(["disabled"] if status == SendStatus.SENDING else ["!disabled"])

    def show_message(self, title: str, message: str, error: bool = False) -> None:
        if error:
            messagebox.showerror(title, message)
        else:
            messagebox.showinfo(title, message)
