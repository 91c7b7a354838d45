import tkinter as tk
from tkinter import filedialog, ttk

from prayer_extractor.core.component_base import ExtractorComponent

IMAGE_FILETYPES = [
    ("Images", "*.png *.jpg *.jpeg *.webp *.gif *.bmp"),
    ("All files", "*.*"),
]


class ImageUploaderComponent(ExtractorComponent):
    name = "Image Uploader"

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        padding = self.get_padding('large')

        drop = tk.Frame(self.frame, relief=tk.GROOVE, borderwidth=2)
        drop.pack(fill=tk.X, pady=padding, ipady=padding)
        self.create_label(drop, text="Upload a photo of the prayer timetable", font_size='heading', bold=True).pack(pady=(padding, 2))
        self.create_label(drop, text="PNG, JPG or WEBP. The whole table and its header should be visible.", font_size='small', fg="#666666").pack()
        self.upload_button = ttk.Button(drop, text="Choose Image…", command=self._choose_file)
        self.upload_button.pack(pady=padding)

    def _choose_file(self) -> None:
        path = filedialog.askopenfilename(title="Select timetable image", filetypes=IMAGE_FILETYPES)
        if path:
            self.logger.info(f"Image selected: {path}")
            self.app.start_extraction(path)

    def update(self) -> None:
        self.upload_button.state(["!disabled"] if self.app.state.api_key_valid else ["disabled"])
