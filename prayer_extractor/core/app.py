import logging
import sys
import threading
import tkinter as tk
import tkinter.messagebox as messagebox
from concurrent.futures import Future
from queue import Empty, Queue
from tkinter import ttk
from typing import Any, Callable, Dict, List, Optional

from prayer_extractor.providers import extract_prayer_times, load_image

from .config import Config
from .errors import BotConfigurationError, InvalidTransitionError
from .exporter import DEFAULT_EXPORT_FILENAME, BotSender, export_to_file
from .state import AppState, ExtractorState, InputMethod

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class ExtractorApp:
    """Main window. Owns the state machine and shows one panel per state.

    Network calls run on a worker thread; results come back through
    result_queue and are applied on the tk main loop only.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.root = tk.Tk()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(root=self.root, config_path=config_path)
        self.config.register_change_callback(self.handle_config_change)
        self._setup_logging()
        self._configure_window()

        providers_config = self.config.section("providers")
        self.state = ExtractorState(default_provider=providers_config.get("default", "gemini"))
        self.result_queue: Queue = Queue()
        # Callables from worker threads, run on the main loop
        self.ui_calls: Queue = Queue()
        self.bot_sender = self._create_bot_sender()

        self._build_layout()

        try:
            from prayer_extractor.api import run_api_server
            run_api_server(self)
        except Exception as e:
            self.logger.warning(f"API server not started: {e}")

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        logging_config = self.config.section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = logging_config.get("file")
        if log_file:
            try:
                file_handler = logging.FileHandler(log_file)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
            except OSError as e:
                logging.warning(f"Cannot open log file {log_file}: {e}")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Prayer extractor starting...")

    def _configure_window(self) -> None:
        window_config = self.config.section("window")
        self.root.title("Prayer Timetable Extractor")
        self.root.geometry(f"{window_config.get('width', 1000)}x{window_config.get('height', 760)}")
        bg_color = window_config.get("background_color")
        if bg_color:
            self.root.configure(bg=bg_color)
            self.root.option_add('*background', bg_color)

    def _create_bot_sender(self) -> BotSender:
        return BotSender.from_config(
            self.config.section("bot"),
            scheduler=lambda delay, callback: self.ui_calls.put(
                lambda: self.root.after(int(delay * 1000), callback)
            ),
            on_status_change=lambda status: self.ui_calls.put(lambda: self._on_send_status(status)),
        )

    def _build_layout(self) -> None:
        from prayer_extractor.components import (
            ApiKeyInputComponent,
            ErrorComponent,
            ImageUploaderComponent,
            InputMethodComponent,
            JsonInputComponent,
            LoaderComponent,
            PrayerTableComponent,
        )

        header = tk.Frame(self.root)
        header.pack(fill=tk.X, padx=12, pady=(10, 0))
        tk.Label(header, text="Prayer Timetable Extractor", font=("Arial", 18, "bold")).pack(side=tk.LEFT)
        self.reset_button = ttk.Button(header, text="Start Over", command=self.reset)
        ttk.Separator(self.root, orient="horizontal").pack(fill=tk.X, pady=6)

        self.main_container = tk.Frame(self.root)
        self.main_container.pack(fill=tk.BOTH, expand=True)

        self.method_panel = InputMethodComponent(self)
        self.api_key_panel = ApiKeyInputComponent(self)
        self.uploader_panel = ImageUploaderComponent(self)
        self.json_panel = JsonInputComponent(self)
        self.loader_panel = LoaderComponent(self)
        self.error_panel = ErrorComponent(self)
        self.table_panel = PrayerTableComponent(self)
        self.components = [
            self.method_panel,
            self.api_key_panel,
            self.uploader_panel,
            self.json_panel,
            self.loader_panel,
            self.error_panel,
            self.table_panel,
        ]
        for component in self.components:
            component.initialize(self.main_container)
        self.refresh()

    def _visible_components(self) -> List[Any]:
        state = self.state.state
        if state == AppState.CONFIGURING:
            return [self.api_key_panel, self.uploader_panel]
        if state == AppState.PROCESSING:
            return [self.loader_panel]
        if state == AppState.SUCCESS:
            return [self.table_panel]
        if state == AppState.ERROR:
            return [self.error_panel]
        if self.state.input_method == InputMethod.JSON:
            return [self.json_panel]
        return [self.method_panel]

    def refresh(self) -> None:
        """Show the panels for the current state and hide the rest."""
        visible = self._visible_components()
        for component in self.components:
            if component not in visible:
                component.hide()
        for component in visible:
            component.show()
        if self.state.state == AppState.IDLE and self.state.input_method is None:
            self.reset_button.pack_forget()
        else:
            self.reset_button.pack(side=tk.RIGHT)

    def run_on_main(self, fn: Callable[[], Any], timeout: float = 30) -> Any:
        """Run fn on the tk main loop, refresh the panels and return its result.

        Used by the API server threads; exceptions raised by fn are re-raised
        in the calling thread.
        """
        if threading.current_thread() is threading.main_thread():
            try:
                return fn()
            finally:
                self.refresh()

        future: Future = Future()

        def call():
            try:
                future.set_result(fn())
            except Exception as e:
                future.set_exception(e)
            finally:
                self.refresh()

        self.ui_calls.put(call)
        return future.result(timeout=timeout)

    # Actions called by components

    def choose_method(self, method: str) -> None:
        self.state.choose_method(method)
        self.refresh()

    def on_api_key_change(self, provider: str, api_key: str) -> None:
        self.state.set_provider(provider)
        self.state.set_api_key(api_key)
        self.uploader_panel.update()

    def start_extraction(self, path: str) -> None:
        try:
            image = load_image(path)
        except (OSError, ValueError) as e:
            self.logger.error(f"Cannot read image {path}: {e}")
            messagebox.showerror("Invalid file", str(e))
            return

        if not self.state.begin_extraction(image_preview=image):
            self.logger.warning("Extraction refused: API key not valid")
            self.refresh()
            return
        self.refresh()

        attempt = self.state.attempt
        provider = self.state.provider
        api_key = self.state.api_key
        providers_config = self.config.section("providers")
        self.logger.info(f"Starting extraction of {image.name} with {provider} (key length {len(api_key)})")

        def work():
            try:
                records = extract_prayer_times(image, provider, api_key, providers_config)
                self.result_queue.put((attempt, records, None))
            except Exception as e:
                self.logger.error(f"Extraction failed: {e}", exc_info=True)
                self.result_queue.put((attempt, None, e))

        threading.Thread(target=work, daemon=True).start()

    def _drain_result_queue(self) -> None:
        """Apply worker results on the main thread."""
        try:
            while True:
                attempt, result, error = self.result_queue.get_nowait()
                if not self.state.is_current(attempt):
                    self.logger.debug(f"Dropping stale result of attempt {attempt}")
                    continue
                if error is not None:
                    self.state.fail_extraction(error)
                else:
                    self.state.complete_extraction(result)
                self.refresh()
        except Empty:
            pass
        except Exception as e:
            logging.error(f"Error draining result queue: {e}", exc_info=True)

        try:
            while True:
                self.ui_calls.get_nowait()()
        except Empty:
            pass
        except Exception as e:
            logging.error(f"Error running UI callback: {e}", exc_info=True)
        self.root.after(100, self._drain_result_queue)

    def submit_json(self, text: str) -> None:
        """Raises PrayerDataError for the JSON panel to display."""
        self.state.submit_json(text)
        self.refresh()

    def update_record(self, index: int, field: str, value: str) -> None:
        try:
            self.state.update_record(index, field, value)
        except (InvalidTransitionError, KeyError, IndexError) as e:
            self.logger.error(f"Cannot edit record {index}.{field}: {e}")

    def export_file(self) -> None:
        export_config = self.config.section("export")
        try:
            path = export_to_file(
                self.state.records,
                export_config.get("directory"),
                export_config.get("filename") or DEFAULT_EXPORT_FILENAME,
            )
        except OSError as e:
            self.logger.error(f"Export failed: {e}", exc_info=True)
            self.table_panel.show_message("Export failed", str(e), error=True)
            return
        self.table_panel.show_message("Exported", f"Saved {len(self.state.records)} day(s) to {path}")

    def send_to_bot(self) -> None:
        records = [dict(r) for r in self.state.records]

        def work():
            try:
                self.bot_sender.send(records)
            except BotConfigurationError as e:
                self.logger.warning(str(e))
                message = str(e)
                self.ui_calls.put(lambda: self.table_panel.show_message("Configuration missing", message, True))

        threading.Thread(target=work, daemon=True).start()

    def _on_send_status(self, status: str) -> None:
        self.table_panel.set_send_status(status)

    def reset(self) -> None:
        self.state.reset()
        self.json_panel.reset()
        self.refresh()

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Pick up bot endpoint and logging changes without restarting"""
        self.logger.info("Handling config change")
        try:
            bot_config = new_config.get("bot") or {}
            self.bot_sender.base_url = bot_config.get("base_url")
            self.bot_sender.timeout = bot_config.get("timeout", self.bot_sender.timeout)
            self.bot_sender.revert_delay = bot_config.get("revert_delay", self.bot_sender.revert_delay)
            level = (new_config.get("logging") or {}).get("level")
            if level:
                logging.getLogger().setLevel(getattr(logging, str(level).upper(), logging.INFO))
        except Exception as e:
            self.logger.error(f"Error handling config change: {e}", exc_info=True)

    def run(self):
        try:
            self.root.after(200, self._drain_result_queue)
            self.root.mainloop()
        finally:
            self.config.cleanup()
