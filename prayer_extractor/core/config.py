import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from watchdog.events import FileModifiedEvent, FileSystemEventHandler
from watchdog.observers import Observer

_ENV_REF_RE = re.compile(r'^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$|^\$([A-Za-z_][A-Za-z0-9_]*)$')


def default_config(config_dir: Path) -> Dict[str, Any]:
    return {
        "window": {
            "width": 1000,
            "height": 760,
            "background_color": None,
        },
        "logging": {
            "level": "INFO",
            "file": str(config_dir / "prayer_extractor.log"),
        },
        "bot": {
            "base_url": "${BOT_API_URL}",
            "timeout": 15,
            "revert_delay": 3,
        },
        "providers": {
            "default": "gemini",
            "request_timeout": 120,
            "gemini": {"model": "gemini-2.5-flash"},
            "openai": {"model": "gpt-4o", "max_tokens": 4000, "temperature": 0.1},
        },
        "export": {
            "directory": "~/Downloads",
            "filename": "prayer-times.json",
        },
        "api": {
            "enabled": False,
            "host": "127.0.0.1",
            "port": 8765,
        },
    }


_ENV_LINE_RE = re.compile(r'^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$')


def parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    """KEY=VALUE from one .env line, or None for blanks, comments and junk."""
    line = line.strip()
    if not line or line.startswith('#'):
        return None
    match = _ENV_LINE_RE.match(line)
    if not match:
        return None
    key, value = match.groups()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return key, value


def changed_sections(old: Dict[str, Any], new: Dict[str, Any]) -> List[str]:
    """Top-level sections that differ between two loaded configs."""
    return sorted(key for key in set(old) | set(new) if old.get(key) != new.get(key))


class ConfigChangeHandler(FileSystemEventHandler):
    """Reloads the config when its file is written, at most once per cooldown."""

    def __init__(self, config, cooldown: float = 1.0):
        self.config = config
        self.cooldown = cooldown
        self._last_reload = 0.0

    def on_modified(self, event):
        if not isinstance(event, FileModifiedEvent):
            return
        if Path(event.src_path) != self.config.config_file:
            return

        now = time.monotonic()
        if now - self._last_reload < self.cooldown:
            return
        self._last_reload = now
        try:
            self.config.reload()
        except Exception as e:
            logging.error(f"Error handling config change: {e}")


class Config:
    """YAML config with .env loading, $VAR substitution and live reload.

    API keys are never read from or written to this file.
    """

    def __init__(self, root=None, config_path: Optional[str] = None, watch: bool = True):
        self.root = root
        self.change_callbacks: List[Callable] = []
        self._loading = False
        self.observer = None

        if config_path:
            self.config_file = Path(config_path).resolve()
        else:
            self.config_file = Path.cwd() / "config.yaml"
        self.config_dir = self.config_file.parent
        logging.debug(f"Using config file: {self.config_file}")

        self._load_env_file()
        self._ensure_config_exists()
        self._load_config()

        if watch:
            self.observer = Observer()
            self.observer.schedule(ConfigChangeHandler(self), str(self.config_dir), recursive=False)
            self.observer.start()
            logging.info(f"Watching {self.config_file} for changes")

    def register_change_callback(self, callback: Callable) -> None:
        """Register a callback to be called with the new data when config changes"""
        self.change_callbacks.append(callback)

    def section(self, name: str) -> Dict[str, Any]:
        value = self.data.get(name)
        return value if isinstance(value, dict) else {}

    def reload(self) -> None:
        """Re-read the file and hand the new data to every callback."""
        if self._loading:
            return
        self._loading = True
        try:
            # Editors may still be writing
            time.sleep(0.1)
            previous = self.data
            self._load_config()
            sections = changed_sections(previous, self.data)
            if not sections:
                logging.debug("Config reloaded, nothing changed")
                return
            # Values may hold resolved secrets, so only section names are logged
            logging.info(f"Config reloaded, changed sections: {', '.join(sections)}")
            self._notify()
        finally:
            self._loading = False

    def _notify(self) -> None:
        for callback in self.change_callbacks:
            try:
                if self.root:
                    self.root.after_idle(lambda cb=callback: cb(self.data))
                else:
                    callback(self.data)
            except Exception as e:
                logging.error(f"Error in config change callback: {e}", exc_info=True)

    def cleanup(self) -> None:
        """Stop the file observer"""
        if self.observer:
            self.observer.stop()
            self.observer.join()

    def _ensure_config_exists(self) -> None:
        """Create default config if it doesn't exist"""
        if self.config_file.exists():
            return
        self.config_dir.mkdir(parents=True, exist_ok=True)
        logging.info(f"Creating default config file: {self.config_file}")
        self.config_file.write_text(yaml.safe_dump(default_config(self.config_dir), sort_keys=False))

    def _load_env_file(self) -> None:
        """Export KEY=VALUE pairs from the first .env found; set variables win."""
        candidates = [self.config_dir / ".env", Path.cwd() / ".env"]
        env_file = next((path for path in candidates if path.is_file()), None)
        if env_file is None:
            logging.debug("No .env file found")
            return

        try:
            lines = env_file.read_text().splitlines()
        except OSError as e:
            logging.warning(f"Error reading {env_file}: {e}")
            return

        loaded = 0
        for line in lines:
            pair = parse_env_line(line)
            if pair and pair[0] not in os.environ:
                os.environ[pair[0]] = pair[1]
                loaded += 1
        logging.info(f"Loaded {loaded} variable(s) from {env_file}")

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively substitute ${VAR} / $VAR strings. Unset variables become None."""
        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]
        elif isinstance(data, str):
            match = _ENV_REF_RE.match(data)
            if match:
                var_name = match.group(1) or match.group(2)
                return os.environ.get(var_name) or None
            return data
        return data

    def _load_config(self) -> None:
        """Load configuration from file"""
        try:
            logging.debug(f"Loading config from: {self.config_file}")
            with open(self.config_file) as f:
                new_data = yaml.safe_load(f)

            if not isinstance(new_data, dict):
                raise ValueError("Invalid config format: root must be a dictionary")

            self.data = self._substitute_env_vars(new_data)

            if "logging" in self.data and self.data["logging"].get("file"):
                self.data["logging"]["file"] = os.path.expanduser(self.data["logging"]["file"])

        except Exception as e:
            logging.error(f"Error loading config: {e}")
            if hasattr(self, 'data'):
                logging.info("Keeping previous configuration")
            else:
                logging.info("Using default configuration")
                self.data = self._substitute_env_vars(default_config(self.config_dir))
