"""JSON document store for clipkeep.

The whole document lives in memory and is addressed with dotted paths such as
``settings.shortcut``. Writes mark the document dirty and (re)start a debounce
timer; when the timer fires the document is written to a temp file in the
same directory and renamed over the previous one, so a crash mid-write leaves
the last good file in place.

Every mutation runs under one re-entrant lock, which also serialises change
notifications, so listeners for a path see changes in the order they were
made.
"""

from __future__ import annotations

import copy
import enum
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from pydantic import TypeAdapter, ValidationError

from clipkeep.models.clipboard_item import ClipboardItem
from clipkeep.models.document import HISTORY_KEY, SETTINGS_KEY, default_document
from clipkeep.models.settings import Settings
from clipkeep.utils.config import STORE_FILE_NAME

logger = logging.getLogger(__name__)

_MISSING = object()
_HISTORY_ADAPTER = TypeAdapter(List[ClipboardItem])


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class StoreEvent:
    """Base class for everything the store publishes."""


@dataclass(frozen=True)
class KeyChanged(StoreEvent):
    path: str
    new_value: Any
    old_value: Any


@dataclass(frozen=True)
class HistoryChanged(KeyChanged):
    pass


@dataclass(frozen=True)
class SettingsChanged(KeyChanged):
    pass


@dataclass(frozen=True)
class Cleared(StoreEvent):
    old_document: Dict[str, Any]
    new_document: Dict[str, Any]


Listener = Callable[[StoreEvent], None]
Broadcast = Callable[[StoreEvent], None]


def _split_path(path: Any) -> Optional[List[str]]:
    if not isinstance(path, str) or not path:
        return None
    parts = path.split(".")
    if any(not part for part in parts):
        return None
    return parts


def _child(node: Any, part: str) -> Any:
    if isinstance(node, dict):
        return node.get(part, _MISSING)
    if isinstance(node, list) and part.isdigit() and int(part) < len(node):
        return node[int(part)]
    return _MISSING


def _event_for(path: str, new_value: Any, old_value: Any) -> KeyChanged:
    root = path.split(".", 1)[0]
    if root == HISTORY_KEY:
        return HistoryChanged(path, new_value, old_value)
    if root == SETTINGS_KEY:
        return SettingsChanged(path, new_value, old_value)
    return KeyChanged(path, new_value, old_value)


class DocumentStore:
    """Single owner of the persisted clipboard document.

    ``get`` never raises for absent paths and ``set``/``delete``/``clear``
    return ``False`` instead of raising when a write cannot be applied.

    Until :meth:`load` has finished, reads are served from the default
    document and writes are refused (logged and ``False``).

    Numeric segments address list elements for reads and writes alike
    (``clipboardHistory.0.favorite``); an index past the end of a list is
    never created implicitly.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        *,
        file_name: str = STORE_FILE_NAME,
        debounce: float = 1.0,
        broadcast: Optional[Broadcast] = None,
        autoload: bool = True,
    ) -> None:
        self._directory = Path(directory)
        self._file_path = self._directory / file_name
        self.debounce = debounce
        self._broadcast = broadcast
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = default_document()
        self._dirty = False
        self._save_timer: Optional[threading.Timer] = None
        self._listeners: List[Tuple[Optional[Type[StoreEvent]], Listener]] = []
        self._state = StoreState.UNINITIALIZED
        self.load_error: Optional[Exception] = None

        if autoload:
            self.load()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def path(self) -> Path:
        return self._directory

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def save_pending(self) -> bool:
        return self._save_timer is not None

    def is_loaded(self) -> bool:
        return self._state in (StoreState.READY, StoreState.ERROR)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self) -> None:
        with self._lock:
            self._state = StoreState.LOADING
            self.load_error = None

            if not self._file_path.exists():
                self._data = default_document()
                self._dirty = True
                if self._save_to_file():
                    self._state = StoreState.READY
                    logger.info("Created new data file: %s", self._file_path)
                else:
                    self._state = StoreState.ERROR
                return

            try:
                raw = json.loads(self._file_path.read_text(encoding="utf-8"))
                if not isinstance(raw, dict):
                    raise ValueError(
                        f"document root must be an object, got {type(raw).__name__}")
            except (OSError, ValueError) as e:
                logger.error(
                    "Error loading data from %s, falling back to defaults "
                    "(stored history will be replaced on next save): %s",
                    self._file_path, e)
                self.load_error = e
                self._data = default_document()
                self._dirty = False
                self._state = StoreState.READY
                return

            self._data = self._normalize(raw)
            self._dirty = False
            self._state = StoreState.READY
            logger.info("Data loaded from file: %s", self._file_path)

            history = self._data[HISTORY_KEY]
            self._emit(HistoryChanged(HISTORY_KEY, copy.deepcopy(history), []))

    def reload(self) -> None:
        """Discard unsaved changes and re-read the backing file."""
        with self._lock:
            self._cancel_timer()
            self._dirty = False
            self.load()
            settings = self._data.get(SETTINGS_KEY)
            self._emit(SettingsChanged(SETTINGS_KEY, copy.deepcopy(settings), None))

    def _normalize(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(raw)

        history = data.get(HISTORY_KEY)
        if not isinstance(history, list):
            if history is not None:
                logger.warning("Ignoring non-list %s in stored document", HISTORY_KEY)
            history = []
        valid_history = []
        seen = set()
        for record in history:
            try:
                item = ClipboardItem.from_record(record)
            except ValidationError as e:
                logger.warning("Dropping invalid history entry: %s", e)
                continue
            if item.content in seen:
                logger.warning("Dropping duplicate history entry %s", item.id)
                continue
            seen.add(item.content)
            valid_history.append(item.to_record())
        data[HISTORY_KEY] = valid_history

        settings = data.get(SETTINGS_KEY)
        merged = Settings().to_record()
        if isinstance(settings, dict):
            merged.update(settings)
        try:
            data[SETTINGS_KEY] = Settings.model_validate(merged).to_record()
        except ValidationError as e:
            logger.warning("Stored settings are invalid, using defaults: %s", e)
            data[SETTINGS_KEY] = Settings().to_record()

        return data

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------
    def get(self, path: str, default: Any = None) -> Any:
        parts = _split_path(path)
        if parts is None:
            logger.warning("Invalid store path: %r", path)
            return default

        with self._lock:
            if not self.is_loaded():
                logger.warning("Attempting to get data before load completion")
            value = self._lookup(parts)
            if value is _MISSING:
                return default
            return copy.deepcopy(value)

    def set(self, path: str, value: Any) -> bool:
        return self._write(path, copy.deepcopy(value))

    def delete(self, path: str) -> bool:
        return self._write(path, _MISSING)

    def clear(self) -> bool:
        with self._lock:
            if not self.is_loaded():
                logger.warning("Attempting to clear data before load completion")
                return False

            old_data = self._data
            self._data = default_document()
            self._mark_dirty()
            self._emit(Cleared(old_data, copy.deepcopy(self._data)))
            return True

    def get_all_data(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)

    # typed accessors ---------------------------------------------------
    def get_history(self) -> List[ClipboardItem]:
        return [ClipboardItem.from_record(r) for r in self.get(HISTORY_KEY, [])]

    def set_history(self, items: List[ClipboardItem]) -> bool:
        return self.set(HISTORY_KEY, [item.to_record() for item in items])

    def get_settings(self) -> Settings:
        return Settings.model_validate(self.get(SETTINGS_KEY, {}))

    def set_settings(self, settings: Settings) -> bool:
        return self.set(SETTINGS_KEY, settings.to_record())

    # subscriptions -----------------------------------------------------
    def subscribe(
        self,
        callback: Listener,
        event_type: Optional[Type[StoreEvent]] = None,
    ) -> Callable[[], None]:
        entry = (event_type, callback)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def on_did_change(
        self,
        path: str,
        callback: Callable[[Any, Any], None],
    ) -> Callable[[], None]:
        def handler(event: StoreEvent) -> None:
            if isinstance(event, KeyChanged) and event.path == path:
                callback(event.new_value, event.old_value)

        return self.subscribe(handler, KeyChanged)

    def on_did_clear(self, callback: Callable[[Cleared], None]) -> Callable[[], None]:
        return self.subscribe(callback, Cleared)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def flush(self) -> bool:
        """Write pending changes now instead of waiting for the timer."""
        with self._lock:
            self._cancel_timer()
            return self._save_to_file()

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> "DocumentStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _lookup(self, parts: List[str]) -> Any:
        node: Any = self._data
        for part in parts:
            node = _child(node, part)
            if node is _MISSING:
                break
        return node

    def _write(self, path: str, value: Any) -> bool:
        parts = _split_path(path)
        if parts is None:
            logger.warning("Invalid store path: %r", path)
            return False

        with self._lock:
            if not self.is_loaded():
                logger.warning("Attempting to write %r before load completion", path)
                return False

            old_value = self._lookup(parts)
            if value is _MISSING and old_value is _MISSING:
                return True

            try:
                new_root = self._validate(parts[0], self._build_root(parts, value))
            except (ValueError, TypeError) as e:
                logger.warning("Rejected write to %r: %s", path, e)
                return False

            if new_root is _MISSING:
                self._data.pop(parts[0], None)
            else:
                self._data[parts[0]] = new_root
            self._mark_dirty()

            new_value = None if value is _MISSING else copy.deepcopy(self._lookup(parts))
            old_value = None if old_value is _MISSING else old_value
            self._emit(_event_for(path, new_value, old_value))
            return True

    def _build_root(self, parts: List[str], value: Any) -> Any:
        """Return the new value of ``parts[0]`` with ``value`` applied."""
        if len(parts) == 1:
            return value

        root = copy.deepcopy(self._data.get(parts[0], {}))
        if not isinstance(root, (dict, list)):
            raise ValueError(f"{parts[0]!r} is not an object")

        node = root
        for part in parts[1:-1]:
            child = _child(node, part)
            if child is _MISSING or child is None:
                if value is _MISSING:
                    return root
                if not isinstance(node, dict):
                    raise ValueError(f"index {part!r} is out of range")
                child = {}
                node[part] = child
            elif not isinstance(child, (dict, list)):
                raise ValueError(f"{part!r} is not an object")
            node = child

        last = parts[-1]
        if isinstance(node, list):
            if not (last.isdigit() and int(last) < len(node)):
                raise ValueError(f"index {last!r} is out of range")
            if value is _MISSING:
                del node[int(last)]
            else:
                node[int(last)] = value
        elif value is _MISSING:
            node.pop(last, None)
        else:
            node[last] = value
        return root

    def _validate(self, root_key: str, new_root: Any) -> Any:
        """Check ``new_root`` and return it in the form that gets stored."""
        if new_root is _MISSING:
            return new_root
        try:
            if root_key == HISTORY_KEY:
                items = _HISTORY_ADAPTER.validate_python(new_root)
                return _HISTORY_ADAPTER.dump_python(items, mode="json", exclude_none=True)
            if root_key == SETTINGS_KEY:
                settings = Settings.model_validate(new_root)
                return settings.model_dump(mode="json", exclude_none=True)
            json.dumps(new_root)
            return new_root
        except ValidationError as e:
            raise ValueError(str(e))

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._schedule_save()

    def _schedule_save(self) -> None:
        self._cancel_timer()
        timer = threading.Timer(self.debounce, self._on_save_timer)
        timer.daemon = True
        self._save_timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None

    def _on_save_timer(self) -> None:
        with self._lock:
            # a timer replaced while waiting for the lock must not touch state
            if self._save_timer is not threading.current_thread():
                return
            self._save_timer = None
            self._save_to_file()

    def _save_to_file(self) -> bool:
        if not self._dirty:
            return True

        try:
            text = json.dumps(self._data, indent=2, ensure_ascii=False)
            self._write_file(text)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving data to %s: %s", self._file_path, e)
            self._state = StoreState.ERROR
            return False

        self._dirty = False
        if self._state is StoreState.ERROR:
            self._state = StoreState.READY
        logger.info("Data saved to file")
        return True

    def _write_file(self, text: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._directory, prefix=f".{self._file_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._file_path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def _emit(self, event: StoreEvent) -> None:
        for event_type, callback in list(self._listeners):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                callback(event)
            except Exception:
                logger.exception("Store listener failed for %r", event)

        if self._broadcast is not None:
            try:
                self._broadcast(event)
            except Exception:
                logger.exception("Store broadcast failed for %r", event)
