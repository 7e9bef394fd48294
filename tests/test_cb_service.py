import time

import pytest
from PIL import Image

from clipkeep.clipboard import ClipboardBackend, ClipboardImage, MemoryClipboard
from clipkeep.database import DocumentStore
from clipkeep.errors import ClipboardAccessError
from clipkeep.models import ClipboardItem
from clipkeep.services import ClipboardPoller, cap_history, merge_into_history
from clipkeep.utils.images import image_to_data_url


class FakeClock:
    def __init__(self, now: int = 1000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class BrokenClipboard(ClipboardBackend):
    def read_text(self) -> str:
        raise OSError("clipboard busy")

    def read_image(self) -> ClipboardImage:
        raise OSError("clipboard busy")

    def write_text(self, text: str) -> None:
        raise ClipboardAccessError("clipboard busy")

    def write_image(self, data_url: str) -> None:
        raise ClipboardAccessError("clipboard busy")


def _png(width: int = 3, height: int = 2, color=(255, 0, 0)) -> str:
    return image_to_data_url(Image.new("RGB", (width, height), color))


@pytest.fixture
def store(tmp_path):
    s = DocumentStore(tmp_path, debounce=60)
    yield s
    s.close()


@pytest.fixture
def clipboard():
    return MemoryClipboard()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poller(store, clipboard, clock):
    return ClipboardPoller(store, clipboard, poll_interval=0.01, history_limit=None, clock=clock)


def _copy(clipboard, poller, clock, text, at):
    clipboard.write_text(text)
    clock.now = at
    return poller.poll_once()


def test_recopy_moves_existing_row_to_front(store, clipboard, poller, clock):
    first = _copy(clipboard, poller, clock, "hello", 1000)

    history = store.get_history()
    assert [(i.content, i.type, i.timestamp, i.favorite) for i in history] == [
        ("hello", "text", 1000, False)]

    # the same text copied again after the clipboard was emptied
    clipboard.clear()
    assert poller.poll_once() is None
    second = _copy(clipboard, poller, clock, "hello", 2000)

    history = store.get_history()
    assert len(history) == 1
    assert history[0].timestamp == 2000
    assert history[0].id == first.id == second.id


def test_duplicates_never_create_rows(store, clipboard, poller, clock):
    for at, text in enumerate(["a", "b", "a", "c", "b", "a"], start=1):
        _copy(clipboard, poller, clock, text, at * 1000)

    contents = [i.content for i in store.get_history()]
    assert contents == ["a", "b", "c"]
    assert len(set(contents)) == len(contents)


def test_unchanged_clipboard_is_not_recorded_twice(store, clipboard, poller, clock):
    assert _copy(clipboard, poller, clock, "same", 1000) is not None
    clock.now = 2000

    assert poller.poll_once() is None
    assert store.get_history()[0].timestamp == 1000


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_text_is_ignored(store, clipboard, poller, clock, text):
    assert _copy(clipboard, poller, clock, text, 1000) is None
    assert store.get_history() == []


def test_text_is_stripped(store, clipboard, poller, clock):
    _copy(clipboard, poller, clock, "  padded \n", 1000)
    assert store.get_history()[0].content == "padded"


def test_image_wins_over_text(store, poller):
    data_url = _png(4, 5)
    poller.backend = MemoryClipboard(text="stale text", image_data_url=data_url)

    item = poller.poll_once()

    assert item.type == "image"
    assert item.content == data_url
    assert item.metadata.width == 4
    assert item.metadata.height == 5
    assert item.metadata.size > 0
    assert [i.type for i in store.get_history()] == ["image"]


def test_text_after_image_is_recorded(store, clipboard, poller, clock):
    _copy(clipboard, poller, clock, "hello", 1000)
    clipboard.write_image(_png())
    clock.now = 2000
    poller.poll_once()
    _copy(clipboard, poller, clock, "hello", 3000)

    history = store.get_history()
    assert [i.type for i in history] == ["text", "image"]
    assert history[0].timestamp == 3000


def test_recapture_keeps_favorite_flag(store, clipboard, poller, clock):
    item = _copy(clipboard, poller, clock, "keep me", 1000)
    store.set_history([item.model_copy(update={"favorite": True})])

    clipboard.clear()
    poller.poll_once()
    _copy(clipboard, poller, clock, "keep me", 2000)

    assert store.get_history()[0].favorite is True


@pytest.mark.parametrize("limit", [1, 3, 5])
def test_history_limit(store, clipboard, clock, limit):
    poller = ClipboardPoller(store, clipboard, history_limit=limit, clock=clock)
    for n in range(10):
        _copy(clipboard, poller, clock, f"item {n}", 1000 + n)

    history = store.get_history()
    assert len(history) == limit
    assert history[0].content == "item 9"


def test_history_limit_spares_favorites():
    items = [
        ClipboardItem(content="new", timestamp=3),
        ClipboardItem(content="mid", timestamp=2),
        ClipboardItem(content="old favorite", timestamp=1, favorite=True),
    ]

    assert [i.content for i in cap_history(items, 2)] == ["new", "old favorite"]
    assert [i.content for i in cap_history(items, 1)] == ["old favorite"]
    assert cap_history(items, None) == items


def test_merge_into_history_keeps_length_on_duplicate():
    history = [
        ClipboardItem(content="b", timestamp=2),
        ClipboardItem(content="a", timestamp=1),
    ]
    merged = merge_into_history(history, ClipboardItem(content="a", timestamp=3))

    assert [i.content for i in merged] == ["a", "b"]
    assert merged[0].id == history[1].id
    assert merged[0].timestamp == 3


def test_invalid_history_limit():
    with pytest.raises(ValueError):
        ClipboardPoller(None, MemoryClipboard(), history_limit=0)


def test_clipboard_errors_do_not_escape(store):
    poller = ClipboardPoller(store, BrokenClipboard())

    assert poller.poll_once() is None
    assert store.get_history() == []


def test_store_not_ready_is_retried(tmp_path, clipboard, clock):
    store = DocumentStore(tmp_path, debounce=60, autoload=False)
    poller = ClipboardPoller(store, clipboard, clock=clock)

    assert _copy(clipboard, poller, clock, "pending", 1000) is None

    store.load()
    assert poller.poll_once() is not None
    assert [i.content for i in store.get_history()] == ["pending"]
    store.close()


def test_on_change_listeners(clipboard, poller, clock):
    seen = []
    unsubscribe = poller.on_change(seen.append)

    _copy(clipboard, poller, clock, "one", 1000)
    unsubscribe()
    _copy(clipboard, poller, clock, "two", 2000)

    assert [i.content for i in seen] == ["one"]


def test_start_and_stop_monitoring(store, clipboard, poller):
    clipboard.write_text("background")

    poller.start_monitoring()
    poller.start_monitoring()
    assert poller.is_monitoring

    deadline = time.monotonic() + 3.0
    while not store.get_history() and time.monotonic() < deadline:
        time.sleep(0.01)

    poller.stop_monitoring()
    poller.stop_monitoring()
    assert not poller.is_monitoring
    assert [i.content for i in store.get_history()] == ["background"]

    # no ticks after stop returns
    clipboard.write_text("after stop")
    time.sleep(0.05)
    assert [i.content for i in store.get_history()] == ["background"]


def test_write_to_clipboard(clipboard, poller):
    text_item = ClipboardItem(content="copied back", timestamp=1)
    assert poller.write_to_clipboard(text_item) is True
    assert clipboard.read_text() == "copied back"

    data_url = _png()
    image_item = ClipboardItem(content=data_url, type="image", timestamp=1)
    assert poller.write_to_clipboard(image_item) is True
    assert clipboard.read_image().to_data_url() == data_url
    assert clipboard.read_text() == ""


def test_write_to_clipboard_failure(store):
    poller = ClipboardPoller(store, BrokenClipboard())

    assert poller.write_to_clipboard(ClipboardItem(content="x", timestamp=1)) is False
