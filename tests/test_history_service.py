import pytest

from clipkeep.clipboard import MemoryClipboard
from clipkeep.database import DocumentStore
from clipkeep.models import ClipboardItem, Settings
from clipkeep.services import ClipboardPoller, HistoryService
from clipkeep.utils.retention import DAY_MS


@pytest.fixture
def store(tmp_path):
    s = DocumentStore(tmp_path, debounce=60)
    s.set_history([
        ClipboardItem(id="i_1", content="Hello World", timestamp=3 * DAY_MS),
        ClipboardItem(id="i_2", content="data:image/png;base64,AAAA", type="image",
                      timestamp=2 * DAY_MS),
        ClipboardItem(id="i_3", content="hello again", timestamp=1 * DAY_MS, favorite=True),
    ])
    yield s
    s.close()


@pytest.fixture
def history(store):
    return HistoryService(store)


def test_remove(history, store):
    assert history.remove("i_2") is True
    assert [i.id for i in store.get_history()] == ["i_1", "i_3"]
    assert history.remove("i_404") is False


def test_toggle_favorite(history):
    assert history.toggle_favorite("i_1") is True
    assert history.get("i_1").favorite is True
    assert history.toggle_favorite("i_1") is True
    assert history.get("i_1").favorite is False
    assert history.toggle_favorite("i_404") is False


@pytest.mark.parametrize("query, category, expected", [
    ("", "all", ["i_1", "i_2", "i_3"]),
    ("hello", "all", ["i_1", "i_3"]),
    ("HELLO", "text", ["i_1", "i_3"]),
    ("", "image", ["i_2"]),
    ("", "favorite", ["i_3"]),
    ("world", "favorite", []),
])
def test_search(history, query, category, expected):
    assert [i.id for i in history.search(query, category)] == expected


def test_search_rejects_unknown_category(history):
    with pytest.raises(ValueError):
        history.search(category="files")


def test_cleanup_prunes_and_persists(history, store):
    store.set_settings(Settings(retentionPeriod=1, retentionUnit="days"))

    removed = history.cleanup(now=3 * DAY_MS + 1)

    assert removed == 1
    assert [i.id for i in store.get_history()] == ["i_1", "i_3"]


def test_cleanup_permanent(history, store):
    store.set_settings(Settings(retentionPeriod=1, retentionUnit="permanent"))

    assert history.cleanup(now=100 * DAY_MS) == 0
    assert len(store.get_history()) == 3


def test_copy_back(history, store):
    clipboard = MemoryClipboard()
    poller = ClipboardPoller(store, clipboard)

    assert history.copy_back("i_1", poller) is True
    assert clipboard.read_text() == "Hello World"
    assert history.copy_back("i_404", poller) is False
