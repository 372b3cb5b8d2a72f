"""Tests for the SQLite history store."""

import pytest
from chatrelay.errors import StorageError
from chatrelay.models import Platform, SummaryResult
from chatrelay.storage import HistoryStore


@pytest.fixture
def store(tmp_path):
    store = HistoryStore(tmp_path / "data" / "history.db", max_history=3)
    yield store
    store.close()


def _result(text="A summary", provider="ollama"):
    return SummaryResult(text=text, provider=provider)


class TestHistory:
    def test_save_and_get(self, store, sample_conversation):
        entry_id = store.save_result(sample_conversation, _result())
        entry = store.get_entry(entry_id)

        assert entry["summary"] == "A summary"
        assert entry["provider"] == "ollama"
        assert entry["platform"] == "chatgpt"
        assert entry["message_count"] == 3
        assert entry["conversation"] == sample_conversation

    def test_list_is_newest_first(self, store, make_conversation):
        ids = [store.save_result(make_conversation(n + 1), _result(f"s{n}")) for n in range(3)]
        listed = store.list_history()

        assert [row["id"] for row in listed] == list(reversed(ids))
        assert store.list_history(limit=1)[0]["id"] == ids[-1]

    def test_trimmed_to_max_history(self, store, make_conversation):
        ids = [store.save_result(make_conversation(2), _result()) for _ in range(5)]

        assert [row["id"] for row in store.list_history()] == list(reversed(ids[-3:]))
        assert store.get_entry(ids[0]) is None

    def test_delete_entry(self, store, sample_conversation):
        entry_id = store.save_result(sample_conversation, _result())

        assert store.delete_entry(entry_id) is True
        assert store.delete_entry(entry_id) is False
        assert store.list_history() == []

    def test_clear(self, store, sample_conversation):
        store.save_result(sample_conversation, _result())
        store.clear()

        assert store.list_history() == []
        assert store.get_stats()["total_summarizations"] == 0


class TestStats:
    def test_empty(self, store):
        assert store.get_stats() == {
            "total_transfers": 0,
            "total_summarizations": 0,
            "provider_usage": {},
            "platform_usage": {},
            "saved_summaries": 0,
            "last_used": None,
        }

    def test_counts(self, store, sample_conversation, make_conversation):
        store.save_result(sample_conversation, _result(provider="ollama"))
        store.save_result(make_conversation(2, Platform.CLAUDE), _result(provider="fallback"))
        store.save_result(sample_conversation, _result(provider="ollama"))
        store.record_usage("transfer", platform="claude")

        stats = store.get_stats()

        assert stats["total_summarizations"] == 3
        assert stats["total_transfers"] == 1
        assert stats["provider_usage"] == {"ollama": 2, "fallback": 1}
        assert stats["platform_usage"] == {"chatgpt": 2, "claude": 2}
        assert stats["saved_summaries"] == 3
        assert stats["last_used"] is not None

    def test_export(self, store, sample_conversation):
        store.save_result(sample_conversation, _result())
        data = store.export_data()

        assert data["version"] == "0.1.0"
        assert len(data["history"]) == 1
        assert data["stats"]["saved_summaries"] == 1


def test_unopenable_database(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    with pytest.raises(StorageError):
        HistoryStore(blocker / "history.db")
