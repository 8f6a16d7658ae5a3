"""Tests for the block list engine."""

import pytest

from guardian.blocking.block_list import _NO_MATCH, BlockListEngine, MatchCache
from guardian.blocking.models import BlockReason, SessionContext
from guardian.clock import DAY_MS, HOUR_MS, MINUTE_MS
from guardian.errors import (
    CapacityError,
    DuplicateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from guardian.storage.memory import MemoryStorage


class BrokenLoadStorage(MemoryStorage):
    def load_block_list(self, owner_id):
        raise StorageError("disk on fire")


class BrokenSaveStorage(MemoryStorage):
    def save_block_list(self, block_list):
        raise StorageError("disk full")


class TestAdd:
    def test_add_normalizes_and_builds_default_pattern(self, block_list, clock):
        entry = block_list.add("https://www.Facebook.com/", is_permanent=True)
        assert entry.url == "facebook.com"
        assert entry.pattern == "*://*.facebook.com/*"
        assert entry.is_permanent
        assert entry.created_at == clock()
        assert block_list.last_updated == clock()

    def test_explicit_pattern_is_kept(self, block_list):
        entry = block_list.add("example.com", pattern="*example*")
        assert entry.pattern == "*example*"

    @pytest.mark.parametrize("variant", [
        "FACEBOOK.com", "https://facebook.com", "http://www.facebook.com/", "www.facebook.com",
    ])
    def test_duplicates_across_spellings(self, block_list, variant):
        block_list.add("facebook.com")
        with pytest.raises(DuplicateError):
            block_list.add(variant)
        assert len(block_list.entries()) == 1

    @pytest.mark.parametrize("bad", ["", "   ", None, "not a url", "localhost"])
    def test_rejects_invalid_url(self, block_list, bad):
        with pytest.raises(ValidationError):
            block_list.add(bad)
        assert block_list.entries() == []

    def test_capacity(self, owner_id, storage, unlocks, clock):
        engine = BlockListEngine(owner_id, storage, unlocks, clock=clock, max_entries=2)
        engine.add("a.com")
        engine.add("b.com")
        with pytest.raises(CapacityError):
            engine.add("c.com")
        assert [e.url for e in engine.entries()] == ["a.com", "b.com"]

    def test_failed_save_leaves_list_untouched(self, owner_id, unlocks, clock):
        engine = BlockListEngine(owner_id, BrokenSaveStorage(), unlocks, clock=clock)
        with pytest.raises(StorageError):
            engine.add("facebook.com", is_permanent=True)
        assert engine.entries() == []
        assert not engine.is_blocked("facebook.com").is_blocked

    def test_persists_across_engines(self, block_list, owner_id, storage, unlocks, clock):
        block_list.add("facebook.com", is_permanent=True)
        fresh = BlockListEngine(owner_id, storage, unlocks, clock=clock)
        assert [e.url for e in fresh.entries()] == ["facebook.com"]


class TestMutations:
    def test_remove(self, block_list):
        entry = block_list.add("facebook.com")
        block_list.remove(entry.id)
        assert block_list.entries() == []

    def test_remove_unknown(self, block_list):
        with pytest.raises(NotFoundError):
            block_list.remove("missing")

    def test_toggle_permanent(self, block_list):
        entry = block_list.add("facebook.com")
        assert block_list.toggle_permanent(entry.id).is_permanent
        assert not block_list.toggle_permanent(entry.id).is_permanent

    def test_toggle_unknown(self, block_list):
        with pytest.raises(NotFoundError):
            block_list.toggle_permanent("missing")

    def test_update_category(self, block_list):
        entry = block_list.add("facebook.com")
        assert block_list.update_category(entry.id, "  social ").category == "social"
        assert block_list.update_category(entry.id, "").category is None

    def test_touch_sets_last_accessed(self, block_list, clock):
        entry = block_list.add("facebook.com")
        clock.advance(MINUTE_MS)
        assert block_list.touch(entry.id).last_accessed == clock()

    def test_clear(self, block_list):
        block_list.add("a.com")
        block_list.add("b.com")
        block_list.clear()
        assert block_list.entries() == []

    def test_mutation_updates_last_updated(self, block_list, clock):
        entry = block_list.add("facebook.com")
        clock.advance(5 * MINUTE_MS)
        block_list.toggle_permanent(entry.id)
        assert block_list.last_updated == clock()


class TestIsBlocked:
    def test_permanent_block_unlocked_by_challenge_window(self, block_list, unlocks, clock):
        block_list.add("facebook.com", is_permanent=True)

        check = block_list.is_blocked("https://www.facebook.com/feed")
        assert check.is_blocked
        assert check.reason == BlockReason.PERMANENT
        assert check.entry.url == "facebook.com"

        unlocks.grant("facebook.com", clock() + 10 * MINUTE_MS)
        assert not block_list.is_blocked("https://www.facebook.com/feed").is_blocked

        clock.advance(10 * MINUTE_MS)
        assert block_list.is_blocked("https://www.facebook.com/feed").is_blocked

    def test_session_scoped_entry(self, block_list, sessions):
        block_list.add("twitter.com")

        idle = block_list.is_blocked("twitter.com")
        assert not idle.is_blocked
        assert idle.reason == BlockReason.NONE

        session = sessions.start(25 * MINUTE_MS)
        during = block_list.is_blocked("twitter.com")
        assert during.is_blocked
        assert during.reason == BlockReason.SESSION

        sessions.pause(session.id)
        assert not block_list.is_blocked("twitter.com").is_blocked

        sessions.resume(session.id)
        assert block_list.is_blocked("twitter.com").is_blocked

        sessions.end(session.id)
        assert not block_list.is_blocked("twitter.com").is_blocked

    def test_explicit_context_overrides_provider(self, block_list):
        block_list.add("twitter.com")
        check = block_list.is_blocked("twitter.com", SessionContext(has_active_session=True))
        assert check.reason == BlockReason.SESSION

    def test_unlisted_url(self, block_list):
        block_list.add("facebook.com", is_permanent=True)
        assert not block_list.is_blocked("example.org").is_blocked

    def test_empty_url(self, block_list):
        assert not block_list.is_blocked("").is_blocked

    def test_add_invalidates_cached_miss(self, block_list):
        assert not block_list.is_blocked("reddit.com").is_blocked
        block_list.add("reddit.com", is_permanent=True)
        assert block_list.is_blocked("reddit.com").is_blocked

    def test_remove_invalidates_cached_hit(self, block_list):
        entry = block_list.add("reddit.com", is_permanent=True)
        assert block_list.is_blocked("reddit.com").is_blocked
        block_list.remove(entry.id)
        assert not block_list.is_blocked("reddit.com").is_blocked

    def test_first_match_wins(self, block_list):
        first = block_list.add("facebook.com", is_permanent=True)
        block_list.add("https://facebook.com/groups")
        assert block_list.find_match("facebook.com/groups/x").id == first.id

    def test_fails_open_on_storage_error(self, owner_id, unlocks, clock):
        engine = BlockListEngine(owner_id, BrokenLoadStorage(), unlocks, clock=clock)
        check = engine.is_blocked("facebook.com")
        assert not check.is_blocked
        assert check.reason == BlockReason.NONE

    def test_blocked_attempts_counted(self, block_list):
        block_list.add("facebook.com", is_permanent=True)
        block_list.is_blocked("facebook.com")
        block_list.is_blocked("https://facebook.com")
        block_list.is_blocked("example.org")
        assert block_list.blocked_attempts() == {"facebook.com": 2}


class TestQueries:
    def test_stats(self, block_list, clock):
        a = block_list.add("a.com", is_permanent=True, category="social")
        block_list.add("b.com")
        block_list.add("c.com", category="news")
        block_list.touch(a.id)

        stats = block_list.stats()
        assert (stats.total, stats.permanent, stats.temporary) == (3, 1, 2)
        assert stats.categorized == 2
        assert stats.recently_accessed == 1

        clock.advance(DAY_MS + HOUR_MS)
        assert block_list.stats().recently_accessed == 0

    def test_stats_fail_open(self, owner_id, unlocks, clock):
        engine = BlockListEngine(owner_id, BrokenLoadStorage(), unlocks, clock=clock)
        assert engine.stats().total == 0

    def test_search_url_and_category(self, block_list):
        block_list.add("facebook.com", category="Social")
        block_list.add("news.ycombinator.com", category="News")
        assert [e.url for e in block_list.search("face")] == ["facebook.com"]
        assert [e.url for e in block_list.search("social")] == ["facebook.com"]
        assert block_list.search("  ") == []

    def test_filter_and_categories(self, block_list):
        block_list.add("a.com", category="social")
        block_list.add("b.com", category="news")
        block_list.add("c.com")
        assert [e.url for e in block_list.filter_by_category("social")] == ["a.com"]
        assert [e.url for e in block_list.filter_by_category(None)] == ["c.com"]
        assert block_list.categories() == ["news", "social"]

    def test_get(self, block_list):
        entry = block_list.add("a.com")
        assert block_list.get(entry.id) == entry
        with pytest.raises(NotFoundError):
            block_list.get("missing")


class TestImport:
    def test_import_skips_invalid_and_duplicates(self, block_list):
        block_list.add("facebook.com")
        result = block_list.import_entries([
            {"url": "twitter.com", "is_permanent": True, "category": "social"},
            {"url": "https://www.facebook.com"},
            {"url": "not a url"},
            "garbage",
        ])
        assert result.imported == 1
        assert len(result.errors) == 3
        imported = block_list.find_match("twitter.com")
        assert imported.is_permanent
        assert imported.category == "social"

    def test_import_stops_at_capacity(self, owner_id, storage, unlocks, clock):
        engine = BlockListEngine(owner_id, storage, unlocks, clock=clock, max_entries=1)
        result = engine.import_entries([{"url": "a.com"}, {"url": "b.com"}])
        assert result.imported == 1
        assert len(engine.entries()) == 1

    @pytest.mark.parametrize("item", [
        {"url": "ok.com", "created_at": "yesterday"},
        {"url": "ok.com", "created_at": True},
        {"url": "ok.com", "is_permanent": "false"},
        {"url": "ok.com", "is_permanent": 1},
        {"url": "ok.com", "last_accessed": "recently"},
        {"url": "ok.com", "category": 7},
        {"url": "ok.com", "pattern": ["*ok*"]},
        {"url": "ok.com", "id": 12},
    ])
    def test_mistyped_fields_are_reported(self, block_list, item):
        result = block_list.import_entries([item, {"url": "fine.com"}])
        assert result.imported == 1
        assert len(result.errors) == 1
        assert "ok.com" in result.errors[0]
        assert [e.url for e in block_list.entries()] == ["fine.com"]

    def test_well_typed_fields_are_kept(self, block_list, clock):
        result = block_list.import_entries([{
            "id": "abc", "url": "ok.com", "is_permanent": False, "category": None,
            "created_at": 5, "last_accessed": 7, "pattern": "*ok*",
        }])
        assert result.errors == []
        entry = block_list.get("abc")
        assert (entry.is_permanent, entry.created_at, entry.last_accessed) == (False, 5, 7)
        assert entry.pattern == "*ok*"
        assert block_list.stats().total == 1

    def test_colliding_id_is_replaced(self, block_list):
        existing = block_list.add("a.com")
        block_list.import_entries([{"id": existing.id, "url": "b.com"}])
        ids = [e.id for e in block_list.entries()]
        assert len(set(ids)) == 2


class TestMatchCache:
    def test_evicts_least_recently_used(self):
        cache = MatchCache(max_size=2)
        cache.put("a", "1")
        cache.put("b", None)
        cache.get("a")
        cache.put("c", "3")
        assert len(cache) == 2
        assert cache.get("a") == "1"
        assert cache.get("c") == "3"
        assert cache.get("b") is _NO_MATCH

    def test_cached_pattern_match_independent_of_spelling(self, block_list):
        block_list.add("example.org", is_permanent=True, pattern="http://*")
        assert block_list.find_match("http://play.games.io") is None
        assert block_list.find_match("https://play.games.io") is None

        block_list.clear()
        block_list.add("example.org", is_permanent=True, pattern="*games.io*")
        assert block_list.is_blocked("https://play.games.io").is_blocked
        assert block_list.is_blocked("http://www.play.games.io/").is_blocked
