"""GuildRegistry and StandingCache tests"""

from datetime import datetime

from governance.core.guild import Guild
from governance.core.reputation import resolve_standing
from governance.services.guild_registry import GuildRegistry
from governance.services.standing_cache import StandingCache

NOW = datetime(2030, 6, 1, 12, 0, 0)


def _guild(guild_id="g1", founder="founder", tag="ALPHA"):
    return Guild.found(
        guild_id=guild_id, name=f"Guild {tag}", tag=tag, founder_id=founder, now=NOW
    )


class TestGuildRegistry:
    def test_put_indexes_roster(self):
        registry = GuildRegistry()
        guild = _guild()
        guild.add_member("p2", now=NOW)
        registry.put(guild)

        assert "g1" in registry
        assert registry.guild_of("p2") is guild
        assert registry.guild_of("founder") is guild

    def test_put_reindexes_after_leave(self):
        registry = GuildRegistry()
        guild = _guild()
        guild.add_member("p2", now=NOW)
        registry.put(guild)

        guild.remove_member("p2")
        registry.put(guild)

        assert registry.guild_of("p2") is None

    def test_inactive_guild_evicted(self):
        registry = GuildRegistry()
        guild = _guild()
        registry.put(guild)
        guild.is_active = False
        registry.put(guild)

        assert len(registry) == 0
        assert registry.guild_of("founder") is None

    def test_load_replaces_contents(self):
        registry = GuildRegistry()
        registry.put(_guild("old", "x", "OLD"))
        count = registry.load([_guild("g1"), _guild("g2", "other", "BETA")])

        assert count == 2
        assert registry.get("old") is None
        assert {g.guild_id for g in registry.active_guilds()} == {"g1", "g2"}

    def test_evict(self):
        registry = GuildRegistry()
        registry.put(_guild())
        registry.evict("g1")
        assert registry.get("g1") is None
        assert registry.guild_of("founder") is None


class TestStandingCache:
    def test_put_get(self):
        cache = StandingCache()
        standing = resolve_standing(80)
        cache.put("p1", "f1", standing)
        assert cache.get("p1", "f1") is standing
        assert ("p1", "f1") in cache
        assert cache.get("p1", "f2") is None
