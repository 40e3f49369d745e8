"""Slug derivation and page cache invalidation."""

from itertools import islice

from travel_cms.core import page_cache
from travel_cms.core.slugs import copy_candidates, numbered_candidates, slugify


def test_slugify_collapses_and_trims():
    assert slugify("Darjeeling & Gangtok -- 5N/6D!") == "darjeeling-gangtok-5n-6d"
    assert slugify("  Kerala Backwaters  ") == "kerala-backwaters"
    assert slugify("Sikkim") == "sikkim"


def test_slugify_only_yields_url_safe_characters():
    slug = slugify("Ünïcödé ~ Trip ✈ 2024")
    assert slug
    assert all(c.isdigit() or ("a" <= c <= "z") or c == "-" for c in slug)
    assert not slug.startswith("-") and not slug.endswith("-")
    assert "--" not in slug


def test_slugify_falls_back_when_nothing_is_left():
    assert slugify("!!!", fallback="package") == "package"


def test_candidate_sequences():
    assert list(islice(numbered_candidates("goa"), 3)) == ["goa", "goa-2", "goa-3"]
    assert list(islice(copy_candidates("goa"), 3)) == ["goa-copy", "goa-copy-2", "goa-copy-3"]


def test_invalidate_drops_route_and_everything_below_it():
    page_cache.put("/packages", ["list"])
    page_cache.put("/packages", ["filtered"], "featured=true")
    page_cache.put("/packages/goa-beach-escape", {"id": 1})
    page_cache.put("/packages-archive", ["other"])
    page_cache.put("/destinations", ["d"])

    assert page_cache.invalidate(["/packages"]) == 3
    assert page_cache.get("/packages") is None
    assert page_cache.get("/packages", "featured=true") is None
    assert page_cache.get("/packages-archive") == ["other"]
    assert page_cache.get("/destinations") == ["d"]


def test_invalidating_root_drops_home_feed_only():
    page_cache.put(page_cache.HOME_CACHE_PATH, {"packages": []})
    page_cache.put("/blog", [])

    page_cache.invalidate(["/"])

    assert page_cache.get(page_cache.HOME_CACHE_PATH) is None
    assert page_cache.get("/blog") == []


def test_expired_entries_are_not_served(monkeypatch):
    from travel_cms.core.config import settings

    page_cache.put("/settings", {"company_name": "x"})
    monkeypatch.setattr(settings, "page_cache_ttl_seconds", 0)
    assert page_cache.get("/settings") is None


def test_undeclared_query_parameters_share_one_entry(client):
    for i in range(5):
        assert client.get(f"/api/packages?junk={i}").status_code == 200
    client.get("/api/packages?limit=3&featured=true")
    client.get("/api/packages?featured=true&limit=3&cb=9")

    assert sorted(page_cache._CACHE) == ["/packages", "/packages?featured=True&limit=3"]


def test_query_key_ignores_unset_filters_and_order():
    assert page_cache.query_key(limit=3, status=None, featured=True) == "featured=True&limit=3"
    assert page_cache.query_key(status=None) == ""


def test_store_evicts_oldest_entries_at_capacity(monkeypatch):
    from travel_cms.core.config import settings

    monkeypatch.setattr(settings, "page_cache_max_entries", 3)
    for slug in ("a", "b", "c", "d"):
        page_cache.put(f"/packages/{slug}", slug)
    page_cache.put("/packages/b", "b2")
    page_cache.put("/packages/e", "e")

    assert len(page_cache._CACHE) == 3
    assert page_cache.get("/packages/a") is None
    assert page_cache.get("/packages/c") is None
    assert page_cache.get("/packages/b") == "b2"
    assert page_cache.get("/packages/e") == "e"


def test_expired_entries_are_purged_on_write(monkeypatch):
    from travel_cms.core.config import settings

    page_cache.put("/blog", ["old"])
    page_cache.put("/destinations", ["old"])
    monkeypatch.setattr(settings, "page_cache_ttl_seconds", 0)
    page_cache.put("/settings", {"company_name": "x"})

    assert list(page_cache._CACHE) == ["/settings"]
