"""Tests for name and path resolution."""

from __future__ import annotations

import pytest

from drivedesk.drive.base import ROOT_ID, EntryKind, TransportError
from drivedesk.drive.resolver import NotFound, Resolved, Resolver, is_root, split_path


@pytest.fixture
def resolver(store):
    return Resolver(store)


class TestHelpers:
    @pytest.mark.parametrize("path", ["", "/", " / ", "root", "ROOT", "/root/"])
    def test_root_aliases(self, path):
        assert is_root(path)

    def test_not_root(self):
        assert not is_root("/Documents")

    def test_split_path(self):
        assert split_path("/a/ b //c/") == ["a", "b", "c"]
        assert split_path("/") == []


class TestResolve:
    @pytest.mark.asyncio
    async def test_exact_match_single_query(self, store, resolver):
        store.folder("f1", "Documents")
        result = await resolver.resolve("Documents", EntryKind.FOLDER)
        assert isinstance(result, Resolved)
        assert result.entry.id == "f1"
        assert [c[0] for c in store.calls] == ["find_by_name"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["Documents", "documents", "DOCUMENTS"])
    async def test_case_insensitive_fallback(self, store, resolver, query):
        store.folder("f1", "Documents")
        result = await resolver.resolve(query, EntryKind.FOLDER)
        assert isinstance(result, Resolved)
        assert result.entry.id == "f1"

    @pytest.mark.asyncio
    async def test_duplicates_take_first_returned(self, store, resolver):
        store.add("a", "dup.txt")
        store.add("b", "dup.txt")
        result = await resolver.resolve("dup.txt")
        assert result.entry.id == "a"
        assert result.match_count == 2
        assert result.ambiguous

    @pytest.mark.asyncio
    async def test_idempotent(self, store, resolver):
        store.add("a", "dup.txt")
        store.add("b", "dup.txt")
        first = await resolver.resolve("dup.txt")
        second = await resolver.resolve("dup.txt")
        assert first == second

    @pytest.mark.asyncio
    async def test_not_found(self, store, resolver):
        store.add("a", "other.txt")
        assert await resolver.resolve("missing.txt") == NotFound("missing.txt")

    @pytest.mark.asyncio
    async def test_kind_filter(self, store, resolver):
        store.add("a", "Reports")
        assert isinstance(await resolver.resolve("Reports", EntryKind.FOLDER), NotFound)

    @pytest.mark.asyncio
    async def test_blank_query_not_found_without_calls(self, store, resolver):
        assert isinstance(await resolver.resolve("  "), NotFound)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_resolution_never_mutates(self, store, resolver):
        store.add("a", "x.txt")
        await resolver.resolve("X.TXT")
        assert store.mutations() == []

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, store, resolver):
        store.fail_methods.add("find_by_name")
        with pytest.raises(TransportError):
            await resolver.resolve("anything")


class TestResolvePath:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "", "root"])
    async def test_root_folder(self, store, resolver, path):
        result = await resolver.resolve_folder(path)
        assert result.entry.id == ROOT_ID
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_empty_path_is_not_a_file(self, resolver):
        assert isinstance(await resolver.resolve_path("/"), NotFound)

    @pytest.mark.asyncio
    async def test_leading_slash_ignored(self, store, resolver):
        store.folder("f1", "ProjectX")
        result = await resolver.resolve_folder("/ProjectX/")
        assert result.entry.id == "f1"

    @pytest.mark.asyncio
    async def test_nested_path_scoped_by_parent(self, store, resolver):
        store.folder("w", "Work")
        store.folder("h", "Home")
        store.add("n1", "notes.txt", parents=("h",))
        store.add("n2", "notes.txt", parents=("w",))
        result = await resolver.resolve_path("Work/notes.txt")
        assert result.entry.id == "n2"
        assert result.query == "Work/notes.txt"

    @pytest.mark.asyncio
    async def test_missing_intermediate(self, store, resolver):
        store.add("n1", "notes.txt")
        assert await resolver.resolve_path("Nope/notes.txt") == NotFound("Nope/notes.txt")
