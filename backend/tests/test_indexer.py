"""Tests for the vector indexer."""

import pytest

from conftest import MockEmbeddingProvider, RecordingVectorStore
from convmem.core import ChunkDocument
from convmem.indexing import VectorIndexer, extract_clean_text, is_permanent


def write(root, subdir, name, text):
    path = root / "memory" / subdir / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def indexer(recording_store, mock_embedding_provider):
    return VectorIndexer(recording_store, mock_embedding_provider)


class TestIndexAll:
    def test_decisions_and_gotchas(self, project_root, indexer, recording_store, mock_embedding_provider):
        write(project_root, "decisions", "a.md", "# Decision A\nReasoning A.\n")
        write(project_root, "decisions", "b.md", "# Decision B\nReasoning B.\n")
        for i in range(3):
            write(project_root, "gotchas", f"g{i}.md", f"# Gotcha {i}\nDetails {i}.\n")

        result = indexer.index_all(project_root)

        assert result.indexed == 5
        assert result.errors == 0
        assert mock_embedding_provider.embed_calls == 5
        assert len(recording_store.inserted) == 5
        types = sorted(e.type for e in recording_store.inserted)
        assert types == ["decision"] * 2 + ["gotcha"] * 3

    def test_conversation_type(self, project_root, indexer, recording_store):
        write(project_root, "conversations", "2026-02-09-db.md", "# DB\nTalked about it.\n")
        indexer.index_all(project_root)
        assert recording_store.inserted[0].type == "conversation"

    def test_empty_directories(self, project_root, indexer):
        result = indexer.index_all(project_root)
        assert (result.indexed, result.skipped, result.errors) == (0, 0, 0)

    def test_missing_memory_dir(self, tmp_path, indexer):
        assert indexer.index_all(tmp_path).total == 0

    def test_counts_add_up_with_failures(self, project_root, recording_store):
        embedder = MockEmbeddingProvider(fail_calls={2})
        indexer = VectorIndexer(recording_store, embedder)
        write(project_root, "decisions", "good.md", "# Good\nThis one works.\n")
        write(project_root, "decisions", "bad.md", "# Bad\nThis one fails.\n")
        (project_root / "memory" / "gotchas" / "blob.md").write_bytes(b"\x00\x01\x02\xff")
        write(project_root, "gotchas", "fine.md", "# Fine\nWorks too.\n")

        result = indexer.index_all(project_root)

        assert result.indexed + result.skipped + result.errors == 4
        assert result.errors == 2
        assert result.indexed == 2

    def test_skips_unchanged_files(self, project_root, indexer, mock_embedding_provider):
        write(project_root, "decisions", "a.md", "# A\nSame.\n")
        indexer.index_all(project_root)
        second = indexer.index_all(project_root)
        assert second.skipped == 1
        assert second.indexed == 0
        assert mock_embedding_provider.embed_calls == 1

    def test_progress_reported_per_file(self, project_root, indexer):
        for i in range(3):
            write(project_root, "decisions", f"d{i}.md", f"# D{i}\nText {i}.\n")
        seen = []
        indexer.index_all(project_root, on_progress=seen.append)
        assert [p.indexed for p in seen] == [1, 2, 3]
        assert all(p.total == 3 for p in seen)
        assert seen[-1].current_file.endswith("d2.md")


class TestIndexFile:
    def test_single_file(self, project_root, indexer, recording_store, mock_embedding_provider):
        path = write(project_root, "decisions", "meta.md", "# Meta Decision\nSome reasoning here.\n")
        result = indexer.index_file(project_root, path)

        assert result.success is True
        assert mock_embedding_provider.embed_calls == 1
        entry = recording_store.inserted[0]
        assert entry.type == "decision"
        assert entry.source_file == str(path)
        assert entry.workspace == str(project_root)
        assert len(entry.embedding) == MockEmbeddingProvider.dimension
        assert entry.timestamp > 0
        assert entry.permanent is False

    def test_relative_path_resolved_against_root(self, project_root, indexer, recording_store):
        path = write(project_root, "gotchas", "rel.md", "# Rel\nRelative.\n")
        assert indexer.index_file(project_root, path.relative_to(project_root)).success
        assert recording_store.inserted[0].source_file == str(path)

    def test_changed_content_reindexes_same_id(self, project_root, indexer, recording_store):
        path = write(project_root, "decisions", "x.md", "# X\nVersion one.\n")
        first = indexer.index_file(project_root, path)
        path.write_text("# X\nVersion two.\n", encoding="utf-8")
        second = indexer.index_file(project_root, path)

        assert len(recording_store.inserted) == 2
        assert first.entry_id == second.entry_id
        assert recording_store.count() == 1
        assert "Version two" in recording_store.get_all()[0].text

    def test_permanent_frontmatter(self, project_root, indexer, recording_store):
        path = write(
            project_root,
            "decisions",
            "perm.md",
            "---\npermanent: true\n---\n# Never use eval() in production\nCritical.\n",
        )
        indexer.index_file(project_root, path)
        entry = recording_store.inserted[0]
        assert entry.permanent is True
        assert "permanent" not in entry.text

    def test_null_embedding_is_failure_without_insert(self, project_root, recording_store):
        indexer = VectorIndexer(recording_store, MockEmbeddingProvider(always_fail=True))
        path = write(project_root, "decisions", "down.md", "# Down\nProvider is down.\n")
        result = indexer.index_file(project_root, path)
        assert result.success is False
        assert recording_store.inserted == []

    def test_binary_file_does_not_raise(self, project_root, indexer, recording_store):
        path = project_root / "memory" / "decisions" / "malformed.md"
        path.write_bytes(bytes([0x00, 0x01, 0x02, 0xFF, 0xFE, 0xFD]))
        result = indexer.index_file(project_root, path)
        assert result.success is False
        assert result.error
        assert recording_store.inserted == []

    def test_invalid_utf8_does_not_raise(self, project_root, indexer):
        path = project_root / "memory" / "decisions" / "latin1.md"
        path.write_bytes("# Caf\xe9\n".encode("latin-1"))
        assert indexer.index_file(project_root, path).success is False

    def test_missing_file(self, project_root, indexer):
        assert indexer.index_file(project_root, project_root / "memory" / "decisions" / "nope.md").success is False

    def test_store_failure_is_reported(self, project_root, mock_embedding_provider):
        class BrokenStore(RecordingVectorStore):
            def insert(self, entry):
                raise RuntimeError("store down")

        indexer = VectorIndexer(BrokenStore(), mock_embedding_provider)
        path = write(project_root, "decisions", "x.md", "# X\nBody.\n")
        result = indexer.index_file(project_root, path)
        assert result.success is False
        assert "store down" in result.error


class TestIndexChunk:
    def test_uses_text_verbatim(self, project_root, indexer, recording_store, mock_embedding_provider):
        doc = ChunkDocument(id="chunk-1", text="User: pick a db\nAssistant: postgres", timestamp=1234)
        result = indexer.index_chunk(project_root, doc)

        assert result.success is True
        assert mock_embedding_provider.calls == [doc.text]
        entry = recording_store.inserted[0]
        assert entry.id == "chunk-1"
        assert entry.text == doc.text
        assert entry.type == "conversation"
        assert entry.timestamp == 1234
        assert entry.workspace == str(project_root)

    def test_permanent_chunk(self, project_root, indexer, recording_store):
        indexer.index_chunk(project_root, ChunkDocument(id="p", text="Always use UTC timestamps", permanent=True))
        assert recording_store.inserted[0].permanent is True

    def test_null_embedding(self, project_root, recording_store):
        indexer = VectorIndexer(recording_store, MockEmbeddingProvider(always_fail=True))
        assert indexer.index_chunk(project_root, ChunkDocument(id="c", text="x")).success is False
        assert recording_store.inserted == []


class TestIsIndexed:
    def test_true_for_unchanged_file(self, project_root, indexer):
        path = write(project_root, "decisions", "existing.md", "# Existing Decision\nAlready indexed.\n")
        indexer.index_file(project_root, path)
        assert indexer.is_indexed(path) is True

    def test_false_when_not_indexed(self, project_root, indexer):
        path = write(project_root, "decisions", "new.md", "# New\nNot yet.\n")
        assert indexer.is_indexed(path) is False

    def test_false_after_change(self, project_root, indexer):
        path = write(project_root, "decisions", "c.md", "# C\nOld.\n")
        indexer.index_file(project_root, path)
        path.write_text("# C\nNew.\n", encoding="utf-8")
        assert indexer.is_indexed(path) is False

    def test_false_for_missing_file(self, project_root, indexer):
        assert indexer.is_indexed(project_root / "memory" / "decisions" / "gone.md") is False

    def test_false_after_permanent_marker_added(self, project_root, indexer):
        path = write(project_root, "decisions", "p.md", "# P\nKeep forever.\n")
        indexer.index_file(project_root, path)
        path.write_text("---\npermanent: true\n---\n# P\nKeep forever.\n", encoding="utf-8")
        assert indexer.is_indexed(path) is False

    def test_equivalent_path_spellings(self, project_root, indexer, monkeypatch):
        path = write(project_root, "decisions", "rel.md", "# Rel\nSame file.\n")
        indexer.index_file(project_root, path)
        monkeypatch.chdir(project_root)
        assert indexer.is_indexed(path.relative_to(project_root)) is True
        assert indexer.is_indexed(project_root / "memory" / "gotchas" / ".." / "decisions" / "rel.md") is True


def test_index_all_picks_up_permanent_marker(project_root, indexer, recording_store):
    path = write(project_root, "decisions", "flip.md", "# Flip\nDecided once.\n")
    indexer.index_all(project_root)
    path.write_text("---\npermanent: true\n---\n" + path.read_text(encoding="utf-8"), encoding="utf-8")

    second = indexer.index_all(project_root)

    assert second.indexed == 1
    assert [e.permanent for e in recording_store.get_all()] == [True]


class TestRebuild:
    def test_rebuild_clears_once_before_inserts(self, project_root, indexer, recording_store, mock_embedding_provider):
        write(project_root, "decisions", "a.md", "# Decision A\nReasoning A.\n")
        write(project_root, "decisions", "b.md", "# Decision B\nReasoning B.\n")
        write(project_root, "gotchas", "g.md", "# Gotcha A\nDetails A.\n")
        indexer.index_all(project_root)
        recording_store.events.clear()

        result = indexer.rebuild_index(project_root)

        assert recording_store.rebuild_calls == 1
        assert recording_store.events[0] == "rebuild"
        assert recording_store.events.count("insert") == 3
        assert result.indexed == 3
        assert mock_embedding_provider.embed_calls == 6


class TestMarkdown:
    def test_clean_text_strips_syntax(self):
        text = "\n".join([
            "# Use Postgres for production",
            "**Date:** 2026-02-09",
            "**Reasoning:** Better for concurrent writes and **JSONB** support.",
            "",
            "## Alternatives considered",
            "- MySQL: lacks `JSONB`",
            "- [SQLite](https://sqlite.org): single writer",
            "> quoted _note_",
        ])
        clean = extract_clean_text(text)
        assert "# " not in clean
        assert "**" not in clean
        assert "`" not in clean
        assert "https://" not in clean
        assert "Use Postgres for production" in clean
        assert "Reasoning: Better for concurrent writes and JSONB support." in clean
        assert "SQLite: single writer" in clean
        assert "quoted note" in clean

    def test_snake_case_words_survive(self):
        assert "snake_case_name" in extract_clean_text("use snake_case_name here")

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("---\npermanent: true\n---\n# T\n", True),
            ("---\ntitle: x\npermanent: TRUE\n---\nbody", True),
            ("---\npermanent: false\n---\n# T\n", False),
            ("# T\npermanent: true\n", False),
            ("# T\n", False),
        ],
    )
    def test_permanent_only_from_frontmatter(self, text, expected):
        assert is_permanent(text) is expected
