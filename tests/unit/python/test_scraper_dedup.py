"""Unit tests for crawl target deduplication and partitioning."""

import pytest

from story_pipeline.scraper.dedup import (
    compute_pending,
    derive_filename,
    is_already_done,
    list_raw_filenames,
    partition,
    split_filename_collisions,
)


class TestDeriveFilename:
    """Tests for derive_filename function."""

    def test_uses_last_path_segment(self):
        assert derive_filename("https://example.com/comedy/my-story/") == "my-story.html"

    def test_lowercases(self):
        assert derive_filename("https://example.com/comedy/My-Story") == "my-story.html"

    def test_strips_query(self):
        assert derive_filename("https://example.com/comedy/my-story/?page=2") == "my-story.html"

    def test_percent_decodes(self):
        assert derive_filename("https://example.com/a/My%20Story") == "my story.html"

    def test_existing_suffix_not_doubled(self):
        assert derive_filename("https://example.com/a/story.html") == "story.html"
        assert derive_filename("https://example.com/a/STORY.HTML") == "story.html"

    def test_idempotent_on_double_suffix(self):
        assert derive_filename("https://example.com/a/story.html.html") == "story.html"

    def test_encoded_slash_does_not_escape_directory(self):
        name = derive_filename("https://example.com/a/..%2Fetc%2Fpasswd")
        assert "/" not in name

    def test_host_only_url(self):
        assert derive_filename("https://example.com/") == "example.com.html"


class TestComputePending:
    """Tests for compute_pending function."""

    def test_skips_ledger_entries(self):
        targets = ["https://example.com/a/one/", "https://example.com/a/two/"]
        ledger = {"https://example.com/a/one/"}

        assert compute_pending(targets, ledger, set()) == ["https://example.com/a/two/"]

    def test_skips_existing_files_missing_from_ledger(self):
        targets = ["https://example.com/a/one/", "https://example.com/a/two/"]

        pending = compute_pending(targets, set(), {"two.html"})

        assert pending == ["https://example.com/a/one/"]

    def test_force_keeps_everything(self):
        targets = ["https://example.com/a/one/", "https://example.com/a/two/"]

        pending = compute_pending(targets, set(targets), {"one.html", "two.html"}, force=True)

        assert pending == targets

    def test_preserves_order(self):
        targets = [f"https://example.com/a/s{i}/" for i in range(10)]
        ledger = {targets[3], targets[7]}

        pending = compute_pending(targets, ledger, set())

        assert pending == [t for t in targets if t not in ledger]

    def test_is_already_done(self):
        assert is_already_done("https://example.com/a/x/", {"https://example.com/a/x/"}, set())
        assert is_already_done("https://example.com/a/x/", set(), {"x.html"})
        assert not is_already_done("https://example.com/a/x/", set(), set())


class TestSplitFilenameCollisions:
    """Tests for split_filename_collisions function."""

    def test_keeps_first_target_per_filename(self):
        pending = [
            "https://x.com/comedy/foo/",
            "https://x.com/comedy/bar/",
            "https://x.com/drama/foo/",
        ]

        kept, collisions = split_filename_collisions(pending)

        assert kept == ["https://x.com/comedy/foo/", "https://x.com/comedy/bar/"]
        assert collisions == [("https://x.com/drama/foo/", "https://x.com/comedy/foo/")]

    def test_case_and_suffix_variants_collide(self):
        kept, collisions = split_filename_collisions(
            ["https://x.com/a/Foo/", "https://x.com/b/foo.html"]
        )

        assert kept == ["https://x.com/a/Foo/"]
        assert len(collisions) == 1

    def test_distinct_filenames_untouched(self):
        pending = ["https://x.com/a/one/", "https://x.com/a/two/"]
        assert split_filename_collisions(pending) == (pending, [])


class TestPartition:
    """Tests for partition function."""

    def test_contiguous_chunks(self):
        pending = list("abcdefghij")

        chunks = partition(pending, 4)

        assert chunks == [["a", "b", "c"], ["d", "e", "f"], ["g", "h", "i"], ["j"]]

    def test_chunks_cover_all_targets_once(self):
        pending = [str(i) for i in range(23)]

        chunks = partition(pending, 5)

        assert [item for chunk in chunks for item in chunk] == pending

    def test_fewer_targets_than_workers(self):
        chunks = partition(["a", "b"], 4)

        assert len(chunks) == 4
        assert chunks[0] == ["a"]
        assert chunks[1] == ["b"]
        assert chunks[2] == [] and chunks[3] == []

    def test_empty_pending(self):
        assert partition([], 3) == [[], [], []]

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            partition(["a"], 0)


class TestListRawFilenames:
    """Tests for list_raw_filenames function."""

    def test_missing_directory(self, tmp_path):
        assert list_raw_filenames(str(tmp_path / "missing")) == set()

    def test_only_html_files(self, tmp_path):
        (tmp_path / "a.html").write_text("x")
        (tmp_path / "notes.txt").write_text("x")

        assert list_raw_filenames(str(tmp_path)) == {"a.html"}
