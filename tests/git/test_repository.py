"""Tests for RepositoryHandle against real git repositories."""

import subprocess

import pytest

from devprofiler.errors import (
    CommitMetadataError,
    GitCommandError,
    RepositoryNotFoundError,
)
from devprofiler.git.repository import RepositoryHandle, parse_offset_minutes


class TestDiscover:
    def test_discovers_from_root(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})

        handle = RepositoryHandle.discover(git_repo.path)

        assert handle.root.resolve() == git_repo.path.resolve()

    def test_discovers_from_nested_directory(self, git_repo):
        git_repo.commit("init", {"deep/nested/file.py": "pass\n"})

        handle = RepositoryHandle.discover(git_repo.path / "deep" / "nested")

        assert handle.root.resolve() == git_repo.path.resolve()

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(RepositoryNotFoundError, match="does not exist"):
            RepositoryHandle.discover(tmp_path / "nope")

    def test_plain_directory_raises(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()

        with pytest.raises(RepositoryNotFoundError) as exc_info:
            RepositoryHandle.discover(plain)

        assert exc_info.value.exit_code == 2


class TestWalk:
    def test_walks_every_reachable_commit(self, git_repo):
        ids = [git_repo.commit(f"c{i}", {"f.txt": f"{i}\n"}) for i in range(4)]

        walked = list(RepositoryHandle.discover(git_repo.path).walk())

        assert sorted(walked) == sorted(ids)
        assert walked[0] == ids[-1]

    def test_reverse_order_starts_at_root(self, git_repo):
        ids = [git_repo.commit(f"c{i}", {"f.txt": f"{i}\n"}) for i in range(3)]

        walked = list(RepositoryHandle.discover(git_repo.path).walk("reverse"))

        assert walked == ids

    def test_unborn_head_yields_nothing(self, git_repo):
        handle = RepositoryHandle.discover(git_repo.path)

        assert handle.head_commit() is None
        assert list(handle.walk()) == []

    def test_unknown_order_raises(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        with pytest.raises(ValueError):
            list(handle.walk("sideways"))

    def test_walk_follows_head_branch_only(self, git_repo):
        base = git_repo.commit("base", {"a.txt": "1\n"})
        main = git_repo.current_branch()
        git_repo.git("checkout", "-q", "-b", "other")
        other = git_repo.commit("other", {"b.txt": "2\n"})
        git_repo.git("checkout", "-q", main)

        walked = list(RepositoryHandle.discover(git_repo.path).walk())

        assert walked == [base]
        assert other not in walked

    def test_abandoned_walk_stops_git(self, git_repo, monkeypatch):
        for i in range(3):
            git_repo.commit(f"c{i}", {"f.txt": f"{i}\n"})
        handle = RepositoryHandle.discover(git_repo.path)
        started = []
        real_popen = subprocess.Popen

        def recording_popen(*args, **kwargs):
            process = real_popen(*args, **kwargs)
            started.append(process)
            return process

        monkeypatch.setattr(subprocess, "Popen", recording_popen)

        walk = handle.walk()
        next(walk)
        walk.close()

        rev_lists = [p for p in started if "rev-list" in p.args]
        assert len(rev_lists) == 1
        assert rev_lists[0].returncode is not None


class TestFindCommit:
    def test_reads_metadata(self, git_repo):
        first = git_repo.commit("init", {"a.txt": "x\n"})
        second = git_repo.commit(
            "change",
            {"a.txt": "y\n"},
            author_name="Ada Lovelace",
            author_email="ada@example.com",
            timezone="-0130",
        )

        commit = RepositoryHandle.discover(git_repo.path).find_commit(second)

        assert commit.id == second
        assert commit.parents == [first]
        assert commit.first_parent == first
        assert commit.author_name == "Ada Lovelace"
        assert commit.author_email == "ada@example.com"
        assert commit.time_seconds == 1700000120
        assert commit.offset_minutes == -90

    def test_root_commit_has_no_parent(self, git_repo):
        root = git_repo.commit("init", {"a.txt": "x\n"})

        commit = RepositoryHandle.discover(git_repo.path).find_commit(root)

        assert commit.parents == []
        assert commit.first_parent is None

    def test_unknown_commit_raises(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        with pytest.raises(GitCommandError):
            handle.find_commit("0" * 40)


class TestParseCommit:
    TREE = b"tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904\n"

    def test_parses_merge_parents_in_order(self):
        raw = (
            self.TREE
            + b"parent " + b"1" * 40 + b"\n"
            + b"parent " + b"2" * 40 + b"\n"
            + b"author A <a@x> 1 +0000\n"
            + b"committer C <c@x> 1700000000 +0530\n\nmsg\n"
        )

        commit = RepositoryHandle.parse_commit("id", raw)

        assert commit.parents == ["1" * 40, "2" * 40]
        assert commit.time_seconds == 1700000000
        assert commit.offset_minutes == 330

    def test_skips_multiline_signature_headers(self):
        raw = (
            self.TREE
            + b"author A <a@x> 1 +0000\n"
            + b"committer C <c@x> 5 +0000\n"
            + b"gpgsig -----BEGIN PGP SIGNATURE-----\n"
            + b" parent notaparent\n"
            + b" -----END PGP SIGNATURE-----\n\nmsg\n"
        )

        commit = RepositoryHandle.parse_commit("id", raw)

        assert commit.parents == []
        assert commit.author_name == "A"

    def test_invalid_utf8_author_is_none(self):
        raw = (
            self.TREE
            + b"author Jos\xe9 <jose@x> 1 +0000\n"
            + b"committer C <c@x> 5 +0000\n\nmsg\n"
        )

        commit = RepositoryHandle.parse_commit("id", raw)

        assert commit.author_name is None
        assert commit.author_email == "jose@x"

    def test_missing_author_line_gives_none(self):
        raw = self.TREE + b"committer C <c@x> 5 +0000\n\nmsg\n"

        commit = RepositoryHandle.parse_commit("id", raw)

        assert commit.author_name is None
        assert commit.author_email is None

    def test_empty_author_name_is_kept(self):
        raw = self.TREE + b"author <a@x> 1 +0000\ncommitter C <c@x> 5 +0000\n\n"

        commit = RepositoryHandle.parse_commit("id", raw)

        assert commit.author_name == ""
        assert commit.author_email == "a@x"

    def test_missing_committer_raises(self):
        raw = self.TREE + b"author A <a@x> 1 +0000\n\nmsg\n"

        with pytest.raises(CommitMetadataError):
            RepositoryHandle.parse_commit("id", raw)

    @pytest.mark.parametrize(
        "tz,minutes", [(b"+0000", 0), (b"+0200", 120), (b"-0130", -90), (b"+1345", 825)]
    )
    def test_offset_minutes(self, tz, minutes):
        assert parse_offset_minutes(tz) == minutes


class TestDiffTrees:
    def test_counts_insertions_and_deletions(self, git_repo):
        git_repo.commit("init", {"a.txt": "one\n"})
        child = git_repo.commit("edit", {"a.txt": "two\nthree\nfour\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        assert diff.stats.insertions == 3
        assert diff.stats.deletions == 1
        assert diff.stats.files_changed == 1
        assert [(d.status, d.new_path) for d in diff.deltas] == [("M", "a.txt")]

    def test_added_and_deleted_files(self, git_repo):
        git_repo.commit("init", {"old.py": "a\nb\n", "keep.md": "k\n"})
        child = git_repo.commit(
            "swap", {"old.py": None, "new/mod.rs": "fn main() {}\n"}
        )
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        statuses = {d.new_path: d.status for d in diff.deltas}
        assert statuses == {"old.py": "D", "new/mod.rs": "A"}
        assert diff.stats.insertions == 1
        assert diff.stats.deletions == 2
        assert diff.stats.files_changed == 2

    def test_renames_are_delete_plus_add(self, git_repo):
        git_repo.commit("init", {"before.txt": "same content\n" * 5})
        git_repo.git("mv", "before.txt", "after.txt")
        child = git_repo.commit("rename")
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        assert sorted((d.status, d.new_path) for d in diff.deltas) == [
            ("A", "after.txt"),
            ("D", "before.txt"),
        ]
        assert diff.stats.files_changed == 2

    def test_binary_file_counts_as_changed_without_lines(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})
        (git_repo.path / "blob.bin").write_bytes(b"\x00\x01\x02binary\x00")
        child = git_repo.commit("binary")
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        assert diff.stats.files_changed == 1
        assert diff.stats.insertions == 0
        assert diff.stats.deletions == 0

    def test_root_commit_diffs_against_empty_tree(self, git_repo):
        root = git_repo.commit("init", {"a.txt": "1\n2\n", "b.txt": "3\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(root))

        assert diff.old == handle.empty_tree_id
        assert diff.stats.insertions == 3
        assert diff.stats.deletions == 0
        assert {d.status for d in diff.deltas} == {"A"}

    def test_empty_commit_has_no_deltas(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})
        child = git_repo.commit("nothing")
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        assert diff.deltas == []
        assert diff.stats.files_changed == 0

    def test_paths_with_spaces_and_unicode(self, git_repo):
        git_repo.commit("init", {"a.txt": "x\n"})
        child = git_repo.commit("odd names", {"dir with space/naïve file.py": "x\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        diff = handle.diff_to_parent(handle.find_commit(child))

        assert [d.new_path for d in diff.deltas] == ["dir with space/naïve file.py"]


class TestMisc:
    def test_commit_exists(self, git_repo):
        head = git_repo.commit("init", {"a.txt": "x\n"})
        handle = RepositoryHandle.discover(git_repo.path)

        assert handle.commit_exists(head) is True
        assert handle.commit_exists("0" * 40) is False

    def test_author_emails_are_distinct(self, git_repo):
        git_repo.commit("1", {"a.txt": "1\n"}, author_email="a@x.com")
        git_repo.commit("2", {"a.txt": "2\n"}, author_email="b@x.com")
        git_repo.commit("3", {"a.txt": "3\n"}, author_email="a@x.com")

        emails = RepositoryHandle.discover(git_repo.path).author_emails()

        assert emails == ["a@x.com", "b@x.com"]
