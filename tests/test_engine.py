"""Tests for the GitPython engine, run against local bare repositories."""

import git
import pytest

from memoria_sync.engine import GitEngine, parse_ls_remote
from memoria_sync.errors import EngineError, ErrorCategory
from memoria_sync.models import Author
from memoria_sync.orchestrator import SyncOrchestrator, is_empty_clone
from memoria_sync.settings import SettingsStore, SyncConfiguration
from memoria_sync.transport import resolve_transport
from memoria_sync.views import build_status_view

AUTHOR = Author("Test User", "test@example.com")
ACTOR = git.Actor(AUTHOR.name, AUTHOR.email)


def make_remote(tmp_path, files=None, name="remote.git"):
    """Create a bare repository, optionally seeded with one commit on main."""
    bare = tmp_path / name
    git.Repo.init(bare, bare=True, initial_branch="main")
    if files:
        seed = tmp_path / f"{name}-seed"
        repo = git.Repo.init(seed, initial_branch="main")
        for filename, content in files.items():
            (seed / filename).write_text(content)
        repo.git.add(A=True)
        repo.index.commit("seed", author=ACTOR, committer=ACTOR)
        repo.create_remote("origin", bare.as_uri())
        repo.git.push("origin", "main")
    return bare


def params_for(bare, token="test-token"):
    return resolve_transport(SyncConfiguration(repo_url=bare.as_uri(), access_token=token))


def states(engine, workdir):
    return {e.filepath: (e.head, e.workdir, e.stage) for e in engine.status_matrix(workdir)}


@pytest.fixture
def engine():
    return GitEngine()


@pytest.fixture
def vault(tmp_path):
    path = tmp_path / "vault"
    path.mkdir()
    return path


class TestInit:

    def test_init_creates_metadata(self, engine, vault):
        assert not engine.repository_exists(vault)
        engine.init(vault, "main")
        assert engine.repository_exists(vault)
        assert git.Repo(vault).git.symbolic_ref("HEAD") == "refs/heads/main"

    def test_init_creates_missing_directory(self, engine, tmp_path):
        target = tmp_path / "new" / "vault"
        engine.init(target)
        assert (target / ".git").is_dir()

    def test_open_non_repo(self, engine, vault):
        with pytest.raises(EngineError):
            engine.status_matrix(vault)


class TestStatusMatrix:
    """Test (head, workdir, stage) states through a file's lifecycle."""

    def test_lifecycle(self, engine, vault):
        engine.init(vault)
        (vault / "a.md").write_text("one")
        assert states(engine, vault) == {"a.md": (0, 2, 0)}

        engine.stage(vault, engine.status_matrix(vault))
        assert states(engine, vault) == {"a.md": (0, 2, 2)}

        engine.commit(vault, "first", AUTHOR)
        assert states(engine, vault) == {"a.md": (1, 1, 1)}

        (vault / "a.md").write_text("one plus more")
        assert states(engine, vault) == {"a.md": (1, 2, 1)}

        engine.stage(vault, engine.status_matrix(vault))
        assert states(engine, vault) == {"a.md": (1, 2, 2)}

        (vault / "a.md").write_text("one plus even more text")
        assert states(engine, vault) == {"a.md": (1, 2, 3)}

    def test_deleted_file(self, engine, vault):
        engine.init(vault)
        (vault / "a.md").write_text("one")
        (vault / "b.md").write_text("two")
        engine.stage(vault, engine.status_matrix(vault))
        engine.commit(vault, "first", AUTHOR)

        (vault / "b.md").unlink()
        assert states(engine, vault) == {"a.md": (1, 1, 1), "b.md": (1, 0, 1)}

        dirty = [e for e in engine.status_matrix(vault) if not e.is_clean]
        engine.stage(vault, dirty)
        assert states(engine, vault)["b.md"] == (1, 0, 0)

        engine.commit(vault, "remove b", AUTHOR)
        assert states(engine, vault) == {"a.md": (1, 1, 1)}

    def test_ignored_files_not_listed(self, engine, vault):
        engine.init(vault)
        (vault / ".gitignore").write_text("*.tmp\n")
        (vault / "scratch.tmp").write_text("x")
        assert "scratch.tmp" not in states(engine, vault)

    def test_nested_paths(self, engine, vault):
        engine.init(vault)
        (vault / "daily").mkdir()
        (vault / "daily" / "2024-01-01.md").write_text("entry")
        assert states(engine, vault) == {"daily/2024-01-01.md": (0, 2, 0)}


class TestParseLsRemote:

    def test_heads_only(self):
        output = "abc\trefs/heads/main\ndef\trefs/heads/dev\n123\trefs/tags/v1\n"
        assert parse_ls_remote(output).heads == {"main": "abc", "dev": "def"}

    def test_empty(self):
        assert parse_ls_remote("").heads == {}


class TestRemoteOperations:
    """Test clone, push, pull against a file:// remote."""

    def test_remote_info(self, engine, tmp_path):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        info = engine.get_remote_info(params_for(bare))
        assert info.has_branch("main")
        assert not info.has_branch("dev")

    def test_clone_is_shallow_and_tracks_branch(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        engine.clone(vault, params_for(bare), ref="main", depth=1)

        repo = git.Repo(vault)
        assert (vault / "note.md").read_text() == "hello"
        assert repo.active_branch.name == "main"
        assert repo.active_branch.tracking_branch().name == "origin/main"
        assert (vault / ".git" / "shallow").exists()

    def test_clone_into_vault_with_notes(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path, {"remote.md": "from remote"})
        (vault / "local.md").write_text("local note")

        engine.clone(vault, params_for(bare), ref="main")
        assert (vault / "remote.md").exists()
        assert states(engine, vault) == {"local.md": (0, 2, 0), "remote.md": (1, 1, 1)}

    def test_clone_empty_remote(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path)
        engine.clone(vault, params_for(bare), ref="main")

        assert is_empty_clone(engine.list_dir(vault))

    def test_clone_missing_branch(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        with pytest.raises(EngineError) as excinfo:
            engine.clone(vault, params_for(bare), ref="does-not-exist")
        assert "does-not-exist" in excinfo.value.message
        assert not engine.repository_exists(vault)

    def test_failed_clone_removes_partial_repository(self, engine, tmp_path, vault):
        (vault / "local.md").write_text("local note")
        missing = tmp_path / "missing.git"

        with pytest.raises(git.GitCommandError):
            engine.clone(vault, params_for(missing), ref="main")

        assert not engine.repository_exists(vault)
        assert (vault / "local.md").read_text() == "local note"

    def test_clone_refuses_existing_repository(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        engine.init(vault, "main")
        (vault / "mine.md").write_text("my note")
        engine.stage(vault, [e for e in engine.status_matrix(vault) if not e.is_clean])
        sha = engine.commit(vault, "my note", AUTHOR)

        with pytest.raises(EngineError) as excinfo:
            engine.clone(vault, params_for(bare), ref="main")

        assert "already exists" in excinfo.value.message
        assert git.Repo(vault).head.commit.hexsha == sha
        assert (vault / "mine.md").read_text() == "my note"
        assert not (vault / "note.md").exists()

    def test_commit_and_push(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        engine.clone(vault, params_for(bare), ref="main")

        (vault / "new.md").write_text("new note")
        engine.stage(vault, [e for e in engine.status_matrix(vault) if not e.is_clean])
        sha = engine.commit(vault, "add new note", AUTHOR)

        result = engine.push(vault, params_for(bare), "main")
        assert result.ok
        assert result.errors == []
        assert git.Repo(bare).heads.main.commit.hexsha == sha

    def test_push_from_init_creates_remote(self, engine, tmp_path, vault):
        bare = make_remote(tmp_path)
        engine.init(vault)
        (vault / "a.md").write_text("a")
        engine.stage(vault, engine.status_matrix(vault))
        engine.commit(vault, "first", AUTHOR)

        assert engine.push(vault, params_for(bare), "main").ok
        assert git.Repo(vault).remote("origin").url == bare.as_uri()

    def test_rejected_push_is_not_ok(self, engine, tmp_path):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        first = tmp_path / "first"
        second = tmp_path / "second"
        for path in (first, second):
            engine.clone(path, params_for(bare), ref="main")

        (second / "b.md").write_text("from second")
        engine.stage(second, engine.status_matrix(second))
        engine.commit(second, "second", AUTHOR)
        assert engine.push(second, params_for(bare), "main").ok

        (first / "a.md").write_text("from first")
        engine.stage(first, engine.status_matrix(first))
        engine.commit(first, "first", AUTHOR)
        result = engine.push(first, params_for(bare), "main")

        assert not result.ok
        assert len(result.errors) == 1
        assert "rejected" in result.errors[0]

    def test_pull_fast_forward(self, engine, tmp_path):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        first = tmp_path / "first"
        second = tmp_path / "second"
        for path in (first, second):
            engine.clone(path, params_for(bare), ref="main")

        (second / "b.md").write_text("from second")
        engine.stage(second, engine.status_matrix(second))
        engine.commit(second, "second", AUTHOR)
        engine.push(second, params_for(bare), "main")

        engine.pull(first, params_for(bare), "main", AUTHOR)
        assert (first / "b.md").read_text() == "from second"


class TestOrchestratorWithGit:
    """End-to-end checks with the real engine."""

    @pytest.fixture
    def store(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        store.save(SyncConfiguration(access_token="test-token"))
        return store

    def test_commit_all_then_nothing_to_commit(self, store, vault):
        orchestrator = SyncOrchestrator(vault, store)
        assert orchestrator.init().success
        (vault / "note.md").write_text("# Note")

        outcome = orchestrator.commit_all()
        assert outcome.success
        assert len(outcome.commit_sha) == 7
        head = git.Repo(vault).head.commit
        assert head.hexsha.startswith(outcome.commit_sha)
        assert "{date}" not in head.message
        assert head.author.name == "Memoria Sync"

        again = orchestrator.commit_all()
        assert again.success
        assert again.commit_sha is None
        assert git.Repo(vault).head.commit == head

    def test_clone_commit_push_round_trip(self, tmp_path, store, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        store.update("repo_url", bare.as_uri())
        orchestrator = SyncOrchestrator(vault, store)

        assert orchestrator.clone().success
        (vault / "note.md").write_text("hello again")
        commit_outcome, push_outcome = orchestrator.commit_and_push()

        assert commit_outcome.success
        assert push_outcome.success
        assert git.Repo(bare).heads.main.commit.hexsha.startswith(commit_outcome.commit_sha)

    def test_clone_keeps_committed_notes(self, tmp_path, store, vault):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        store.update("repo_url", bare.as_uri())
        orchestrator = SyncOrchestrator(vault, store)
        orchestrator.init()
        (vault / "mine.md").write_text("my note")
        head = orchestrator.commit_all().commit_sha

        outcome = orchestrator.clone()

        assert not outcome.success
        assert outcome.error_category is ErrorCategory.VALIDATION
        assert git.Repo(vault).head.commit.hexsha.startswith(head)
        assert (vault / "mine.md").exists()

    def test_failed_clone_leaves_clone_action_available(self, tmp_path, store, vault):
        store.update("repo_url", (tmp_path / "missing.git").as_uri())
        orchestrator = SyncOrchestrator(vault, store)

        assert not orchestrator.clone().success
        assert not orchestrator.repository_exists()
        assert build_status_view(orchestrator.repository_exists()).action_ids == ["clone", "init"]

    def test_connection_against_local_remote(self, tmp_path, store):
        bare = make_remote(tmp_path, {"note.md": "hello"})
        store.update("repo_url", bare.as_uri())
        outcome = SyncOrchestrator(tmp_path, store).test_connection()
        assert outcome.success
        assert "'main' found" in outcome.message
