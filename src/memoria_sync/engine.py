"""
Git engine for memoria-sync.

Thin adapter over GitPython exposing the primitives the sync orchestrator
needs: init, clone, status matrix, stage, commit, push, pull and remote
info. Remote operations run with the environment produced by
``TransportParams.git_env()`` so credentials never hit the command line.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, Union

import git
from git import InvalidGitRepositoryError, NoSuchPathError

from .errors import EngineError
from .models import Author, ChangeStatusEntry, DirListing, PushResult, RemoteInfo
from .transport import TransportParams

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"
METADATA_DIR = ".git"


def _author_env(author: Author) -> dict[str, str]:
    return {
        "GIT_AUTHOR_NAME": author.name,
        "GIT_AUTHOR_EMAIL": author.email,
        "GIT_COMMITTER_NAME": author.name,
        "GIT_COMMITTER_EMAIL": author.email,
    }


def parse_ls_remote(output: str) -> RemoteInfo:
    """Parse ``git ls-remote`` output into branch heads."""
    heads = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        sha, _, ref = line.partition("\t")
        if ref.startswith("refs/heads/"):
            heads[ref[len("refs/heads/"):]] = sha.strip()
    return RemoteInfo(heads=heads)


class GitEngine:
    """GitPython-backed implementation of the sync primitives."""

    def repository_exists(self, workdir: Union[str, Path]) -> bool:
        """Check for the repository metadata directory."""
        try:
            (Path(workdir) / METADATA_DIR).stat()
        except OSError:
            return False
        return True

    def open(self, workdir: Union[str, Path]) -> git.Repo:
        try:
            return git.Repo(workdir)
        except InvalidGitRepositoryError:
            raise EngineError(
                f"'{workdir}' is not a Git repository",
                "Clone or initialize a repository first"
            )
        except NoSuchPathError:
            raise EngineError(
                f"Path does not exist: {workdir}",
                "Create the vault directory first"
            )

    def init(self, workdir: Union[str, Path], branch: str = "main") -> None:
        path = Path(workdir)
        if not path.exists():
            logger.info(f"Creating directory: {path}")
            path.mkdir(parents=True, exist_ok=True)

        git.Repo.init(path, initial_branch=branch)
        logger.info(f"Initialized Git repository at: {path}")

    def _ensure_remote(self, repo: git.Repo, url: str) -> git.Remote:
        """Point ``origin`` at the given URL, creating it if needed."""
        try:
            remote = repo.remote(REMOTE_NAME)
        except ValueError:
            logger.info(f"Adding remote '{REMOTE_NAME}'")
            return repo.create_remote(REMOTE_NAME, url)

        if url not in list(remote.urls):
            remote.set_url(url)
            logger.info(f"Updated remote '{REMOTE_NAME}' URL")
        return remote

    def get_remote_info(self, params: TransportParams) -> RemoteInfo:
        """List the branches the remote advertises."""
        g = git.Git()
        with g.custom_environment(**params.git_env()):
            output = g.ls_remote("--heads", params.url)
        return parse_ls_remote(output)

    def clone(
        self,
        workdir: Union[str, Path],
        params: TransportParams,
        ref: str,
        depth: int = 1,
        single_branch: bool = True,
    ) -> None:
        """
        Clone the remote into the working directory.

        The vault usually already exists and holds notes, which ``git clone``
        refuses to write into, so the clone is done in place: init, add the
        remote, fetch the branch and check it out.

        Args:
            workdir: Vault directory (may already contain files)
            params: Effective URL and credentials
            ref: Branch to clone
            depth: History depth to fetch
            single_branch: Only track ``ref`` on the remote

        Raises:
            EngineError: If the vault already holds a repository, or the
                remote has branches but not ``ref``
            GitCommandError: If git fails
        """
        path = Path(workdir)
        if self.repository_exists(path):
            raise EngineError(
                f"A Git repository already exists in: {path}",
                "Use pull to update it, or remove the .git folder to clone again"
            )
        path.mkdir(parents=True, exist_ok=True)

        try:
            self._clone_in_place(path, params, ref, depth, single_branch)
        except Exception:
            logger.warning(f"Clone failed, removing partial repository in: {path}")
            shutil.rmtree(path / METADATA_DIR, ignore_errors=True)
            raise
        logger.info(f"Cloned {REMOTE_NAME}/{ref} into: {path}")

    def _clone_in_place(
        self,
        path: Path,
        params: TransportParams,
        ref: str,
        depth: int,
        single_branch: bool,
    ) -> None:
        repo = git.Repo.init(path, initial_branch=ref)
        self._ensure_remote(repo, params.url)

        if single_branch:
            fetch_spec = f"+refs/heads/{ref}:refs/remotes/{REMOTE_NAME}/{ref}"
        else:
            fetch_spec = f"+refs/heads/*:refs/remotes/{REMOTE_NAME}/*"
        with repo.config_writer() as config:
            config.set_value(f'remote "{REMOTE_NAME}"', "fetch", fetch_spec)

        with repo.git.custom_environment(**params.git_env()):
            info = parse_ls_remote(repo.git.ls_remote("--heads", REMOTE_NAME))
            if not info.heads:
                logger.info("Remote repository is empty, nothing to fetch")
                return
            if not info.has_branch(ref):
                raise EngineError(
                    f"Branch '{ref}' not found on remote",
                    f"Available branches: {', '.join(sorted(info.heads))}"
                )

            fetch_args = [REMOTE_NAME, fetch_spec]
            if depth:
                fetch_args.insert(0, f"--depth={depth}")
            repo.git.fetch(*fetch_args)

        repo.git.checkout("--track", "-b", ref, f"{REMOTE_NAME}/{ref}")

    def list_dir(self, workdir: Union[str, Path]) -> DirListing:
        listing = DirListing()
        for entry in sorted(Path(workdir).iterdir()):
            if entry.is_dir():
                listing.folders.append(entry.name)
            else:
                listing.files.append(entry.name)
        return listing

    def status_matrix(self, workdir: Union[str, Path]) -> list[ChangeStatusEntry]:
        """
        Compute the (head, workdir, stage) triple for every known file.

        Covers files in HEAD, in the index and untracked files that are not
        ignored.
        """
        repo = self.open(workdir)
        root = Path(repo.working_tree_dir)
        index = repo.index

        head_paths: set[str] = set()
        head_vs_workdir: set[str] = set()
        head_vs_index: set[str] = set()
        if repo.head.is_valid():
            head_commit = repo.head.commit
            head_paths = {
                item.path for item in head_commit.tree.traverse() if item.type == "blob"
            }
            head_vs_workdir = _diff_paths(head_commit.diff(None))
            head_vs_index = _diff_paths(head_commit.diff())

        index_paths = {path for path, _stage in index.entries}
        index_vs_workdir = _diff_paths(index.diff(None))
        untracked = set(repo.untracked_files)

        entries = []
        for filepath in sorted(head_paths | index_paths | untracked):
            in_head = filepath in head_paths
            exists = (root / filepath).is_file() or (root / filepath).is_symlink()

            if not exists:
                workdir_state = 0
            elif in_head and filepath not in head_vs_workdir:
                workdir_state = 1
            else:
                workdir_state = 2

            if filepath not in index_paths:
                stage_state = 0
            elif in_head and filepath not in head_vs_index:
                stage_state = 1
            elif exists and filepath not in index_vs_workdir:
                stage_state = 2
            else:
                stage_state = 3

            entries.append(ChangeStatusEntry(
                filepath=filepath,
                head=1 if in_head else 0,
                workdir=workdir_state,
                stage=stage_state,
            ))
        return entries

    def stage(self, workdir: Union[str, Path], entries: Iterable[ChangeStatusEntry]) -> None:
        """Add changed files and record deletions in the index."""
        repo = self.open(workdir)
        to_add = []
        to_remove = []
        for entry in entries:
            if not entry.is_deleted:
                to_add.append(entry.filepath)
            elif entry.stage != 0:
                to_remove.append(entry.filepath)

        if to_add:
            repo.git.add("--", *to_add)
        if to_remove:
            repo.git.rm("--cached", "--quiet", "--", *to_remove)
        logger.debug(f"Staged {len(to_add)} file(s), removed {len(to_remove)}")

    def commit(self, workdir: Union[str, Path], message: str, author: Author) -> str:
        """Commit the index and return the full sha."""
        repo = self.open(workdir)
        actor = git.Actor(author.name, author.email)
        commit = repo.index.commit(message, author=actor, committer=actor)
        logger.info(f"Created commit: {commit.hexsha[:8]} - {message}")
        return commit.hexsha

    def push(self, workdir: Union[str, Path], params: TransportParams, ref: str) -> PushResult:
        """
        Push the branch to the remote.

        A rejected ref does not raise; it comes back as ``ok=False`` with
        one error string per failed ref.
        """
        repo = self.open(workdir)
        remote = self._ensure_remote(repo, params.url)

        with repo.git.custom_environment(**params.git_env()):
            infos = remote.push(refspec=f"refs/heads/{ref}:refs/heads/{ref}")

        errors = []
        for info in infos:
            if info.flags & git.PushInfo.ERROR:
                summary = info.summary.strip() or "rejected"
                errors.append(f"{info.remote_ref_string} {summary}")

        if not infos:
            errors.append(f"Nothing was pushed for '{ref}'")

        logger.info(f"Pushed {ref} to {REMOTE_NAME}: {len(errors)} error(s)")
        return PushResult(ok=not errors, errors=errors)

    def pull(
        self,
        workdir: Union[str, Path],
        params: TransportParams,
        ref: str,
        author: Author,
    ) -> None:
        """Fetch and merge the branch; merge commits use ``author``."""
        repo = self.open(workdir)
        self._ensure_remote(repo, params.url)

        env = params.git_env()
        env.update(_author_env(author))
        with repo.git.custom_environment(**env):
            repo.git.pull("--no-rebase", "--no-edit", REMOTE_NAME, ref)
        logger.info(f"Pulled from {REMOTE_NAME}/{ref}")


def _diff_paths(diffs: Iterable[git.Diff]) -> set[str]:
    paths = set()
    for d in diffs:
        if d.a_path:
            paths.add(d.a_path)
        if d.b_path:
            paths.add(d.b_path)
    return paths


__all__ = [
    "GitEngine",
    "METADATA_DIR",
    "REMOTE_NAME",
    "parse_ls_remote",
]
