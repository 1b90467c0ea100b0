"""VersioningEngine: keeps blob storage and ledger metadata consistent."""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from . import tree as treecodec
from .blobs.base import BlobStore
from .errors import DecodeError, NotFoundError, PermissionDenied, ValidationError
from .ledger.client import LedgerClient
from .models import Change, ChangeKind, Commit, Repository, Session, Status
from .tree import Tree

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
INITIAL_MESSAGE = "Initial commit"

FileInput = Mapping[str, Any] | tuple[str, bytes | str]


def _normalize_files(files: Iterable[FileInput]) -> list[tuple[str, bytes]]:
    """Turn ``{path, data}`` mappings or ``(path, data)`` pairs into bytes."""
    out: list[tuple[str, bytes]] = []
    seen: set[str] = set()
    for item in files:
        if isinstance(item, Mapping):
            path, data = item["path"], item["data"]
        else:
            path, data = item
        if not path:
            raise ValidationError("File path must not be empty")
        if path in seen:
            raise ValidationError(f"Duplicate path in commit: {path!r}")
        seen.add(path)
        if isinstance(data, str):
            data = data.encode("utf-8")
        out.append((path, bytes(data)))
    return out


class VersioningEngine:
    """Git-like operations over a blob store and a ledger.

    The engine is untargeted until ``init()`` or ``set_target()`` binds it
    to a repository and capability. Every operation also accepts an
    explicit ``session=``, so one engine can drive several repositories.
    An operation that needs a repository while none is given raises
    ``PermissionDenied``.
    """

    def __init__(
        self,
        blobs: BlobStore,
        ledger: LedgerClient,
        *,
        epochs: int = 3,
        upload_workers: int = 4,
        session: Session | None = None,
    ) -> None:
        self.blobs = blobs
        self.ledger = ledger
        self.epochs = epochs
        self.upload_workers = upload_workers
        self.session = session

    def __repr__(self) -> str:
        target = self.session.repo_id[:10] + "..." if self.session else None
        return f"VersioningEngine(target={target})"

    @property
    def targeted(self) -> bool:
        return self.session is not None

    def _require(self, session: Session | None) -> Session:
        current = session or self.session
        if current is None:
            raise PermissionDenied(
                "No repository targeted. Call init() or set_target() first."
            )
        return current

    def set_target(self, repo_id: str, capability: str) -> Session:
        """Bind the engine to an existing repository."""
        if not repo_id or not capability:
            raise PermissionDenied("Both a repository id and a capability are required")
        self.session = Session(repo_id, capability)
        logger.info("Targeting repository %s", repo_id)
        return self.session

    # -- Write operations --

    def init(self, name: str) -> str:
        """Create a repository with an empty root commit on ``main``.

        The engine is targeted at the new repository as soon as it
        exists, before the root commit is written.

        Returns:
            The new repository id.
        """
        repo_id, cap_id = self.ledger.create_repository(name)
        session = self.set_target(repo_id, cap_id)

        tree_blob_id = self.blobs.put(
            treecodec.serialize(treecodec.empty_tree()), self.epochs
        )
        root_id = self.ledger.commit(
            session.repo_id, session.capability, DEFAULT_BRANCH,
            tree_blob_id, [], INITIAL_MESSAGE,
        )
        logger.info("Initialized %r (%s), root commit %s", name, repo_id, root_id)
        return repo_id

    def _upload(self, files: list[tuple[str, bytes]]) -> list[dict[str, Any]]:
        """Upload every file and wait for all of them.

        The first upload error propagates once the others have settled.
        """

        def put(item: tuple[str, bytes]) -> dict[str, Any]:
            path, data = item
            blob_id = self.blobs.put(data, self.epochs)
            logger.debug("Uploaded %s -> %s (%d bytes)", path, blob_id, len(data))
            return {"path": path, "blob_id": blob_id, "size": len(data)}

        workers = max(1, min(self.upload_workers, len(files)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(put, item) for item in files]
        return [f.result() for f in futures]

    def commit(
        self,
        files: Iterable[FileInput],
        message: str,
        branch: str = DEFAULT_BRANCH,
        *,
        session: Session | None = None,
    ) -> str:
        """Snapshot ``files`` as a new commit on ``branch``.

        Steps run strictly in order: upload file blobs, store the tree
        blob, resolve the branch head, write the commit. A failure in
        any step leaves no commit behind.

        Args:
            files: ``{"path", "data"}`` mappings or ``(path, data)`` pairs;
                ``data`` is bytes or text (UTF-8 encoded).
            message: Commit message, must not be empty.
            branch: Branch to advance. A branch without a head gets a
                parentless commit.

        Returns:
            The new commit id.
        """
        current = self._require(session)
        if not message or not message.strip():
            raise ValidationError("Commit message must not be empty")
        normalized = _normalize_files(files)
        if not normalized:
            raise ValidationError("Nothing to commit: no files given")

        logger.debug("Uploading %d files", len(normalized))
        uploaded = self._upload(normalized)

        tree = treecodec.build_tree(uploaded)
        tree_blob_id = self.blobs.put(treecodec.serialize(tree), self.epochs)

        head = self.head(branch, session=current)
        parents = [head] if head else []
        if not parents:
            logger.info("No head on %r, creating a parentless commit", branch)

        commit_id = self.ledger.commit(
            current.repo_id, current.capability, branch,
            tree_blob_id, parents, message,
        )
        logger.info("Committed %s on %r: %s", commit_id, branch, message)
        return commit_id

    def create_branch(
        self,
        name: str,
        from_commit: str | None = None,
        *,
        session: Session | None = None,
    ) -> str:
        """Create ``name`` pointing at ``from_commit`` (default: head of main).

        Returns:
            The commit the new branch points at.
        """
        current = self._require(session)
        if not name:
            raise ValidationError("Branch name must not be empty")
        source = from_commit or self.ledger.get_branch_head(
            current.repo_id, DEFAULT_BRANCH
        )
        self.ledger.create_branch(current.repo_id, current.capability, name, source)
        logger.info("Created branch %r at %s", name, source)
        return source

    # -- Read operations --

    def head(self, branch: str = DEFAULT_BRANCH, *, session: Session | None = None) -> str | None:
        """Current commit of ``branch``, or None if it has none."""
        current = self._require(session)
        try:
            return self.ledger.get_branch_head(current.repo_id, branch)
        except NotFoundError:
            return None

    def resolve(self, target: str, *, session: Session | None = None) -> str:
        """Resolve a branch name to its head; anything else is a commit id."""
        head = self.head(target, session=session)
        return head if head is not None else target

    def get_commit(self, commit_id: str, *, session: Session | None = None) -> Commit:
        current = self._require(session)
        return self.ledger.get_version(current.repo_id, commit_id)

    def read_tree(self, commit: Commit) -> Tree:
        return treecodec.parse(self.blobs.get(commit.root_tree_blob_id))

    def history(
        self, commit_id: str, *, session: Session | None = None
    ) -> Iterator[Commit]:
        """Yield commits from ``commit_id`` back to the root, first parents only.

        Stops early, with a warning, at a parent that cannot be fetched
        or decoded.
        """
        current = self._require(session)
        commit = self.ledger.get_version(current.repo_id, commit_id)
        while True:
            yield commit
            if commit.is_root:
                return
            parent_id = commit.parents[0]
            try:
                commit = self.ledger.get_version(current.repo_id, parent_id)
            except (NotFoundError, DecodeError) as e:
                logger.warning(
                    "History truncated: parent %s of %s unreadable: %s",
                    parent_id, commit.short_id, e,
                )
                return

    def log(
        self,
        branch: str = DEFAULT_BRANCH,
        limit: int = 10,
        *,
        session: Session | None = None,
    ) -> list[Commit]:
        """Up to ``limit`` commits of ``branch``, newest first."""
        current = self._require(session)
        if limit <= 0:
            return []
        head = self.ledger.get_branch_head(current.repo_id, branch)
        commits = []
        for commit in self.history(head, session=current):
            commits.append(commit)
            if len(commits) >= limit:
                break
        return commits

    def checkout(
        self,
        target: str,
        destination: str | Path,
        *,
        session: Session | None = None,
    ) -> Commit:
        """Write every file of ``target``'s tree under ``destination``.

        ``target`` is tried as a branch name first, then as a commit id.
        Files already in ``destination`` that the tree does not name are
        left alone.

        Returns:
            The commit that was checked out.
        """
        current = self._require(session)
        commit = self.get_commit(self.resolve(target, session=current), session=current)
        tree = self.read_tree(commit)

        root = Path(destination).resolve()
        targets = []
        for path, entry in tree.items():
            out = (root / path).resolve()
            if not out.is_relative_to(root):
                raise ValidationError(f"Tree path escapes destination: {path!r}")
            targets.append((path, entry, out))

        root.mkdir(parents=True, exist_ok=True)
        for path, entry, out in targets:
            if entry.type == "directory":
                out.mkdir(parents=True, exist_ok=True)
                continue
            if not entry.is_file:
                continue
            data = self.blobs.get(entry.blob_id)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(data)
            logger.debug("Wrote %s (%d bytes)", path, len(data))

        logger.info(
            "Checked out %s (%d entries) into %s", commit.short_id, len(tree), root
        )
        return commit

    def diff(
        self, commit_a: str, commit_b: str, *, session: Session | None = None
    ) -> list[Change]:
        """Paths that differ going from ``commit_a`` to ``commit_b``, by path."""
        current = self._require(session)
        tree_a = self.read_tree(self.get_commit(commit_a, session=current))
        tree_b = self.read_tree(self.get_commit(commit_b, session=current))

        changes = []
        for path in sorted(set(tree_a) | set(tree_b)):
            if path not in tree_a:
                changes.append(Change(path, ChangeKind.ADDED))
            elif path not in tree_b:
                changes.append(Change(path, ChangeKind.REMOVED))
            elif tree_a[path].blob_id != tree_b[path].blob_id:
                changes.append(Change(path, ChangeKind.MODIFIED))
        return changes

    def cat(
        self,
        path: str,
        version: str | None = None,
        branch: str = DEFAULT_BRANCH,
        *,
        session: Session | None = None,
    ) -> bytes:
        """Content of ``path`` at ``version`` (default: head of ``branch``).

        Raises:
            NotFoundError: If the path is absent or not a file.
        """
        current = self._require(session)
        commit_id = version or self.ledger.get_branch_head(current.repo_id, branch)
        tree = self.read_tree(self.get_commit(commit_id, session=current))
        entry = tree.get(path)
        if entry is None or not entry.is_file:
            raise NotFoundError(f"File not found: {path}")
        return self.blobs.get(entry.blob_id)

    def status(self, *, session: Session | None = None) -> Status:
        current = self._require(session)
        repo = self.ledger.get_repository(current.repo_id)
        return Status(
            name=repo.name,
            owner=repo.owner,
            commit_count=repo.commit_count,
            repo_id=repo.id,
        )

    def repository(
        self, *branches: str, session: Session | None = None
    ) -> Repository:
        """The repository record with heads of ``branches`` (default: main)."""
        current = self._require(session)
        repo = self.ledger.get_repository(current.repo_id)
        heads = {}
        for branch in branches or (DEFAULT_BRANCH,):
            head = self.head(branch, session=current)
            if head is not None:
                heads[branch] = head
        return Repository(
            id=repo.id,
            name=repo.name,
            owner=repo.owner,
            commit_count=repo.commit_count,
            branch_heads=heads,
        )

    def list_repositories(self, owner: str | None = None) -> list[Repository]:
        """Repositories owned by ``owner`` (default: the ledger sender)."""
        return self.ledger.get_repositories_by_owner(owner)
