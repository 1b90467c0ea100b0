"""Typed client for the ``version_fs`` ledger package."""

import logging
import time
from typing import Callable

from .. import bcs
from ..errors import (
    IndexingTimeout,
    LedgerUnavailable,
    NotFoundError,
    TransactionRejected,
    ValidationError,
)
from ..models import Commit, Repository
from ..retry import Ready, poll
from .transport import (
    LedgerTransport,
    MoveCall,
    object_ref,
    pure_address,
    pure_ids,
    pure_string,
)

logger = logging.getLogger(__name__)


def _find_created(effects: dict, type_suffix: str) -> str | None:
    for change in effects.get("objectChanges") or []:
        if change.get("type") == "created" and change.get(
            "objectType", ""
        ).endswith(type_suffix):
            return change["objectId"]
    return None


def _find_event(effects: dict, name: str) -> dict | None:
    for event in effects.get("events") or []:
        if event.get("type", "").endswith(f"::{name}"):
            return event.get("parsedJson") or {}
    return None


def commit_from_record(record: dict) -> Commit:
    """Build a ``Commit`` from a decoded ``COMMIT_SCHEMA`` record."""
    return Commit(
        id=record["version_id"],
        root_tree_blob_id=record["root_blob_id"],
        parents=tuple(record["parents"]),
        author=record["author"],
        timestamp=record["timestamp"],
        message=record["message"],
    )


class LedgerClient:
    """Writes and reads repository metadata on the ledger.

    Mutations return only a transaction digest; the ids they create are
    recovered by polling the transaction's effects until the ledger has
    indexed them. Reads are simulations and never poll.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        package_id: str,
        *,
        poll_attempts: int = 10,
        poll_interval: float = 1.0,
        poll_backoff: float = 1.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.package_id = package_id
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.poll_backoff = poll_backoff
        self._sleep = sleep

    @property
    def sender(self) -> str:
        return self.transport.sender

    def _call(self, function: str, *args) -> MoveCall:
        return MoveCall(self.package_id, function, tuple(args))

    # -- Writes --

    def _submit(self, call: MoveCall) -> dict:
        """Execute ``call`` and wait for its effects.

        Raises:
            TransactionRejected: On refusal or failed execution. Not retried.
            IndexingTimeout: If effects never became visible.
        """
        digest = self.transport.execute(call)
        logger.debug("Submitted %s as %s", call.function, digest)
        result = poll(
            lambda: self.transport.effects(digest),
            attempts=self.poll_attempts,
            interval=self.poll_interval,
            backoff=self.poll_backoff,
            sleep=self._sleep,
        )
        if not isinstance(result, Ready):
            raise IndexingTimeout(digest, result.attempts)
        effects = result.value
        if effects.get("status") != "success":
            raise TransactionRejected(
                effects.get("error") or "execution failed", digest
            )
        return effects

    def create_repository(self, name: str) -> tuple[str, str]:
        """Create a repository.

        Returns:
            ``(repo_id, cap_id)``; the capability authorizes later writes.
        """
        if not name or not name.strip():
            raise ValidationError("Repository name must not be empty")
        effects = self._submit(self._call("create_repository", pure_string(name)))
        repo_id = _find_created(effects, "::Repository")
        if repo_id is None:
            event = _find_event(effects, "RepositoryCreated")
            repo_id = event.get("repo_id") if event else None
        cap_id = _find_created(effects, "::RepoCap")
        if repo_id is None or cap_id is None:
            raise TransactionRejected(
                "Could not extract repository and capability ids",
                effects.get("digest"),
            )
        logger.info("Created repository %r as %s", name, repo_id)
        return repo_id, cap_id

    def commit(
        self,
        repo_id: str,
        cap: str,
        branch: str,
        root_blob_id: str,
        parents: list[str] | tuple[str, ...],
        message: str,
    ) -> str:
        """Record a commit and advance ``branch`` to it. Returns its id."""
        effects = self._submit(
            self._call(
                "commit",
                object_ref(repo_id),
                object_ref(cap),
                pure_string(branch),
                pure_string(root_blob_id),
                pure_ids(parents),
                pure_string(message),
            )
        )
        event = _find_event(effects, "NewCommit")
        if not event or not event.get("version_id"):
            raise TransactionRejected(
                "Could not extract version id", effects.get("digest")
            )
        return event["version_id"]

    def create_branch(
        self, repo_id: str, cap: str, name: str, from_commit: str
    ) -> None:
        self._submit(
            self._call(
                "create_branch",
                object_ref(repo_id),
                object_ref(cap),
                pure_string(name),
                pure_address(from_commit),
            )
        )

    # -- Reads --

    def _inspect(self, schema: bcs.Schema, call: MoveCall) -> dict:
        """Simulate ``call`` and decode its return values.

        Raises:
            NotFoundError: If the call aborted (missing object or branch).
            LedgerUnavailable: If the simulation could not be run.
        """
        result = self.transport.inspect(call)
        if not result.ok:
            if result.aborted:
                raise NotFoundError(f"{call.function} failed: {result.error}")
            raise LedgerUnavailable(f"{call.function} failed: {result.error}")
        return bcs.decode(schema, result.return_values)

    def get_branch_head(self, repo_id: str, branch: str) -> str:
        """Current commit id of ``branch``.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        record = self._inspect(
            bcs.BRANCH_HEAD_SCHEMA,
            self._call("get_branch_head", object_ref(repo_id), pure_string(branch)),
        )
        return record["version_id"]

    def get_version(self, repo_id: str, version_id: str) -> Commit:
        record = self._inspect(
            bcs.COMMIT_SCHEMA,
            self._call("get_version", object_ref(repo_id), pure_address(version_id)),
        )
        return commit_from_record(record)

    def get_repository(self, repo_id: str) -> Repository:
        record = self._inspect(
            bcs.REPOSITORY_SCHEMA, self._call("get_repository", object_ref(repo_id))
        )
        return Repository(
            id=repo_id,
            name=record["name"],
            owner=record["owner"],
            commit_count=record["version_count"],
        )

    def get_repositories_by_owner(self, owner: str | None = None) -> list[Repository]:
        """Repositories created by ``owner`` (default: the sender)."""
        record = self._inspect(
            bcs.REPOSITORY_LIST_SCHEMA,
            self._call("get_repositories_by_owner", pure_address(owner or self.sender)),
        )
        return [self.get_repository(repo_id) for repo_id in record["repo_ids"]]
