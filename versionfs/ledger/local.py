"""In-process ledger emulating the ``version_fs`` Move package."""

import base64
import hashlib
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .. import bcs
from ..errors import TransactionRejected
from .transport import MODULE, InspectResult, LedgerTransport, MoveCall

logger = logging.getLogger(__name__)


@dataclass
class _Version:
    root_blob_id: str
    parents: tuple[str, ...]
    author: str
    timestamp: int
    message: str


@dataclass
class _Repository:
    name: str
    owner: str
    cap_id: str
    branches: dict[str, str] = field(default_factory=dict)
    versions: dict[str, _Version] = field(default_factory=dict)


class _Abort(Exception):
    """A Move abort inside a call; becomes failure effects or an inspect error."""


class LocalLedger(LedgerTransport):
    """Ledger state held in memory.

    Enforces what the on-chain package enforces: capability ownership,
    pre-existing parents and non-empty names. Effects of a transaction
    become visible only after ``indexing_lag`` unsuccessful ``effects()``
    polls, mimicking fullnode indexing delay.
    """

    def __init__(
        self,
        *,
        sender: str | None = None,
        package_id: str = "0x0",
        indexing_lag: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.package_id = package_id
        self.indexing_lag = indexing_lag
        self.clock = clock
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._sender = sender or self._new_id("sender")
        self._repos: dict[str, _Repository] = {}
        self._caps: dict[str, str] = {}
        self._effects: dict[str, dict] = {}
        self._lag: dict[str, int] = {}
        self.calls: list[MoveCall] = []

    @property
    def sender(self) -> str:
        return self._sender

    def _new_id(self, kind: str) -> str:
        seed = f"{id(self)}:{kind}:{next(self._ids)}".encode()
        return "0x" + hashlib.sha256(seed).hexdigest()

    def _new_digest(self) -> str:
        seed = f"{id(self)}:tx:{next(self._ids)}".encode()
        digest = hashlib.sha256(seed).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def _type(self, name: str) -> str:
        return f"{self.package_id}::{MODULE}::{name}"

    # -- Writes --

    def execute(self, call: MoveCall) -> str:
        handlers = {
            "create_repository": self._create_repository,
            "commit": self._commit,
            "create_branch": self._create_branch,
        }
        handler = handlers.get(call.function)
        if handler is None or call.package_id != self.package_id:
            raise TransactionRejected(f"No such entry function: {call.target}")

        with self._lock:
            self.calls.append(call)
            for arg in call.arguments:
                if arg.kind == "object" and not (
                    arg.value in self._repos or arg.value in self._caps
                ):
                    raise TransactionRejected(f"Object not found: {arg.value}")
            digest = self._new_digest()
            effects: dict = {
                "digest": digest,
                "status": "success",
                "error": None,
                "events": [],
                "objectChanges": [],
            }
            try:
                handler([a.value for a in call.arguments], effects)
            except _Abort as e:
                effects.update(
                    status="failure", error=str(e), events=[], objectChanges=[]
                )
                logger.debug("%s aborted: %s", call.target, e)
            self._effects[digest] = effects
            self._lag[digest] = self.indexing_lag
        return digest

    def _create_repository(self, args: list, effects: dict) -> None:
        (name,) = args
        if not name:
            raise _Abort("EEmptyName")
        repo_id = self._new_id("repo")
        cap_id = self._new_id("cap")
        self._repos[repo_id] = _Repository(
            name=name, owner=self._sender, cap_id=cap_id
        )
        self._caps[cap_id] = repo_id
        effects["events"].append(
            {
                "type": self._type("RepositoryCreated"),
                "parsedJson": {"repo_id": repo_id, "name": name, "owner": self._sender},
            }
        )
        effects["objectChanges"] += [
            {"type": "created", "objectType": self._type("Repository"), "objectId": repo_id},
            {"type": "created", "objectType": self._type("RepoCap"), "objectId": cap_id},
        ]

    def _authorize(self, repo_id: str, cap_id: str) -> _Repository:
        repo = self._repos.get(repo_id)
        if repo is None:
            raise _Abort("ERepositoryNotFound")
        if self._caps.get(cap_id) != repo_id:
            raise _Abort("ENotAuthorized")
        return repo

    def _commit(self, args: list, effects: dict) -> None:
        repo_id, cap_id, branch, root_blob_id, parents, message = args
        repo = self._authorize(repo_id, cap_id)
        for parent in parents:
            if parent not in repo.versions:
                raise _Abort(f"EParentNotFound: {parent}")
        version_id = self._new_id("version")
        repo.versions[version_id] = _Version(
            root_blob_id=root_blob_id,
            parents=tuple(parents),
            author=self._sender,
            timestamp=int(self.clock()),
            message=message,
        )
        repo.branches[branch] = version_id
        effects["events"].append(
            {
                "type": self._type("NewCommit"),
                "parsedJson": {
                    "repo_id": repo_id,
                    "version_id": version_id,
                    "branch": branch,
                    "author": self._sender,
                },
            }
        )

    def _create_branch(self, args: list, effects: dict) -> None:
        repo_id, cap_id, name, version_id = args
        repo = self._authorize(repo_id, cap_id)
        if not name:
            raise _Abort("EEmptyName")
        if name in repo.branches:
            raise _Abort(f"EBranchExists: {name}")
        if version_id not in repo.versions:
            raise _Abort(f"EVersionNotFound: {version_id}")
        repo.branches[name] = version_id
        effects["events"].append(
            {
                "type": self._type("BranchCreated"),
                "parsedJson": {"repo_id": repo_id, "branch": name, "version_id": version_id},
            }
        )

    def effects(self, digest: str) -> dict | None:
        with self._lock:
            if digest not in self._effects:
                return None
            if self._lag[digest] > 0:
                self._lag[digest] -= 1
                return None
            return self._effects[digest]

    # -- Reads --

    def inspect(self, call: MoveCall) -> InspectResult:
        handlers = {
            "get_branch_head": self._get_branch_head,
            "get_version": self._get_version,
            "get_repository": self._get_repository,
            "get_repositories_by_owner": self._get_repositories_by_owner,
        }
        handler = handlers.get(call.function)
        if handler is None or call.package_id != self.package_id:
            return InspectResult(error=f"No such function: {call.target}")
        with self._lock:
            try:
                return InspectResult(handler([a.value for a in call.arguments]))
            except _Abort as e:
                return InspectResult(error=str(e), aborted=True)

    def _repo(self, repo_id: str) -> _Repository:
        repo = self._repos.get(repo_id)
        if repo is None:
            raise _Abort(f"Object not found: {repo_id}")
        return repo

    def _get_branch_head(self, args: list) -> list[tuple[bytes, str]]:
        repo_id, name = args
        head = self._repo(repo_id).branches.get(name)
        if head is None:
            raise _Abort(f"EBranchNotFound: {name}")
        return bcs.encode(bcs.BRANCH_HEAD_SCHEMA, {"version_id": head})

    def _get_version(self, args: list) -> list[tuple[bytes, str]]:
        repo_id, version_id = args
        version = self._repo(repo_id).versions.get(version_id)
        if version is None:
            raise _Abort(f"EVersionNotFound: {version_id}")
        return bcs.encode(
            bcs.COMMIT_SCHEMA,
            {
                "root_blob_id": version.root_blob_id,
                "parents": list(version.parents),
                "author": version.author,
                "timestamp": version.timestamp,
                "message": version.message,
                "version_id": version_id,
            },
        )

    def _get_repository(self, args: list) -> list[tuple[bytes, str]]:
        (repo_id,) = args
        repo = self._repo(repo_id)
        return bcs.encode(
            bcs.REPOSITORY_SCHEMA,
            {"name": repo.name, "owner": repo.owner, "version_count": len(repo.versions)},
        )

    def _get_repositories_by_owner(self, args: list) -> list[tuple[bytes, str]]:
        (owner,) = args
        repo_ids = [rid for rid, repo in self._repos.items() if repo.owner == owner]
        return bcs.encode(bcs.REPOSITORY_LIST_SCHEMA, {"repo_ids": repo_ids})
