"""Ledger transport interface and call descriptions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

MODULE = "version_fs"

ArgKind = Literal["string", "address", "ids", "object"]


@dataclass(frozen=True)
class Arg:
    """A positional, typed argument of a Move call."""

    kind: ArgKind
    value: Any


def pure_string(value: str) -> Arg:
    return Arg("string", value)


def pure_address(value: str) -> Arg:
    return Arg("address", value)


def pure_ids(values: list[str] | tuple[str, ...]) -> Arg:
    return Arg("ids", tuple(values))


def object_ref(object_id: str) -> Arg:
    return Arg("object", object_id)


@dataclass(frozen=True)
class MoveCall:
    """A named entry point of the ``version_fs`` package and its arguments."""

    package_id: str
    function: str
    arguments: tuple[Arg, ...] = ()

    @property
    def target(self) -> str:
        return f"{self.package_id}::{MODULE}::{self.function}"


@dataclass(frozen=True)
class InspectResult:
    """Outcome of a no-effect simulation.

    ``error`` is set when the call failed; ``return_values`` holds one
    ``(bcs_bytes, type_tag)`` pair per Move return value otherwise.
    ``aborted`` tells a Move abort (the call ran and refused, e.g. a
    missing branch) from a failure to run it at all.
    """

    return_values: list[tuple[bytes, str]] = field(default_factory=list)
    error: str | None = None
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class LedgerTransport(ABC):
    """The narrow read/write surface of the ledger.

    Effects are plain dicts shaped like Sui transaction responses::

        {"digest": ..., "status": "success" | "failure", "error": ...,
         "events": [{"type": ..., "parsedJson": {...}}],
         "objectChanges": [{"type": "created", "objectType": ...,
                            "objectId": ...}]}
    """

    @property
    @abstractmethod
    def sender(self) -> str:
        """Address that signs mutating calls and runs simulations."""

    @abstractmethod
    def execute(self, call: MoveCall) -> str:
        """Submit a mutating call and return its transaction digest.

        Raises:
            TransactionRejected: If the ledger refuses the submission.
        """

    @abstractmethod
    def effects(self, digest: str) -> dict | None:
        """Recorded effects of a transaction, or None while not indexed."""

    @abstractmethod
    def inspect(self, call: MoveCall) -> InspectResult:
        """Run a read-only call against current state."""
