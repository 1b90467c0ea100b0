"""Engine configuration, with environment overrides."""

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping

from .blobs.walrus import WALRUS_AGGREGATOR, WALRUS_PUBLISHER

SUI_TESTNET_RPC = "https://fullnode.testnet.sui.io:443"

ENV_PREFIX = "VERSIONFS_"


@dataclass(frozen=True)
class Config:
    """Settings shared by the blob store, ledger client and engine.

    Attributes:
        publisher_url: Walrus publisher (uploads).
        aggregator_url: Walrus aggregator (downloads).
        rpc_url: Sui fullnode JSON-RPC endpoint.
        package_id: Address of the deployed ``version_fs`` package.
        epochs: Storage epochs requested for every blob.
        epoch_seconds: Length of one epoch for the disk backend.
        poll_attempts: Effects polls before ``IndexingTimeout``.
        poll_interval: Seconds before the second poll.
        poll_backoff: Multiplier applied to the interval after each poll.
        upload_workers: Concurrent uploads per commit.
        timeout: HTTP timeout in seconds.
    """

    publisher_url: str = WALRUS_PUBLISHER
    aggregator_url: str = WALRUS_AGGREGATOR
    rpc_url: str = SUI_TESTNET_RPC
    package_id: str = "0x0"
    epochs: int = 3
    epoch_seconds: float = 86400.0
    poll_attempts: int = 10
    poll_interval: float = 1.0
    poll_backoff: float = 1.5
    upload_workers: int = 4
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {self.epochs}")
        if self.poll_attempts < 1:
            raise ValueError(
                f"poll_attempts must be >= 1, got {self.poll_attempts}"
            )
        if self.poll_interval < 0 or self.poll_backoff < 1:
            raise ValueError("poll_interval must be >= 0 and poll_backoff >= 1")
        if self.upload_workers < 1:
            raise ValueError(
                f"upload_workers must be >= 1, got {self.upload_workers}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a config from ``VERSIONFS_*`` environment variables.

        ``VERSIONFS_POLL_ATTEMPTS=20`` sets ``poll_attempts``, and so on.
        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            kind = type(f.default)
            try:
                overrides[f.name] = kind(raw)
            except ValueError as e:
                raise ValueError(
                    f"Invalid {ENV_PREFIX}{f.name.upper()}={raw!r}: {e}"
                ) from e
        return cls(**overrides)  # type: ignore[arg-type]

    def with_overrides(self, **kwargs: object) -> "Config":
        return replace(self, **kwargs)  # type: ignore[arg-type]
