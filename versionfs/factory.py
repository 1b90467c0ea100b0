"""Engine factory function."""

from typing import TYPE_CHECKING

from .config import Config
from .engine import VersioningEngine
from .ledger.client import LedgerClient
from .ledger.transport import LedgerTransport

if TYPE_CHECKING:
    from .ledger.sui import Wallet


def open_engine(
    backend: str = "memory",
    *,
    path: str | None = None,
    config: Config | None = None,
    wallet: "Wallet | None" = None,
    ledger: LedgerTransport | None = None,
) -> VersioningEngine:
    """Create a VersioningEngine with sensible defaults.

    Args:
        backend: ``"memory"`` (default), ``"disk"`` or ``"walrus"``.
            ``memory`` and ``disk`` pair their blob store with an
            in-process ledger unless ``ledger`` is given.
        path: Required when ``backend="disk"``. Directory for blobs.
        config: Settings (default: ``Config.from_env()``).
        wallet: Required when ``backend="walrus"`` and no ``ledger`` is
            given; builds and signs Sui transactions.
        ledger: Ledger transport overriding the backend's default.

    Returns:
        An untargeted ``VersioningEngine``.
    """
    if config is None:
        config = Config.from_env()

    if backend == "memory":
        from .blobs.memory import Memory

        blobs = Memory()
    elif backend == "disk":
        if path is None:
            raise ValueError("path is required when backend='disk'")
        from .blobs.disk import Disk

        blobs = Disk(
            path, default_epochs=config.epochs, epoch_seconds=config.epoch_seconds
        )
    elif backend == "walrus":
        from .blobs.walrus import Walrus

        blobs = Walrus(
            config.publisher_url,
            config.aggregator_url,
            default_epochs=config.epochs,
            timeout=config.timeout,
        )
    else:
        raise ValueError(f"Unknown backend: {backend!r}")

    if ledger is None:
        if backend == "walrus":
            if wallet is None:
                raise ValueError("wallet is required when backend='walrus'")
            from .ledger.sui import SuiRpcTransport

            ledger = SuiRpcTransport(config.rpc_url, wallet, timeout=config.timeout)
        else:
            from .ledger.local import LocalLedger

            ledger = LocalLedger(package_id=config.package_id)

    client = LedgerClient(
        ledger,
        config.package_id,
        poll_attempts=config.poll_attempts,
        poll_interval=config.poll_interval,
        poll_backoff=config.poll_backoff,
    )
    return VersioningEngine(
        blobs,
        client,
        epochs=config.epochs,
        upload_workers=config.upload_workers,
    )
