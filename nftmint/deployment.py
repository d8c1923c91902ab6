"""On-disk home of a deployed collection.

Layout of a deployment directory::

    collection.json     snapshot of configuration and mint state
    events.jsonl        append-only Mint / MintSet log
    keys/signer.key     authority key, raw or password-encrypted
    .lock               held by whoever is changing the state above

Every state change goes load, call, save under the directory lock (see
Deployment.open), so overlapping processes serialize the same way threads
do on the Collection lock.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from filelock import FileLock, Timeout

from .collection import Collection, MintEvent
from .config import CollectionConfig, get_config
from .exceptions import DeploymentError
from .fs import append_jsonl, atomic_write_json, ensure_dir, iter_jsonl, read_json
from .key_encryption import load_signer_key, save_signer_key
from .keys import SignerKeys, gen_signer_keys
from .logging_config import get_deployment_logger
from .signing import sign_mint_authorization

logger = get_deployment_logger()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dir_lock(data_dir: Path) -> FileLock:
    return FileLock(str(Path(data_dir) / ".lock"))


class Deployment:
    def __init__(self, data_dir: Path, collection: Collection):
        self.data_dir = Path(data_dir)
        self.collection = collection
        self._pending: List[MintEvent] = []
        collection.subscribe(self._pending.append)

    # ---------- paths ----------

    @property
    def collection_path(self) -> Path:
        return self.data_dir / "collection.json"

    @property
    def events_path(self) -> Path:
        return self.data_dir / "events.jsonl"

    @property
    def signer_key_path(self) -> Path:
        return self.data_dir / "keys" / "signer.key"

    # ---------- lifecycle ----------

    @staticmethod
    def init(data_dir: Path, config: Optional[CollectionConfig] = None, *, password: Optional[str] = None) -> "Deployment":
        """Deploy a new collection into ``data_dir`` with a fresh authority key.

        The generated key is both the collection owner and the authorized
        signer for signed mints.
        """
        data_dir = Path(data_dir)
        # Validate before touching the filesystem so a bad config leaves nothing behind.
        keys = gen_signer_keys()
        collection = Collection(config or get_config().collection, owner=keys.address)

        ensure_dir(data_dir)
        with _dir_lock(data_dir):
            if (data_dir / "collection.json").exists():
                raise DeploymentError(f"collection already deployed at {data_dir}")
            logger.info(f"Deploying new collection at {data_dir}")
            ensure_dir(data_dir / "keys")
            save_signer_key(data_dir / "keys" / "signer.key", keys, password)
            d = Deployment(data_dir, collection)
            d.save(meta={"deployed_ms": _now_ms()})
        logger.info(f"Collection deployed: address={collection.address}, owner={collection.owner}")
        return d

    @staticmethod
    @contextmanager
    def open(data_dir: Path, *, timeout: float = -1) -> Iterator["Deployment"]:
        """Load, hand out and save a deployment while holding its directory lock.

        The snapshot is only written if the block exits normally. A rejected
        mint changes nothing, so nothing needs saving.

        Usage:
            with Deployment.open(path) as d:
                d.collection.mint(caller, 1, value=2)
        """
        data_dir = Path(data_dir)
        if not (data_dir / "collection.json").exists():
            raise DeploymentError(f"no collection deployed at {data_dir}")
        lock = _dir_lock(data_dir)
        try:
            lock.acquire(timeout=timeout)
        except Timeout as e:
            raise DeploymentError(f"deployment at {data_dir} is locked by another process") from e
        try:
            d = Deployment.load(data_dir)
            yield d
            d.save()
        finally:
            lock.release()

    @staticmethod
    def load(data_dir: Path) -> "Deployment":
        data_dir = Path(data_dir)
        path = data_dir / "collection.json"
        if not path.exists():
            raise DeploymentError(f"no collection deployed at {data_dir}")
        snapshot = read_json(path)
        events = [MintEvent.from_dict(e) for e in iter_jsonl(data_dir / "events.jsonl")]
        return Deployment(data_dir, Collection.from_snapshot(snapshot, events=events))

    def save(self, meta: Optional[dict] = None) -> None:
        """Persist the snapshot, then append events committed since the last save.

        Callers outside Deployment.open must hold the directory lock.
        """
        snapshot = self.collection.snapshot()
        if meta is None and self.collection_path.exists():
            meta = read_json(self.collection_path).get("meta")
        snapshot["meta"] = meta or {}
        atomic_write_json(self.collection_path, snapshot)
        while self._pending:
            append_jsonl(self.events_path, self._pending[0].to_dict())
            # dropped only once written, so a failed append is retried by the next save
            self._pending.pop(0)

    # ---------- authority ----------

    def signer_keys(self, password: Optional[str] = None) -> SignerKeys:
        keys = load_signer_key(self.signer_key_path, password)
        if keys.address != self.collection.signer:
            raise DeploymentError(f"key at {self.signer_key_path} is not the collection signer")
        return keys

    def sign(self, caller: str, amount: int, nonce: int, *, password: Optional[str] = None) -> bytes:
        """Issue an authorization for ``caller`` to signed-mint ``amount`` with ``nonce``."""
        keys = self.signer_keys(password)
        return sign_mint_authorization(keys.private_key, caller, amount, nonce, self.collection.address)
