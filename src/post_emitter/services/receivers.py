"""Receiver registry backed by the ``receivers`` table."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select as sa_select

from post_emitter.db.session import SessionFactory
from post_emitter.models import Receiver
from post_emitter.models.receiver import RECEIVER_ACTIVE, RECEIVER_INACTIVE
from post_emitter.schemas.operations import ReceiverSnapshot
from post_emitter.services.crypto import CredentialVault
from post_emitter.services.validation import InvalidReceiverError, validate_receiver_url

logger = logging.getLogger(__name__)

RECEIVER_STATUSES = (RECEIVER_ACTIVE, RECEIVER_INACTIVE)


class ReceiverNotFoundError(LookupError):
    """Raised when a receiver id does not exist."""


@dataclass(frozen=True)
class ReceiverCredentials:
    """Receiver with its token decrypted, ready for delivery."""

    url: str
    auth_token: str = field(default="", repr=False)
    id: int | None = None
    name: str = ""
    status: str = RECEIVER_ACTIVE

    @property
    def active(self) -> bool:
        return self.status == RECEIVER_ACTIVE


@dataclass(frozen=True)
class _CachedReceiver:
    credentials: ReceiverCredentials
    snapshot: ReceiverSnapshot


class ReceiverRegistry:
    """CRUD over receivers plus a short-lived cache of decrypted credentials."""

    def __init__(
        self,
        session_factory: SessionFactory,
        vault: CredentialVault,
        *,
        cache_ttl: float = 900.0,
        resolve_hosts: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._vault = vault
        self._cache_ttl = cache_ttl
        self._resolve_hosts = resolve_hosts
        self._cache: list[_CachedReceiver] | None = None
        self._cache_loaded_at = 0.0

    # -- writes --------------------------------------------------------------

    def add(
        self,
        name: str,
        url: str,
        auth_token: str | None = None,
        status: str = RECEIVER_ACTIVE,
    ) -> Receiver:
        """Validate and store a new receiver, encrypting its token."""
        name = self._validate_name(name)
        url = validate_receiver_url(url, resolve_hosts=self._resolve_hosts)
        self._validate_status(status)

        receiver = Receiver(
            name=name,
            url=url,
            auth_token=self._vault.encrypt(auth_token) if auth_token else None,
            status=status,
        )
        with self._session_factory() as db:
            db.add(receiver)
            db.commit()
            db.refresh(receiver)

        self.invalidate()
        logger.info("Receiver added", extra={"context": {"receiver_id": receiver.id, "url": url}})
        return receiver

    def update(
        self,
        receiver_id: int,
        *,
        name: str | None = None,
        url: str | None = None,
        auth_token: str | None = None,
        status: str | None = None,
    ) -> Receiver:
        """Update a receiver. An empty or missing token keeps the stored ciphertext."""
        if name is not None:
            name = self._validate_name(name)
        if url is not None:
            url = validate_receiver_url(url, resolve_hosts=self._resolve_hosts)
        if status is not None:
            self._validate_status(status)

        with self._session_factory() as db:
            receiver = db.get(Receiver, receiver_id)
            if receiver is None:
                raise ReceiverNotFoundError(f"Receiver {receiver_id} not found")

            if name is not None:
                receiver.name = name
            if url is not None:
                receiver.url = url
            if status is not None:
                receiver.status = status
            if auth_token:
                receiver.auth_token = self._vault.encrypt(auth_token)

            db.commit()
            db.refresh(receiver)

        self.invalidate()
        logger.info("Receiver updated", extra={"context": {"receiver_id": receiver_id}})
        return receiver

    def remove(self, receiver_id: int) -> None:
        with self._session_factory() as db:
            receiver = db.get(Receiver, receiver_id)
            if receiver is None:
                raise ReceiverNotFoundError(f"Receiver {receiver_id} not found")
            db.delete(receiver)
            db.commit()

        self.invalidate()
        logger.info("Receiver removed", extra={"context": {"receiver_id": receiver_id}})

    def invalidate(self) -> None:
        """Drop the decrypted-receivers cache."""
        self._cache = None

    # -- reads ---------------------------------------------------------------

    def records(self) -> list[Receiver]:
        """Return the stored rows ordered by id, tokens still encrypted."""
        with self._session_factory() as db:
            return list(db.scalars(sa_select(Receiver).order_by(Receiver.id)))

    def get_record(self, receiver_id: int) -> Receiver:
        with self._session_factory() as db:
            receiver = db.get(Receiver, receiver_id)
        if receiver is None:
            raise ReceiverNotFoundError(f"Receiver {receiver_id} not found")
        return receiver

    def get_all(self) -> list[ReceiverCredentials]:
        """Return every receiver with its token decrypted."""
        return [entry.credentials for entry in self._entries()]

    def get_active(self) -> list[ReceiverCredentials]:
        return [entry.credentials for entry in self._entries() if entry.credentials.active]

    def get_by_id(self, receiver_id: int) -> ReceiverCredentials | None:
        for entry in self._entries():
            if entry.credentials.id == receiver_id:
                return entry.credentials
        return None

    def select(self, indices: Iterable[int]) -> list[ReceiverCredentials]:
        """Map selected positions to credentials.

        Indices are positions in the full receiver list ordered by id, so a
        saved selection keeps pointing at the same receivers when one of them
        is deactivated. Unknown indices and inactive receivers are skipped.
        """
        return [entry.credentials for entry in self._select_entries(indices)]

    def snapshots(self, indices: Iterable[int]) -> list[ReceiverSnapshot]:
        """Return the job snapshots for the selected receivers, as in :meth:`select`.

        Snapshots carry the stored ciphertext, never the plaintext token.
        """
        return [entry.snapshot for entry in self._select_entries(indices)]

    # -- helpers -------------------------------------------------------------

    def _select_entries(self, indices: Iterable[int]) -> list[_CachedReceiver]:
        entries = self._entries()
        selected = []
        for index in indices:
            if not 0 <= index < len(entries):
                logger.debug("Skipping unknown receiver index %s", index)
            elif not entries[index].credentials.active:
                logger.debug("Skipping inactive receiver at index %s", index)
            else:
                selected.append(entries[index])
        return selected

    def _entries(self) -> list[_CachedReceiver]:
        now = time.monotonic()
        if self._cache is not None and now - self._cache_loaded_at < self._cache_ttl:
            return self._cache

        entries = []
        for row in self.records():
            ciphertext = row.auth_token or ""
            entries.append(
                _CachedReceiver(
                    credentials=ReceiverCredentials(
                        id=row.id,
                        name=row.name,
                        url=row.url,
                        auth_token=self._vault.decrypt(ciphertext),
                        status=row.status,
                    ),
                    snapshot=ReceiverSnapshot(
                        id=row.id, name=row.name, url=row.url, auth_token=ciphertext
                    ),
                )
            )
        self._cache = entries
        self._cache_loaded_at = now
        return entries

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidReceiverError("Receiver name must not be empty")
        return name

    @staticmethod
    def _validate_status(status: str) -> None:
        if status not in RECEIVER_STATUSES:
            raise InvalidReceiverError(f"Receiver status must be one of {RECEIVER_STATUSES}")
