from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping, Optional, Protocol

from loguru import logger

from ..core.constants import DEFAULT_NOTIFICATION_WORKERS
from ..core.enums import NotificationKind


class NotificationGateway(Protocol):
    """Delivery transport (push, sockets, ...), owned outside this package.

    ``broadcast`` reaches every connected member regardless of preferences.
    Scheduled jobs send per member instead, since they honour each member's
    notification opt-out and skip members who already visited.
    """

    def send(
        self,
        member_id: int,
        kind: NotificationKind,
        title: str,
        body: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        raise NotImplementedError

    def broadcast(self, title: str, body: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        raise NotImplementedError


class LoggingNotificationGateway(NotificationGateway):
    """Writes deliveries to the log; used when no transport is wired."""

    def send(self, member_id, kind, title, body, metadata=None) -> None:
        logger.info(f"notify member={member_id} kind={kind.value} title={title!r} body={body!r}")

    def broadcast(self, title, body, metadata=None) -> None:
        logger.info(f"broadcast title={title!r} body={body!r}")


class Notifier:
    """Fire-and-forget front for a gateway.

    State changes are committed before anything is dispatched here, and a
    failed delivery is logged, never raised back to the caller.
    """

    def __init__(
        self,
        gateway: NotificationGateway,
        *,
        background: bool = True,
        max_workers: int = DEFAULT_NOTIFICATION_WORKERS,
    ):
        self._gateway = gateway
        # One bounded pool; a fan-out to every member queues instead of spawning threads.
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify") if background else None

    def send(
        self,
        member_id: int,
        kind: NotificationKind,
        title: str,
        body: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        def _send():
            try:
                self._gateway.send(member_id, kind, title, body, dict(metadata or {}))
            except Exception as e:
                logger.error(f"Notification {kind.value} to member {member_id} failed: {e}")

        self._dispatch(_send)

    def send_many(
        self,
        member_ids: Iterable[int],
        kind: NotificationKind,
        title: str,
        body: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        count = 0
        for member_id in member_ids:
            self.send(member_id, kind, title, body, metadata)
            count += 1
        return count

    def shutdown(self, *, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    def _dispatch(self, job) -> None:
        if self._executor is None:
            job()
        else:
            self._executor.submit(job)
