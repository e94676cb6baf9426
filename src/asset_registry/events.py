"""Event subscription manager and the in-memory event log."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from datetime import datetime
from typing import Any

from .constants import RegistryEvent
from .exceptions import AssetRegistryError, SessionInvalidated, ValidationError
from .types import (
    AssetRegistered,
    AssetTransferred,
    ContractSession,
    DomainEvent,
    SubscriptionState,
    Unsubscribe,
)
from .utils import normalise_id_hash, to_checksum, tx_hash_to_hex, utc_now

logger = logging.getLogger(__name__)

EventObserver = Callable[[DomainEvent], None]

# the first event kind can deliver before the second is installed
_LIVE_STATES = (SubscriptionState.SUBSCRIBING, SubscriptionState.ACTIVE)


def normalise_event(
    kind: RegistryEvent | str,
    raw: Mapping[str, Any],
    observed_at: datetime | None = None,
) -> DomainEvent:
    """Turn a raw contract log into a domain event.

    Raises:
        ValidationError: The kind is unknown or the payload lacks an asset id
            or a required field.
    """
    try:
        kind = RegistryEvent(kind)
    except ValueError as exc:
        raise ValidationError("Unknown event kind", field="event", value=kind) from exc
    if not isinstance(raw, Mapping):
        raise ValidationError("Event payload must be a mapping", field="event", value=raw)
    args = raw.get("args")
    if not isinstance(args, Mapping):
        raise ValidationError("Event payload has no arguments", field="args", value=raw)
    if args.get("idHash") is None:
        raise ValidationError("Event payload has no asset id", field="idHash", value=args)

    observed_at = observed_at or utc_now()
    id_hash = normalise_id_hash(args["idHash"], field="idHash")
    block_number = raw.get("blockNumber")
    tx_hash = raw.get("transactionHash")
    reference = {
        "block_number": int(block_number) if block_number is not None else None,
        "transaction_hash": tx_hash_to_hex(tx_hash) if tx_hash is not None else None,
    }

    if kind is RegistryEvent.REGISTERED:
        try:
            cost = int(args["cost"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(
                "Event payload has an invalid cost", field="cost", value=args.get("cost")
            ) from exc
        return AssetRegistered(
            id_hash=id_hash,
            owner=to_checksum(args.get("owner"), field="owner"),
            name=str(args.get("name", "")),
            cost=cost,
            observed_at=observed_at,
            **reference,
        )

    return AssetTransferred(
        id_hash=id_hash,
        previous_owner=to_checksum(args.get("previousOwner"), field="previousOwner"),
        new_owner=to_checksum(args.get("newOwner"), field="newOwner"),
        observed_at=observed_at,
        **reference,
    )


class EventLog:
    """Append-only log of domain events, most recent first.

    Repeated deliveries of the same chain event are kept as separate entries.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValidationError(
                "max_entries must be positive", field="max_entries", value=max_entries
            )
        self._entries: deque[DomainEvent] = deque(maxlen=max_entries)
        self._observers: list[EventObserver] = []

    @property
    def entries(self) -> list[DomainEvent]:
        return list(self._entries)

    @property
    def latest(self) -> DomainEvent | None:
        return self._entries[0] if self._entries else None

    def prepend(self, event: DomainEvent) -> None:
        self._entries.appendleft(event)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("Event observer failed")

    def add_observer(self, observer: EventObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DomainEvent]:
        return iter(list(self._entries))


class EventSubscription:
    """Handlers for every registry event kind on a single session."""

    def __init__(
        self,
        session: ContractSession,
        log: EventLog,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session = session
        self._log = log
        self._clock = clock
        self._handlers: dict[str, Callable[[Any], None]] = {}
        self._state = SubscriptionState.UNINITIALIZED

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def session(self) -> ContractSession:
        return self._session

    async def start(self) -> None:
        if self._state is not SubscriptionState.UNINITIALIZED:
            raise ValidationError(
                "Subscription can only be started once", field="state", value=self._state.value
            )
        self._state = SubscriptionState.SUBSCRIBING
        handle = self._session.handle

        try:
            for kind in RegistryEvent:
                handler = self._make_handler(kind)
                self._handlers[kind.value] = handler
                await handle.on(kind.value, handler)
                if self._state is not SubscriptionState.SUBSCRIBING:
                    # closed while the handler was being installed
                    handle.off(kind.value, handler)
                    return
        except Exception:
            self.close()
            raise

        self._state = SubscriptionState.ACTIVE
        logger.info("Subscribed to registry events for %s", self._session.signer_identity)

    def close(self) -> None:
        if self._state not in _LIVE_STATES:
            return
        handle = self._session.handle
        for event_name, handler in self._handlers.items():
            handle.off(event_name, handler)
        self._handlers.clear()
        self._state = SubscriptionState.TORN_DOWN
        logger.debug("Event subscription for %s torn down", self._session.signer_identity)

    def _make_handler(self, kind: RegistryEvent) -> Callable[[Any], None]:
        def handle_event(raw: Any) -> None:
            if self._state not in _LIVE_STATES:
                return
            try:
                event = normalise_event(kind, raw, observed_at=self._clock())
            except AssetRegistryError as exc:
                logger.warning("Dropping malformed %s event: %s", kind.value, exc)
                return
            self._log.prepend(event)

        return handle_event


class EventSubscriptionManager:
    """Keep at most one live event subscription, bound to the latest session."""

    def __init__(
        self,
        log: EventLog | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._log = log if log is not None else EventLog()
        self._clock = clock
        self._subscriptions: dict[ContractSession, EventSubscription] = {}

    @property
    def log(self) -> EventLog:
        return self._log

    def subscription_for(self, session: ContractSession) -> EventSubscription | None:
        return self._subscriptions.get(session)

    async def subscribe(self, session: ContractSession) -> Unsubscribe:
        """Install the registry event handlers for ``session`` once.

        Repeated or concurrent calls for the same session return the same
        unsubscribe callable without installing anything new. Subscriptions
        of other sessions are torn down first.
        """
        existing = self._subscriptions.get(session)
        if existing is not None and existing.state in _LIVE_STATES:
            return self._unsubscriber(session, existing)

        if session.closed:
            raise SessionInvalidated("Cannot subscribe on an invalidated session")

        for other in list(self._subscriptions):
            if other != session:
                self._teardown(other, self._subscriptions[other])

        subscription = EventSubscription(session, self._log, clock=self._clock)
        self._subscriptions[session] = subscription
        try:
            await subscription.start()
        except Exception:
            self._teardown(session, subscription)
            raise
        return self._unsubscriber(session, subscription)

    def unsubscribe_all(self) -> None:
        for session, subscription in list(self._subscriptions.items()):
            self._teardown(session, subscription)

    def _unsubscriber(
        self, session: ContractSession, subscription: EventSubscription
    ) -> Unsubscribe:
        def unsubscribe() -> None:
            self._teardown(session, subscription)

        return unsubscribe

    def _teardown(self, session: ContractSession, subscription: EventSubscription) -> None:
        subscription.close()
        if self._subscriptions.get(session) is subscription:
            del self._subscriptions[session]
