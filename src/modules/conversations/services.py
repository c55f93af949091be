"""Session service layer.

Owns the lifecycle of per-actor sessions: lazy creation, flow start,
step advance, reset/cancel and idle expiry.  The step handlers that give
each state its meaning live in ``modules.bot.flows``; this service only
guarantees the state-machine invariants:

- Leaving a flow (completion, cancel, expiry) always lands on ``IDLE``
  with the scratch cleared.
- A flow can only be started with the scratch type its first step
  expects (``STEP_SCRATCH``).
- Whether the cart survives a cancel is a configuration flag, not an
  accident of the flow being cancelled.
"""

from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, ContextManager, List, Optional

import structlog

from modules.conversations.constants import Step
from modules.conversations.exceptions import ScratchMismatch
from modules.conversations.models import STEP_SCRATCH, Session

if TYPE_CHECKING:
    from modules.conversations.models import Scratch
    from modules.core.locks import ActorLockRegistry
    from modules.conversations.repositories.interfaces import ISessionRepository

logger = structlog.get_logger(__name__)

DEFAULT_IDLE_TIMEOUT = timedelta(hours=6)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionService:
    """Application service for conversation sessions."""

    def __init__(
        self,
        repository: ISessionRepository,
        idle_timeout: Optional[timedelta] = DEFAULT_IDLE_TIMEOUT,
        cancel_clears_cart: bool = False,
        locks: Optional[ActorLockRegistry] = None,
    ) -> None:
        self._repo = repository
        self._locks = locks
        self._idle_timeout = idle_timeout
        self._cancel_clears_cart = cancel_clears_cart

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(
        self,
        actor_id: str,
        display_name: str = "",
        username: str = "",
        now: Optional[datetime] = None,
    ) -> Session:
        """Return the actor's session, creating it on first contact.

        A session idle for longer than the timeout is returned to ``IDLE``
        before use; its cart is kept.
        """
        now = now or _utcnow()
        session = self._repo.get_by_id(actor_id)
        if session is None:
            session = Session(actor_id=actor_id, last_seen_at=now)
            logger.info("session.created", actor_id=actor_id)
        elif self.is_expired(session, now):
            self._expire(session)

        if display_name:
            session.display_name = display_name
        if username:
            session.username = username
        session.last_seen_at = now
        return self._repo.save(session)

    def get(self, actor_id: str) -> Optional[Session]:
        return self._repo.get_by_id(actor_id)

    def known_actor_ids(self) -> List[str]:
        return [session.actor_id for session in self._repo.list()]

    def count(self) -> int:
        return self._repo.count()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_flow(self, session: Session, step: str, scratch: Scratch) -> Session:
        """Move an actor into *step* with a fresh scratch record."""
        expected = STEP_SCRATCH.get(step)
        if expected is None or not isinstance(scratch, expected):
            raise ScratchMismatch(
                f"Cannot start {step} with {type(scratch).__name__}."
            )
        previous = session.step
        session.step = step
        session.scratch = scratch
        logger.info(
            "session.flow_started",
            actor_id=session.actor_id,
            previous_step=previous,
            step=step,
        )
        return self._repo.save(session)

    def advance(self, session: Session, step: str) -> Session:
        """Move to the next step of the current flow, keeping the scratch."""
        expected = STEP_SCRATCH.get(step)
        if expected is None or not isinstance(session.scratch, expected):
            raise ScratchMismatch(f"Cannot advance {session.step} to {step}.")
        logger.info(
            "session.advanced",
            actor_id=session.actor_id,
            previous_step=session.step,
            step=step,
        )
        session.step = step
        return self._repo.save(session)

    def reset(self, session: Session, clear_cart: bool = False) -> Session:
        """Return to ``IDLE`` and drop the scratch."""
        previous = session.step
        session.step = Step.IDLE
        session.scratch = None
        if clear_cart:
            with self._repo.locked():
                session.cart.clear()
        logger.info(
            "session.reset",
            actor_id=session.actor_id,
            previous_step=previous,
            cart_cleared=clear_cart,
        )
        return self._repo.save(session)

    def cancel(self, session: Session) -> bool:
        """Abort the current flow.  Returns ``True`` if the cart was cleared."""
        logger.info("session.cancelled", actor_id=session.actor_id, step=session.step)
        self.reset(session, clear_cart=self._cancel_clears_cart)
        return self._cancel_clears_cart

    def remember_message(self, session: Session, message_ref: Optional[int]) -> None:
        session.last_message_ref = message_ref
        self._repo.save(session)

    def save(self, session: Session) -> Session:
        return self._repo.save(session)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def is_expired(self, session: Session, now: Optional[datetime] = None) -> bool:
        if self._idle_timeout is None or session.is_idle:
            return False
        now = now or _utcnow()
        return now - session.last_seen_at > self._idle_timeout

    def expire_idle(self, now: Optional[datetime] = None) -> int:
        """Reset every stale mid-flow session.  Returns how many were reset."""
        now = now or _utcnow()
        expired = 0
        for session in self._repo.list():
            with self._hold(session.actor_id):
                if self.is_expired(session, now):
                    self._expire(session)
                    expired += 1
        if expired:
            logger.info("session.sweep_completed", expired=expired)
        return expired

    def _hold(self, actor_id: str) -> ContextManager[None]:
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(actor_id)

    def _expire(self, session: Session) -> None:
        logger.info(
            "session.expired",
            actor_id=session.actor_id,
            step=session.step,
            last_seen_at=session.last_seen_at.isoformat(),
        )
        self.reset(session)
