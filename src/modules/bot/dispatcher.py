"""Inbound event dispatcher.

One call to ``handle_update`` is one unit of work:

1. parse the raw update (``MalformedUpdate`` → error result);
2. drop platform retries already seen (cache ``add`` on the update id);
3. under the actor's lock, resolve the session and route the event:
   mid-flow sessions go to the step handler only, idle sessions to the
   command router;
4. translate domain errors into notices for the actor.

Unexpected exceptions are logged and reported as ``internal_error``;
they never escape to the transport.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import structlog

from modules.bot.dtos import parse_update
from modules.bot.exceptions import MalformedUpdate
from modules.bot.inbound import ButtonPress, Event
from shared.domain.exceptions import (
    AlreadyProcessed,
    InvalidInput,
    NotFound,
    OutOfStock,
    PrivilegeError,
)

if TYPE_CHECKING:
    from modules.bot.commands import CommandRouter
    from modules.bot.flows import ConversationFlows
    from modules.bot.messenger import Notifier
    from modules.conversations.models import Session
    from modules.conversations.services import SessionService
    from modules.core.locks import ActorLockRegistry

logger = structlog.get_logger(__name__)

ERROR_MALFORMED = "malformed_update"
ERROR_INTERNAL = "internal_error"


@dataclass(frozen=True)
class HandleResult:
    ok: bool
    error: Optional[str] = None
    ignored: bool = False
    duplicate: bool = False

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ok": self.ok}
        if self.error:
            data["error"] = self.error
        return data


class BotDispatcher:
    """Single entry point for inbound updates."""

    def __init__(
        self,
        sessions: SessionService,
        flows: ConversationFlows,
        router: CommandRouter,
        notifier: Notifier,
        locks: ActorLockRegistry,
        cache: Any = None,
        dedup_ttl: int = 3600,
        sweep_interval: Optional[float] = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions = sessions
        self._flows = flows
        self._router = router
        self._notifier = notifier
        self._locks = locks
        self._cache = cache
        self._dedup_ttl = dedup_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_guard = threading.Lock()
        self._last_sweep = clock()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_update(self, raw: Any) -> HandleResult:
        """Handle one decoded webhook body."""
        try:
            update = parse_update(raw)
        except MalformedUpdate as exc:
            logger.warning("bot.malformed_update", error=str(exc))
            return HandleResult(ok=False, error=ERROR_MALFORMED)

        if self._seen(update.update_id):
            logger.info("bot.duplicate_update", update_id=update.update_id)
            return HandleResult(ok=True, duplicate=True)

        event = update.to_event()
        if event is None:
            logger.info("bot.update_ignored", update_id=update.update_id)
            return HandleResult(ok=True, ignored=True)
        return self.handle_event(event)

    def handle_event(self, event: Event) -> HandleResult:
        """Handle one inbound event under the actor's lock."""
        self._maybe_sweep()

        with structlog.contextvars.bound_contextvars(
            actor_id=event.actor_id, update_id=event.update_id
        ):
            with self._locks.hold(event.actor_id):
                try:
                    self._dispatch(event)
                except Exception:
                    logger.exception(
                        "bot.handler_failed", event_type=type(event).__name__
                    )
                    self._recover(event.actor_id)
                    return HandleResult(ok=False, error=ERROR_INTERNAL)
                finally:
                    if isinstance(event, ButtonPress) and event.callback_id:
                        self._notifier.acknowledge(event.callback_id)
        return HandleResult(ok=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(self, event: Event) -> None:
        session = self._sessions.resolve(
            event.actor_id, event.display_name, event.username
        )
        mid_flow = not session.is_idle
        logger.info(
            "bot.event_received",
            event_type=type(event).__name__,
            step=session.step,
        )
        try:
            if mid_flow:
                self._flows.handle(session, event)
            else:
                self._router.route(session, event)
        except OutOfStock as exc:
            self._notice(session, f"Out of stock. {exc}")
        except InvalidInput as exc:
            self._notice(session, str(exc))
        except PrivilegeError as exc:
            self._leave_flow(session, mid_flow)
            self._notice(session, f"Access denied. {exc}")
        except (NotFound, AlreadyProcessed) as exc:
            self._leave_flow(session, mid_flow)
            self._notice(session, str(exc))

    def _leave_flow(self, session: Session, mid_flow: bool) -> None:
        if mid_flow and not session.is_idle:
            self._flows.abort(session)

    def _notice(self, session: Session, text: str) -> None:
        logger.info("bot.notice", notice=text)
        self._notifier.notify(session.actor_id, text)

    def _recover(self, actor_id: str) -> None:
        session = self._sessions.get(actor_id)
        if session is not None and not session.is_idle:
            self._sessions.reset(session)
        self._notifier.notify(actor_id, "Something went wrong. Please try again.")

    def _seen(self, update_id: int) -> bool:
        if self._cache is None:
            return False
        return not self._cache.add(f"bot:update:{update_id}", True, self._dedup_ttl)

    def _maybe_sweep(self) -> None:
        if self._sweep_interval is None:
            return
        now = self._clock()
        with self._sweep_guard:
            if now - self._last_sweep < self._sweep_interval:
                return
            self._last_sweep = now
        self._sessions.expire_idle()
