"""In-memory registry of live flows, keyed by an opaque flow id."""
import time
import uuid
from typing import Callable, Dict, Optional, Tuple, Type

from emetals.config import settings
from emetals.flows.base import FlowController
from emetals.flows.login import LoginFlow
from emetals.flows.password_reset import PasswordResetFlow
from emetals.flows.registration import RegistrationFlow
from emetals.logging_config import get_logger

logger = get_logger(__name__)

FLOW_KINDS: Dict[str, Type[FlowController]] = {
    RegistrationFlow.name: RegistrationFlow,
    LoginFlow.name: LoginFlow,
    PasswordResetFlow.name: PasswordResetFlow,
}


class FlowStore:
    """
    Flows live in process memory only; a restart drops them, which is the
    same as a browser tab being closed mid-journey.

    Every lookup pushes a live flow's deadline out by ``ttl_seconds``. Once a
    flow redirects it is closed and kept for ``completed_ttl_seconds`` so a
    client can still read where it went. Expired flows are swept on
    ``create`` and ``get``.
    """

    def __init__(
        self,
        redirect_delay: Optional[float] = None,
        resend_seconds: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        completed_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.redirect_delay = redirect_delay
        self.resend_seconds = resend_seconds
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.FLOW_TTL_SECONDS
        self.completed_ttl_seconds = (
            completed_ttl_seconds if completed_ttl_seconds is not None else settings.FLOW_COMPLETED_TTL_SECONDS
        )
        self.clock = clock
        self._flows: Dict[str, FlowController] = {}
        self._deadlines: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._flows)

    def __contains__(self, flow_id: str) -> bool:
        return flow_id in self._flows

    def create(self, kind: str, auth_client) -> Tuple[str, FlowController]:
        try:
            flow_cls = FLOW_KINDS[kind]
        except KeyError:
            raise KeyError(f"Unknown flow kind: {kind}")

        self.expire()

        flow_id = uuid.uuid4().hex
        flow = flow_cls(
            auth_client,
            on_redirect=lambda target: self._completed(flow_id, target),
            redirect_delay=self.redirect_delay,
            resend_seconds=self.resend_seconds,
        )
        self._flows[flow_id] = flow
        self._deadlines[flow_id] = self.clock() + self.ttl_seconds
        logger.info("flow_created", flow=kind, flow_id=flow_id)
        return flow_id, flow

    def get(self, flow_id: str) -> FlowController:
        self.expire()
        try:
            flow = self._flows[flow_id]
        except KeyError:
            raise KeyError(f"Unknown flow: {flow_id}")
        if not flow.closed:
            self._deadlines[flow_id] = self.clock() + self.ttl_seconds
        return flow

    def discard(self, flow_id: str) -> bool:
        flow = self._flows.pop(flow_id, None)
        self._deadlines.pop(flow_id, None)
        if flow is None:
            return False
        flow.close()
        logger.info("flow_discarded", flow=flow.name, flow_id=flow_id)
        return True

    def expire(self) -> int:
        """Drop every flow past its deadline; returns how many went."""
        now = self.clock()
        expired = [flow_id for flow_id, deadline in self._deadlines.items() if deadline <= now]
        for flow_id in expired:
            flow = self._flows.get(flow_id)
            logger.info("flow_expired", flow=flow.name if flow else None, flow_id=flow_id)
            self.discard(flow_id)
        return len(expired)

    def _completed(self, flow_id: str, target: str):
        flow = self._flows.get(flow_id)
        if flow is None:
            return
        flow.close()
        self._deadlines[flow_id] = self.clock() + self.completed_ttl_seconds
        logger.info("flow_completed", flow=flow.name, flow_id=flow_id, target=target)

    def close_all(self):
        for flow_id in list(self._flows):
            self.discard(flow_id)
