# emetals/routers/flows.py

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from emetals.auth_schemas import FlowView, OtpRequest
from emetals.deps import get_auth_client, get_flow_store
from emetals.flows.base import FlowController
from emetals.flows.errors import FlowError
from emetals.flows.login import LoginFlow
from emetals.flows.store import FLOW_KINDS, FlowStore
from emetals.logging_config import get_logger
from emetals.services.auth_client import AuthClient

# ⚠ main.py mounts this with prefix="/api/v1/flows"
router = APIRouter(tags=["Flows"])

logger = get_logger(__name__)


def _get_flow(store: FlowStore, flow_id: str) -> FlowController:
    try:
        return store.get(flow_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")


def _conflict(flow_id: str, exc: FlowError) -> HTTPException:
    logger.info("flow_action_rejected", flow_id=flow_id, error_type=type(exc).__name__, error=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def _view(flow_id: str, flow: FlowController, response: Response) -> FlowView:
    """Render the flow and pass any auth-service cookie changes on to the browser."""
    for cookie in flow.take_set_cookies():
        response.headers.append("set-cookie", cookie)
    return FlowView(flow_id=flow_id, **flow.describe())


# -------------------------------------------
# Lifecycle
# -------------------------------------------
@router.post("/{kind}", response_model=FlowView, status_code=status.HTTP_201_CREATED)
async def create_flow(
    kind: str,
    response: Response,
    store: FlowStore = Depends(get_flow_store),
    auth_client: AuthClient = Depends(get_auth_client),
):
    if kind not in FLOW_KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown flow '{kind}'. Expected one of: {', '.join(FLOW_KINDS)}",
        )
    flow_id, flow = store.create(kind, auth_client)
    return _view(flow_id, flow, response)


@router.get("/{flow_id}", response_model=FlowView)
async def get_flow(flow_id: str, response: Response, store: FlowStore = Depends(get_flow_store)):
    return _view(flow_id, _get_flow(store, flow_id), response)


@router.delete("/{flow_id}")
async def delete_flow(flow_id: str, store: FlowStore = Depends(get_flow_store)):
    if not store.discard(flow_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
    return {"ok": True}


# -------------------------------------------
# Actions
# -------------------------------------------
@router.post("/{flow_id}/submit", response_model=FlowView)
async def submit_flow(
    flow_id: str,
    response: Response,
    data: Dict[str, Any] = Body(default={}),
    store: FlowStore = Depends(get_flow_store),
):
    flow = _get_flow(store, flow_id)
    try:
        await flow.submit(data)
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)


@router.post("/{flow_id}/otp", response_model=FlowView)
async def verify_otp(
    flow_id: str,
    request: OtpRequest,
    response: Response,
    store: FlowStore = Depends(get_flow_store),
):
    flow = _get_flow(store, flow_id)
    try:
        await flow.verify(request.otp)
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)


@router.post("/{flow_id}/resend", response_model=FlowView)
async def resend_otp(flow_id: str, response: Response, store: FlowStore = Depends(get_flow_store)):
    flow = _get_flow(store, flow_id)
    try:
        await flow.resend()
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)


@router.post("/{flow_id}/back", response_model=FlowView)
async def go_back(flow_id: str, response: Response, store: FlowStore = Depends(get_flow_store)):
    flow = _get_flow(store, flow_id)
    try:
        flow.back()
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)


@router.post("/{flow_id}/forgot-password", response_model=FlowView)
async def open_recovery(flow_id: str, response: Response, store: FlowStore = Depends(get_flow_store)):
    flow = _get_flow(store, flow_id)
    if not isinstance(flow, LoginFlow):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"The {flow.name} flow has no password recovery step",
        )
    try:
        flow.forgot_password()
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)


@router.post("/{flow_id}/redirect", response_model=FlowView)
async def redirect_now(flow_id: str, response: Response, store: FlowStore = Depends(get_flow_store)):
    flow = _get_flow(store, flow_id)
    try:
        flow.redirect_now()
    except FlowError as e:
        raise _conflict(flow_id, e)
    return _view(flow_id, flow, response)
