"""
FastAPI routes for the QuickBooks connection flow.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ledgerlink.core.config import AppSettings
from ledgerlink.core.errors import LedgerLinkError
from ledgerlink.dependencies import (
    SettingsDependency,
    get_callback_handler,
    get_connect_initiator,
    get_credential_repository,
    get_query_proxy_service,
    get_token_exchange_service,
    get_token_refresh_service,
)
from ledgerlink.schemas import (
    ConnectionStatusResponse,
    ConnectStartResponse,
    ErrorResponse,
    QueryRequest,
    TokenExchangeRequest,
    TokenExchangeResponse,
    TokenRefreshRequest,
    TokenRefreshResponse,
)
from ledgerlink.utils.oauth_pages import render_callback_page

router = APIRouter()
callback_router = APIRouter()
logger = logging.getLogger(__name__)

_ERROR_RESPONSES: dict = {
    int(status): {"model": ErrorResponse}
    for status in (
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.UNAUTHORIZED,
        HTTPStatus.NOT_FOUND,
        HTTPStatus.BAD_GATEWAY,
    )
}


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.get("/oauth/quickbooks/connect", response_model=ConnectStartResponse)
async def start_quickbooks_connect(
    request: Request,
    initiator: Annotated[Any, Depends(get_connect_initiator)],
    client_id: str = Query(..., description="Client record that receives the connection."),
    client_name: str | None = Query(
        default=None, description="Display label shown once the connection succeeds."
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the QuickBooks consent screen.",
    ),
) -> Response | ConnectStartResponse:
    """
    Kick off the OAuth flow by issuing a state token and authorization URL.
    """
    started = initiator.begin(target_client_id=client_id, target_client_label=client_name)
    logger.info("Redirecting client %s to QuickBooks OAuth", client_id)

    if redirect or _wants_html(request):
        return RedirectResponse(
            url=started.authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    return started


@callback_router.get("/oauth/callback")
async def handle_quickbooks_callback(
    request: Request,
    handler: Annotated[Any, Depends(get_callback_handler)],
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    realm_id: str | None = Query(default=None, alias="realmId"),
    error: str | None = Query(default=None),
) -> Response:
    """Verify the provider redirect and complete the token exchange."""
    status_code = HTTPStatus.OK
    try:
        result = await handler.process(code=code, state=state, realm_id=realm_id, error=error)
    except LedgerLinkError as exc:
        status_code = exc.status_code
        result = handler.failure(exc)

    if _wants_html(request):
        return HTMLResponse(render_callback_page(result), status_code=status_code)
    return JSONResponse(
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
        status_code=status_code,
    )


@router.post(
    "/oauth/quickbooks/exchange",
    response_model=TokenExchangeResponse,
    responses=_ERROR_RESPONSES,
)
async def exchange_authorization_code(
    payload: TokenExchangeRequest,
    service: Annotated[Any, Depends(get_token_exchange_service)],
) -> TokenExchangeResponse:
    """Exchange an authorization code and store the tokens on the client record."""
    result = await service.exchange(
        code=payload.code,
        company_id=payload.realm_id,
        redirect_uri=payload.redirect_uri,
        target_client_id=payload.client_id,
    )
    return TokenExchangeResponse(company_id=result.company_id, expires_at=result.expires_at)


@router.post(
    "/oauth/quickbooks/refresh",
    response_model=TokenRefreshResponse,
    responses=_ERROR_RESPONSES,
)
async def refresh_access_token(
    payload: TokenRefreshRequest,
    service: Annotated[Any, Depends(get_token_refresh_service)],
) -> TokenRefreshResponse:
    result = await service.refresh(
        refresh_token=payload.refresh_token, company_id=payload.company_id
    )
    return TokenRefreshResponse(access_token=result.access_token, expires_at=result.expires_at)


@router.post("/quickbooks/query", responses=_ERROR_RESPONSES)
async def query_quickbooks(
    payload: QueryRequest,
    service: Annotated[Any, Depends(get_query_proxy_service)],
) -> JSONResponse:
    """Proxy a read to the QuickBooks API and return its JSON untouched."""
    data = await service.query(company_id=payload.company_id, query=payload.query)
    return JSONResponse(content=data)


@router.get(
    "/clients/{client_id}/connections/quickbooks",
    response_model=ConnectionStatusResponse,
    responses=_ERROR_RESPONSES,
)
async def get_quickbooks_connection_status(
    client_id: str,
    repository: Annotated[Any, Depends(get_credential_repository)],
) -> ConnectionStatusResponse:
    record = repository.get_status(client_id)
    return ConnectionStatusResponse(
        client_id=record.client_id,
        provider=record.provider,
        status=record.status.value,
        connected_at=record.connected_at,
        updated_at=record.updated_at,
    )


__all__ = ["callback_router", "router"]
