"""HTTP routes — VAT validation and customer registration.

Errors raised here (InvalidIdentifierError, ShopifyError, ...) are turned
into JSON responses by the exception handlers in ``vatgate.main``.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from vatgate.api.dependencies import get_registration_service, get_verifier
from vatgate.shop.schemas import (
    CheckEmailRequest,
    CheckEmailResponse,
    RegistrationRequest,
    RegistrationResponse,
)
from vatgate.shop.service import RegistrationService
from vatgate.vat.orchestrator import VatVerifier
from vatgate.vat.schemas import ValidateVatRequest, ValidateVatResponse

logger = logging.getLogger(__name__)

vat_router = APIRouter(prefix="/api", tags=["vat"])
registration_router = APIRouter(tags=["registration"])


@vat_router.post("/validate-vat", response_model=ValidateVatResponse)
async def validate_vat(
    body: ValidateVatRequest,
    verifier: VatVerifier = Depends(get_verifier),
) -> ValidateVatResponse:
    """Validate a VAT number: VIES first, apilayer as fallback."""
    result = await verifier.verify(body.vat_number)
    return ValidateVatResponse.from_result(result)


@registration_router.post("/register", response_model=RegistrationResponse, response_model_exclude_none=True)
async def register(
    body: RegistrationRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationResponse:
    """Create a Shopify customer unless one already exists for the email."""
    outcome = await service.register(body)
    if not outcome.created:
        return RegistrationResponse(message="Customer already exists.", customer=outcome.customer)
    return RegistrationResponse(customer=outcome.customer)


@registration_router.post("/check-email", response_model=CheckEmailResponse)
async def check_email(
    body: CheckEmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> CheckEmailResponse:
    """Report whether a customer with this email already exists."""
    return await service.check_email(body.email)
