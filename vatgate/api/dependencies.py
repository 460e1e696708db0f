"""FastAPI dependencies — hand out the components built by the app factory."""

from __future__ import annotations

from fastapi import Request

from vatgate.shop.service import RegistrationService
from vatgate.vat.orchestrator import VatVerifier


def get_verifier(request: Request) -> VatVerifier:
    return request.app.state.verifier


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration
