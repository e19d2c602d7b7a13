"""
Tax administration router.

Tax settings CRUD, the India GST default, company tax info and the tax
preview used by the admin dashboard.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status

from resumeforge.platform.auth.core import UserInfo, require_admin
from resumeforge.platform.billing.dependencies import get_tax_service
from resumeforge.platform.billing.exceptions import BillingError
from resumeforge.platform.billing.tax.models import (
    CompanyTaxInfoPayload,
    CompanyTaxInfoResponse,
    DefaultGSTRequest,
    DefaultGSTResult,
    TaxCalculationRequest,
    TaxComputation,
    TaxSettingCreate,
    TaxSettingResponse,
    TaxSettingUpdate,
)
from resumeforge.platform.billing.tax.service import TaxService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Admin - Tax"])


# ==================== Tax Settings ====================


@router.get("/tax-settings", response_model=list[TaxSettingResponse])
async def list_tax_settings(
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> list[TaxSettingResponse]:
    """List all tax settings."""
    return [TaxSettingResponse.model_validate(s) for s in await service.list_tax_settings()]


@router.post(
    "/tax-settings", response_model=TaxSettingResponse, status_code=status.HTTP_201_CREATED
)
async def create_tax_setting(
    data: TaxSettingCreate,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> TaxSettingResponse:
    """Create a tax setting."""
    try:
        setting = await service.create_tax_setting(data)
        return TaxSettingResponse.model_validate(setting)
    except BillingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to create tax setting", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create tax setting",
        )


@router.patch("/tax-settings/{tax_setting_id}", response_model=TaxSettingResponse)
async def update_tax_setting(
    tax_setting_id: int,
    data: TaxSettingUpdate,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> TaxSettingResponse:
    """Update fields of a tax setting."""
    setting = await service.update_tax_setting(tax_setting_id, data)
    return TaxSettingResponse.model_validate(setting)


@router.delete("/tax-settings/{tax_setting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tax_setting(
    tax_setting_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> None:
    """Delete a tax setting."""
    await service.delete_tax_setting(tax_setting_id)


@router.post("/tax-settings/default-india-gst", response_model=DefaultGSTResult)
async def create_default_india_gst(
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
    request: Annotated[DefaultGSTRequest | None, Body()] = None,
) -> DefaultGSTResult:
    """
    Replace all tax settings with GST 18%, CGST 9%, SGST 9% and IGST 18%.

    Not atomic: the response reports per-item failures, and a 200 with
    ``failed > 0`` means the settings are only partially replaced.
    """
    company_state = request.company_state if request else None
    result = await service.create_default_india_gst(
        company_state=company_state, user_id=current_user.user_id
    )
    if result.has_failures:
        logger.warning(
            "Default India GST applied with failures",
            failed=result.failed,
            errors=result.errors,
        )
    return result


# ==================== Company Tax Info ====================


@router.get("/company-tax-info", response_model=CompanyTaxInfoResponse | None)
async def get_company_tax_info(
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> CompanyTaxInfoResponse | None:
    """Seller details printed on invoices, if configured."""
    info = await service.get_company_tax_info()
    return CompanyTaxInfoResponse.model_validate(info) if info else None


@router.put("/company-tax-info", response_model=CompanyTaxInfoResponse)
async def upsert_company_tax_info(
    data: CompanyTaxInfoPayload,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> CompanyTaxInfoResponse:
    """Create or replace the company tax info."""
    info = await service.upsert_company_tax_info(data)
    return CompanyTaxInfoResponse.model_validate(info)


# ==================== Calculation ====================


@router.post("/tax/calculate", response_model=TaxComputation)
async def calculate_tax(
    request: TaxCalculationRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[TaxService, Depends(get_tax_service)],
) -> TaxComputation:
    """Preview subtotal, tax and total for an amount in exclusive or inclusive mode."""
    return await service.calculate(request)
