"""
Tax settings service.

CRUD over ``tax_settings`` and ``company_tax_info``, the tax preview used by
the admin UI, and the destructive India GST default.
"""

from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.enums import TargetRegion, TaxType
from resumeforge.platform.billing.exceptions import TaxSettingNotFoundError
from resumeforge.platform.billing.models import CompanyTaxInfoTable, TaxSettingTable
from resumeforge.platform.billing.tax.calculator import compute_invoice_tax
from resumeforge.platform.billing.tax.models import (
    CompanyTaxInfoPayload,
    DefaultGSTResult,
    TaxCalculationRequest,
    TaxComputation,
    TaxRule,
    TaxSettingCreate,
    TaxSettingResponse,
    TaxSettingUpdate,
)
from resumeforge.platform.logging import log_audit_event
from resumeforge.platform.settings import settings

logger = structlog.get_logger(__name__)


def default_india_gst_settings(company_state: str | None) -> list[TaxSettingCreate]:
    """The four-row India GST structure; CGST and SGST are scoped to the company state."""
    country = settings.billing.india_country_code
    common = {
        "country": country,
        "enabled": True,
        "apply_to_region": TargetRegion.INDIA,
        "apply_currency": "INR",
    }
    return [
        TaxSettingCreate(
            name="GST", tax_type=TaxType.GST, percentage=Decimal("18"), **common
        ),
        TaxSettingCreate(
            name="CGST",
            tax_type=TaxType.CGST,
            percentage=Decimal("9"),
            state_applicable=company_state,
            **common,
        ),
        TaxSettingCreate(
            name="SGST",
            tax_type=TaxType.SGST,
            percentage=Decimal("9"),
            state_applicable=company_state,
            **common,
        ),
        TaxSettingCreate(
            name="IGST", tax_type=TaxType.IGST, percentage=Decimal("18"), **common
        ),
    ]


class TaxService:
    """Service for tax configuration and tax previews."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Tax Settings ====================

    async def list_tax_settings(self) -> list[TaxSettingTable]:
        """Return all tax settings ordered by id."""
        result = await self.db.execute(select(TaxSettingTable).order_by(TaxSettingTable.id))
        return list(result.scalars().all())

    async def get_tax_setting(self, tax_setting_id: int) -> TaxSettingTable:
        setting = await self.db.get(TaxSettingTable, tax_setting_id)
        if setting is None:
            raise TaxSettingNotFoundError(
                f"Tax setting {tax_setting_id} not found", tax_setting_id=tax_setting_id
            )
        return setting

    async def create_tax_setting(self, data: TaxSettingCreate) -> TaxSettingTable:
        """
        Create a tax setting.

        Args:
            data: Validated tax setting fields

        Returns:
            Stored tax setting
        """
        setting = TaxSettingTable(
            name=data.name,
            tax_type=data.tax_type.value,
            percentage=data.percentage,
            country=data.country,
            state_applicable=data.state_applicable or None,
            enabled=data.enabled,
            apply_to_region=data.apply_to_region.value,
            apply_currency=data.apply_currency,
        )
        self.db.add(setting)
        await self.db.commit()
        await self.db.refresh(setting)

        logger.info(
            "Tax setting created",
            tax_setting_id=setting.id,
            tax_type=setting.tax_type,
            percentage=str(setting.percentage),
        )
        return setting

    async def update_tax_setting(
        self, tax_setting_id: int, data: TaxSettingUpdate
    ) -> TaxSettingTable:
        setting = await self.get_tax_setting(tax_setting_id)

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if isinstance(value, TaxType | TargetRegion):
                value = value.value
            elif field in ("country", "apply_currency") and value:
                value = value.upper()
            setattr(setting, field, value)

        await self.db.commit()
        await self.db.refresh(setting)

        logger.info(
            "Tax setting updated", tax_setting_id=tax_setting_id, fields=sorted(changes)
        )
        return setting

    async def delete_tax_setting(self, tax_setting_id: int) -> None:
        setting = await self.get_tax_setting(tax_setting_id)
        await self.db.delete(setting)
        await self.db.commit()
        logger.info("Tax setting deleted", tax_setting_id=tax_setting_id)

    async def get_rules(self) -> list[TaxRule]:
        """All tax settings as validated calculator rules."""
        return [TaxRule.model_validate(row) for row in await self.list_tax_settings()]

    # ==================== Calculation ====================

    async def calculate(self, request: TaxCalculationRequest) -> TaxComputation:
        """Preview the tax for an amount using the stored settings."""
        return compute_invoice_tax(
            request.amount,
            country=request.country,
            state=request.state,
            region=request.region,
            currency=request.currency,
            rules=await self.get_rules(),
            mode=request.mode,
            tax_types=request.tax_types,
        )

    # ==================== Company Tax Info ====================

    async def get_company_tax_info(self) -> CompanyTaxInfoTable | None:
        result = await self.db.execute(
            select(CompanyTaxInfoTable).order_by(CompanyTaxInfoTable.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert_company_tax_info(self, data: CompanyTaxInfoPayload) -> CompanyTaxInfoTable:
        """Create the company tax info row or overwrite the existing one."""
        info = await self.get_company_tax_info()
        if info is None:
            info = CompanyTaxInfoTable(**data.model_dump())
            self.db.add(info)
        else:
            for field, value in data.model_dump().items():
                setattr(info, field, value)

        await self.db.commit()
        await self.db.refresh(info)

        logger.info("Company tax info saved", company_name=info.company_name)
        return info

    # ==================== Default India GST ====================

    async def _delete_setting(self, tax_setting_id: int) -> None:
        setting = await self.get_tax_setting(tax_setting_id)
        await self.db.delete(setting)
        await self.db.commit()

    async def _insert_setting(self, data: TaxSettingCreate) -> TaxSettingTable:
        return await self.create_tax_setting(data)

    async def create_default_india_gst(
        self, company_state: str | None = None, user_id: str | None = None
    ) -> DefaultGSTResult:
        """
        Replace every tax setting with the default India GST structure.

        Existing settings are deleted one at a time, then GST 18%, CGST 9%,
        SGST 9% and IGST 18% are inserted one at a time. There is no
        surrounding transaction, so a failure is logged and counted and the loop
        moves on. Callers must inspect the counts.

        Args:
            company_state: State for CGST/SGST; defaults to the company tax info state
            user_id: Acting admin, for the audit log

        Returns:
            Counts of deleted and created rows plus per-item errors
        """
        if company_state is None:
            company = await self.get_company_tax_info()
            company_state = company.state if company else None

        result = DefaultGSTResult()

        existing_ids = [setting.id for setting in await self.list_tax_settings()]
        for setting_id in existing_ids:
            result.total += 1
            try:
                await self._delete_setting(setting_id)
                result.deleted += 1
                result.succeeded += 1
            except Exception as e:
                await self.db.rollback()
                logger.exception(
                    "Failed to delete tax setting", tax_setting_id=setting_id, error=str(e)
                )
                result.record_failure(f"delete tax setting {setting_id}: {e}")

        for data in default_india_gst_settings(company_state):
            result.total += 1
            try:
                created = await self._insert_setting(data)
                result.created += 1
                result.succeeded += 1
                result.settings.append(TaxSettingResponse.model_validate(created))
            except Exception as e:
                await self.db.rollback()
                logger.exception(
                    "Failed to create default tax setting",
                    tax_type=data.tax_type.value,
                    error=str(e),
                )
                result.record_failure(f"create {data.tax_type.value}: {e}")

        logger.info(
            "Default India GST settings applied",
            company_state=company_state,
            deleted=result.deleted,
            created=result.created,
            failed=result.failed,
        )
        log_audit_event(
            "tax.default_india_gst_applied",
            "tax",
            user_id=user_id,
            resource_type="tax_settings",
            deleted=result.deleted,
            created=result.created,
            failed=result.failed,
        )
        return result
