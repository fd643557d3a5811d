# portal/services/__init__.py
"""
Service construction.

Each service is built from a Settings instance; routes receive them via
``Depends(get_services)`` and tests override that dependency with services
built from their own settings.
"""
from dataclasses import dataclass
from functools import lru_cache

from portal.config import settings as default_settings
from portal.services.application_service import ApplicationService
from portal.services.cron_service import CronService
from portal.services.document_service import DocumentService
from portal.services.eligibility_service import EligibilityService
from portal.services.gateway import RazorpayGateway
from portal.services.merit_list_service import MeritListService
from portal.services.payment_service import PaymentService
from portal.services.restriction_service import ApplicationRestrictionService
from portal.services.selection_service import SelectionService


@dataclass
class Services:
    documents: DocumentService
    eligibility: EligibilityService
    restrictions: ApplicationRestrictionService
    payments: PaymentService
    merit: MeritListService
    cron: CronService
    applications: ApplicationService
    selection: SelectionService


def build_services(settings, gateway=None) -> Services:
    documents = DocumentService()
    eligibility = EligibilityService(documents)
    restrictions = ApplicationRestrictionService.from_settings(settings)
    payments = PaymentService(settings, gateway or RazorpayGateway.from_settings(settings))
    merit = MeritListService(settings.MERIT_AGE_PREFERENCE)
    cron = CronService(restrictions, merit)
    return Services(
        documents=documents,
        eligibility=eligibility,
        restrictions=restrictions,
        payments=payments,
        merit=merit,
        cron=cron,
        applications=ApplicationService(restrictions, payments, eligibility, documents, settings.MERIT_AGE_PREFERENCE),
        selection=SelectionService(documents, merit, cron),
    )


@lru_cache()
def get_services() -> Services:
    return build_services(default_settings)
