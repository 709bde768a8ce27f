# services/communication-service/app/seeds/seed_fields.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from app.models import BookmarkField, FieldDataType
from app.services.field_catalog import FieldCatalogService, get_field_catalog

log = logging.getLogger("app.seeds.fields")

S, D = FieldDataType.STRING, FieldDataType.DATE

# key, label, source_path, data_type
DEFAULT_FIELDS: List[Tuple[str, str, str, FieldDataType]] = [
    ("normalizedEmail", "Normalized Email", "profile.normalizedEmail", S),
    ("membershipNumber", "Membership Number", "profile.membershipNumber", S),
    ("title", "Title", "profile.personalInfo.title", S),
    ("surname", "Surname", "profile.personalInfo.surname", S),
    ("forename", "Forename", "profile.personalInfo.forename", S),
    ("gender", "Gender", "profile.personalInfo.gender", S),
    ("dateOfBirth", "Date of Birth", "profile.personalInfo.dateOfBirth", D),
    ("buildingOrHouse", "Building or House", "profile.contactInfo.address.buildingOrHouse", S),
    ("streetOrRoad", "Street or Road", "profile.contactInfo.address.streetOrRoad", S),
    ("areaOrTown", "Area or Town", "profile.contactInfo.address.areaOrTown", S),
    ("countyCityOrPostCode", "County City or Post Code", "profile.contactInfo.address.countyCityOrPostCode", S),
    ("eircode", "Eircode", "profile.contactInfo.address.eircode", S),
    ("country", "Country", "profile.contactInfo.address.country", S),
    ("fullAddress", "Full Address", "profile.contactInfo.address.fullAddress", S),
    ("mobileNumber", "Mobile Number", "profile.contactInfo.mobileNumber", S),
    ("personalEmail", "Personal Email", "profile.contactInfo.personalEmail", S),
    ("workEmail", "Work Email", "profile.contactInfo.workEmail", S),
    ("studyLocation", "Study Location", "profile.professionalInfo.studyLocation", S),
    ("startDate", "Start Date", "subscription.startDate", D),
    ("graduationDate", "Graduation Date", "profile.professionalInfo.graduationDate", D),
    ("workLocation", "Work Location", "profile.professionalInfo.workLocation", S),
    ("payrollNo", "Payroll Number", "subscription.payrollNo", S),
    ("branch", "Branch", "profile.professionalInfo.branch", S),
    ("region", "Region", "profile.professionalInfo.region", S),
    ("grade", "Grade", "profile.professionalInfo.grade", S),
    ("nmbiNumber", "NMBI Number", "profile.professionalInfo.nmbiNumber", S),
    ("subscriptionStatus", "Subscription Status", "subscription.subscriptionStatus", S),
    ("endDate", "End Date", "subscription.endDate", D),
    ("dateCancelled", "Date Cancelled", "subscription.cancellation.dateCancelled", D),
    ("dateResigned", "Date Resigned", "subscription.resignation.dateResigned", D),
    ("remindersType", "Reminders Type", "subscription.reminders.type", S),
    ("remindersReminderDate", "Reminders Reminder Date", "subscription.reminders.reminderDate", D),
    ("membershipCategory", "Membership Category", "subscription.membershipCategory", S),
    ("paymentType", "Payment Type", "subscription.paymentType", S),
    ("paymentFrequency", "Payment Frequency", "subscription.paymentFrequency", S),
    ("outstandingBalance", "Outstanding Balance", "account.balance", FieldDataType.NUMBER),
]


def default_fields() -> List[BookmarkField]:
    return [
        BookmarkField(key=key, label=label, source_path=path, data_type=dtype)
        for key, label, path, dtype in DEFAULT_FIELDS
    ]


async def seed_fields(catalog: Optional[FieldCatalogService] = None) -> None:
    catalog = catalog or get_field_catalog()
    created, updated = await catalog.seed(default_fields())
    log.info("[communication.seeds.fields] created=%d updated=%d total=%d", created, updated, len(DEFAULT_FIELDS))
