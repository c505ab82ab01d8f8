from __future__ import annotations

from enum import Enum

"""Template vocabulary shared by the import pipeline.

Category / status values and field bounds mirror the CRM `templates` table.
"""

__all__ = [
    "TemplateCategory",
    "TemplateStatus",
    "TITLE_MAX_LENGTH",
    "BODY_MAX_LENGTH",
    "DEFAULT_STATUS",
]

TITLE_MAX_LENGTH = 160
BODY_MAX_LENGTH = 15000


class TemplateCategory(str, Enum):
    COLD_EMAIL = "cold_email"
    WARM_OUTREACH = "warm_outreach"
    CONTENT = "content"
    PAID_ADS = "paid_ads"
    OFFER = "offer"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


DEFAULT_STATUS = TemplateStatus.DRAFT
