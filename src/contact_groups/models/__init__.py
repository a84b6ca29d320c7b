from contact_groups.models.base import Base
from contact_groups.models.contact import ContactRecord
from contact_groups.models.contact_group import ContactGroupRecord

__all__ = [
    "Base",
    "ContactGroupRecord",
    "ContactRecord",
]
