"""Technician entity — a user from the technician directory."""

from dataclasses import dataclass

from fieldops.domain.value_objects.enums import UserRole


@dataclass
class Technician:
    id: int | None
    name: str
    role: UserRole = UserRole.TECHNICIAN
    is_backbone_specialist: bool = False
    is_vendor_specialist: bool = False
    is_active: bool = True
    # Administrative override: always take home-maintenance work when any is open
    force_home_maintenance: bool = False

    def is_specialist(self) -> bool:
        return self.is_backbone_specialist or self.is_vendor_specialist

    def can_work_tickets(self) -> bool:
        return self.role == UserRole.TECHNICIAN and self.is_active
