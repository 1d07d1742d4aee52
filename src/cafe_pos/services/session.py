"""
Session context - who is taking the order and for which restaurant.
"""
from dataclasses import dataclass
from typing import Optional


ROLE_HIERARCHY = {
    'staff': 1,
    'admin': 2,
    'master_admin': 3,
}


class PermissionDenied(PermissionError):
    """The session role is below the role an operation requires."""


@dataclass(frozen=True)
class Session:
    """Identity and organization scope for catalog and order calls."""
    user_id: str
    org_id: str
    role: str = 'staff'
    email: Optional[str] = None

    def has_role(self, required_role: str) -> bool:
        """True when this session's role is at or above required_role."""
        return ROLE_HIERARCHY.get(self.role, 0) >= ROLE_HIERARCHY.get(required_role, 0)

    def require(self, required_role: str):
        if not self.has_role(required_role):
            raise PermissionDenied(f"Role '{self.role}' cannot perform an action requiring '{required_role}'")


def demo_session(org_id: str) -> Session:
    return Session(user_id='demo-user', org_id=org_id, role='admin', email='admin@thrive.com')
