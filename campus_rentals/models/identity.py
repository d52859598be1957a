"""Caller identity passed explicitly into every workflow call."""

from pydantic import BaseModel, Field

SPORTS_ADMIN_CLAIM = "sports_admin"
ADMIN_CLAIM = "admin"
VENDOR_CLAIM_PREFIX = "vendor:"


class Actor(BaseModel):
    """Authenticated caller with boolean role claims."""

    id: str = Field(min_length=1)
    display_name: str | None = None
    claims: set[str] = Field(default_factory=set)

    @property
    def name(self) -> str:
        return self.display_name or self.id

    @property
    def is_admin(self) -> bool:
        return ADMIN_CLAIM in self.claims

    @property
    def is_sports_admin(self) -> bool:
        return self.is_admin or SPORTS_ADMIN_CLAIM in self.claims

    def is_vendor_for(self, shop_id: str) -> bool:
        return self.is_admin or f"{VENDOR_CLAIM_PREFIX}{shop_id}" in self.claims

    @property
    def vendor_shops(self) -> set[str]:
        return {
            claim[len(VENDOR_CLAIM_PREFIX):]
            for claim in self.claims
            if claim.startswith(VENDOR_CLAIM_PREFIX)
        }
