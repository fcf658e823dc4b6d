"""Identity-provider webhook payloads.

Learn: Only the fields we mirror are modelled; everything else in the
provider's user object is ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class EmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email_address: str


class IdentityUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    primary_email_address_id: Optional[str] = None
    email_addresses: list[EmailAddress] = []
    deleted: bool = False

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None

    @property
    def primary_email(self) -> Optional[str]:
        for address in self.email_addresses:
            if address.id == self.primary_email_address_id:
                return address.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None


class IdentityEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict
