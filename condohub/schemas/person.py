from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from ..models.person import Origin


class UnitRoleView(BaseModel):
    """Unit a person belongs to, with the role held there"""
    id: str
    name: Optional[str] = None
    role: str


class PersonView(BaseModel):
    """Store-independent view of a person record, tagged with its origin"""
    id: str
    names: str
    last_names: str
    email: str
    origin: Origin
    units: List[UnitRoleView] = Field(default_factory=list)


class ResolvedPerson(BaseModel):
    """
    Result of a cross-store lookup.

    Either side may be missing; both missing is a normal "not found" outcome.
    """
    community: Optional[PersonView] = None
    registry: Optional[PersonView] = None

    @property
    def found(self) -> bool:
        return self.community is not None or self.registry is not None

    @property
    def found_in_both(self) -> bool:
        return self.community is not None and self.registry is not None

    @property
    def views(self) -> List[PersonView]:
        return [view for view in (self.community, self.registry) if view is not None]


class PersonCreate(BaseModel):
    origin: Origin
    names: str = Field(..., min_length=1, max_length=100)
    last_names: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
