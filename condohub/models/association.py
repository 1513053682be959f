from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.orm import relationship

from ..database import CommunityBase, RegistryBase
from .person import new_object_id


class CommunityAssociation(CommunityBase):
    """Association as seen by the community store; owns amenities"""
    __tablename__ = "community_associations"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    amenities = relationship("Amenity", back_populates="association")
    units = relationship("CommunityUnit", back_populates="association")

    def __repr__(self):
        return f"<CommunityAssociation {self.name}>"


class RegistryAssociation(RegistryBase):
    """Association as seen by the registry store; owns units"""
    __tablename__ = "associations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    units = relationship("RegistryUnit", back_populates="association")
    memberships = relationship("AssociationMembership", back_populates="association")

    def __repr__(self):
        return f"<RegistryAssociation {self.id} - {self.name}>"
