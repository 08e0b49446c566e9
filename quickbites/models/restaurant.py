from sqlalchemy import Boolean, Column, Integer, String

from ..db.base import Base
from ..models.base import TimeStampMixin


class Restaurant(Base, TimeStampMixin):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f'<Restaurant(id={self.id}, name={self.name}, is_active={self.is_active})>'
