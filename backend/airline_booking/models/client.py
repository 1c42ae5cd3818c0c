"""
Client accounts. Registration and credentials live in the external auth
service; the core only needs the id for ownership checks.
"""

from sqlalchemy import Boolean, Column, Integer, String

from airline_booking.db.base import Base, TimestampMixin


class Client(Base, TimestampMixin):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, email={self.email})>"
