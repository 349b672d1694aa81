# studio_ledger/models/packages.py
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from studio_ledger.database import Base


class Package(Base):
    """Servicio con precio base y porcentajes de reparto por defecto (suman 100)."""
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)

    percentage_a = Column(Numeric(5, 2), nullable=False)
    percentage_b = Column(Numeric(5, 2), nullable=False)
    percentage_c = Column(Numeric(5, 2), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def percentages(self):
        return (self.percentage_a, self.percentage_b, self.percentage_c)
