from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base
from src.service.carpool.driven_adapter.model.user_model import new_id


class VehicleModel(Base):
    __tablename__ = 'vehicles'
    __table_args__ = (CheckConstraint('capacity >= 1', name='ck_vehicle_capacity_positive'),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('families.id', ondelete='CASCADE'), nullable=False, index=True
    )

    def __repr__(self):
        return f'<VehicleModel(id={self.id}, name={self.name}, capacity={self.capacity})>'
