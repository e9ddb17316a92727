from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base
from src.service.carpool.driven_adapter.model.user_model import new_id


class ChildModel(Base):
    __tablename__ = 'children'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('families.id', ondelete='CASCADE'), nullable=False, index=True
    )

    def __repr__(self):
        return f'<ChildModel(id={self.id}, name={self.name})>'
