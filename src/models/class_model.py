from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import Base


class ClassModel(Base):
    __tablename__ = "classes"

    class_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)  # upper-case
    description = Column(String, nullable=True)
    teacher_id = Column(String, index=True, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    teacher = relationship(
        "UserModel",
        primaryjoin="foreign(ClassModel.teacher_id) == UserModel.user_id",
        viewonly=True,
    )
    # Roster: students whose class_id points here
    students = relationship(
        "UserModel",
        primaryjoin="ClassModel.class_id == foreign(UserModel.class_id)",
        order_by="UserModel.name",
        viewonly=True,
    )
    assignments = relationship(
        "AssignmentModel",
        back_populates="class_",
        cascade="all, delete-orphan",
    )
