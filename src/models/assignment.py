from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from .base import Base


class AssignmentModel(Base):
    __tablename__ = "assignments"

    assignment_id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text, nullable=True)
    course = Column(String, nullable=True)
    deadline = Column(String, index=True, nullable=False)  # ISO format string, UTC
    max_marks = Column(Integer, nullable=False)
    class_id = Column(
        String, ForeignKey("classes.class_id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_by = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    submission_format = Column(String, nullable=False, default="file")  # file | text | both
    allow_late_submission = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    class_ = relationship("ClassModel", back_populates="assignments")
    creator = relationship("UserModel", foreign_keys=[created_by])
    submissions = relationship(
        "SubmissionModel",
        back_populates="assignment",
        cascade="all, delete-orphan",
    )
