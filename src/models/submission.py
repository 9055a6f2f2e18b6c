from sqlalchemy import JSON, Column, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class SubmissionModel(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint(
            "assignment_id",
            "student_id",
            name="uq_submissions_assignment_student",
        ),
    )

    submission_id = Column(String, primary_key=True, index=True)
    assignment_id = Column(
        String,
        ForeignKey("assignments.assignment_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    student_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    file_url = Column(String, nullable=True)  # stored filename in the uploads directory
    file_name = Column(String, nullable=True)  # original upload name
    text_content = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="submitted")  # submitted | late | graded
    marks = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(String, nullable=False)
    graded_at = Column(String, nullable=True)
    graded_by = Column(String, ForeignKey("users.user_id"), nullable=True)
    plagiarism_check = Column(JSON, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    assignment = relationship("AssignmentModel", back_populates="submissions")
    student = relationship("UserModel", foreign_keys=[student_id])
    grader = relationship("UserModel", foreign_keys=[graded_by])
