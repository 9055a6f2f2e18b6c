"""Due-date reminder emails for students who have not submitted yet."""

import logging
from datetime import datetime
from typing import Iterable, NamedTuple

from sqlalchemy.orm import Session

from models.assignment import AssignmentModel
from models.submission import SubmissionModel
from models.user import UserModel
from schemas.user import NotificationSettings
from utils.email_service import EmailService, assignment_email_context
from utils.time_utils import days_until, parse_iso

logger = logging.getLogger(__name__)


class ReminderStats(NamedTuple):
    sent: int
    failed: int


def wants_reminders(student: UserModel) -> bool:
    settings = NotificationSettings(**(student.notification_settings or {}))
    return settings.email_notifications and settings.assignment_reminders


def wants_grade_notifications(student: UserModel) -> bool:
    settings = NotificationSettings(**(student.notification_settings or {}))
    return settings.email_notifications and settings.grade_notifications


def send_due_reminders(
    db: Session,
    email_service: EmailService,
    assignments: Iterable[AssignmentModel],
    now: datetime,
) -> ReminderStats:
    """Email each assignment's outstanding students about the deadline.

    Assignments whose deadline has passed are skipped, as are students
    who already submitted or who turned reminders off.
    """
    sent = failed = 0
    for assignment in assignments:
        deadline = parse_iso(assignment.deadline)
        if deadline < now:
            logger.info("Skipping reminders for past-due assignment %s", assignment.assignment_id)
            continue
        days_left = days_until(deadline, now)
        context = assignment_email_context(assignment)

        submitted = {
            student_id
            for (student_id,) in db.query(SubmissionModel.student_id).filter(
                SubmissionModel.assignment_id == assignment.assignment_id
            )
        }
        students = (
            db.query(UserModel)
            .filter(UserModel.role == "student", UserModel.class_id == assignment.class_id)
            .all()
        )
        for student in students:
            if student.user_id in submitted or not wants_reminders(student):
                continue
            if email_service.send_due_date_reminder(student.email, student.name, context, days_left):
                sent += 1
            else:
                failed += 1

    logger.info("Due-date reminders: %d sent, %d failed", sent, failed)
    return ReminderStats(sent=sent, failed=failed)
