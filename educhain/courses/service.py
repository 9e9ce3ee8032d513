import json
import logging
import shutil
import time
from pathlib import Path
from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session
from educhain.models.cert import Cert
from educhain.models.course import Course

logger = logging.getLogger(__name__)

MAX_MB = 10


class CourseFormError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_student_emails(raw: str) -> list[str]:
    """Comma-separated list -> trimmed, lowercased, de-duplicated, first-seen order."""
    seen = set()
    out = []
    for part in (raw or "").split(","):
        email = part.strip().lower()
        if email and email not in seen:
            seen.add(email)
            out.append(email)
    return out


def save_upload(upload_dir: str, file: UploadFile) -> str:
    name = Path(file.filename or "").name
    if not name:
        return ""

    target_dir = Path(upload_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{int(time.time() * 1000)}_{name}"
    target = target_dir / filename

    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    if size > MAX_MB * 1024 * 1024:
        raise CourseFormError(f"{name} is larger than {MAX_MB}MB.", status_code=413)

    with target.open("wb") as out:
        shutil.copyfileobj(file.file, out)
    return filename


def discard_upload(upload_dir: str, filename: str) -> None:
    try:
        (Path(upload_dir) / Path(filename).name).unlink(missing_ok=True)
    except OSError:
        logger.exception("could not remove orphaned upload %s", filename)


def course_exists(db: Session, issuer_id: int, name: str) -> bool:
    stmt = select(Course.id).where(Course.issuer_id == issuer_id, Course.name == name).limit(1)
    return db.scalar(stmt) is not None


def create_course(
    db: Session,
    *,
    issuer_id: int,
    name: str,
    description: str,
    image_filename: str,
    emails: list[str],
) -> Course:
    """Inserts the course and one cert placeholder per student in a single transaction."""
    course = Course(
        name=name,
        description=description,
        image_filename=image_filename,
        student_emails=json.dumps(emails),
        issuer_id=issuer_id,
    )
    try:
        db.add(course)
        db.flush()
        db.add_all([Cert(course_id=course.id, email=email) for email in emails])
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(course)
    logger.info("issuer %s created course %s with %d students", issuer_id, course.id, len(emails))
    return course


def list_issuer_courses(db: Session, issuer_id: int) -> list[Course]:
    stmt = select(Course).where(Course.issuer_id == issuer_id).order_by(Course.created_at.desc(), Course.id.desc())
    return list(db.scalars(stmt))


def get_issuer_course(db: Session, issuer_id: int, course_id: int) -> Course | None:
    return db.scalar(select(Course).where(Course.id == course_id, Course.issuer_id == issuer_id))
