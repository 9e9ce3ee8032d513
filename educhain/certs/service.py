from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.orm import Session, aliased
from educhain.models.cert import Cert, MINT_DONE, MINT_PENDING
from educhain.models.course import Course
from educhain.models.user import User

Issuer = aliased(User, name="issuer")
Student = aliased(User, name="student")


@dataclass
class CertContext:
    cert: Cert
    course: Course
    issuer: User
    student: User

    @property
    def issuer_name(self) -> str:
        return self.issuer.institution_name or self.issuer.full_name or ""


def resolve_cert(db: Session, cert_id: int, student_email: str) -> CertContext | None:
    """Cert joined to its course, issuer and student; None unless the cert belongs to this student."""
    stmt = (
        select(Cert, Course, Issuer, Student)
        .join(Course, Cert.course_id == Course.id)
        .join(Issuer, Course.issuer_id == Issuer.id)
        .join(Student, Student.email == Cert.email)
        .where(Cert.id == cert_id, Cert.email == student_email)
    )
    row = db.execute(stmt).first()
    if row is None:
        return None
    return CertContext(*row)


def _refresh(db: Session, cert: Cert) -> None:
    db.commit()
    db.refresh(cert)


def claim_cert(db: Session, cert: Cert) -> bool:
    """Atomically marks an unminted, unclaimed cert as pending; False if another mint holds it."""
    result = db.execute(
        update(Cert)
        .where(Cert.id == cert.id, Cert.cert_hash.is_(None), Cert.mint_status.is_(None))
        .values(mint_status=MINT_PENDING, pending_digest=None, pending_since=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    _refresh(db, cert)
    return result.rowcount == 1


def set_pending_digest(db: Session, cert: Cert, digest: str) -> bool:
    result = db.execute(
        update(Cert)
        .where(Cert.id == cert.id, Cert.mint_status == MINT_PENDING, Cert.pending_digest.is_(None))
        .values(pending_digest=digest)
        .execution_options(synchronize_session=False)
    )
    _refresh(db, cert)
    return result.rowcount == 1


def mark_minted(db: Session, cert: Cert, digest: str) -> bool:
    """Records the digest only if this cert is still pending on that same digest."""
    result = db.execute(
        update(Cert)
        .where(Cert.id == cert.id, Cert.cert_hash.is_(None), Cert.pending_digest == digest)
        .values(
            cert_hash=digest,
            minted_at=datetime.utcnow(),
            mint_status=MINT_DONE,
            pending_digest=None,
            pending_since=None,
        )
        .execution_options(synchronize_session=False)
    )
    _refresh(db, cert)
    return result.rowcount == 1


def release_claim(db: Session, cert_id: int) -> None:
    """Drops a claim that never got as far as a transaction digest."""
    db.execute(
        update(Cert)
        .where(
            Cert.id == cert_id,
            Cert.cert_hash.is_(None),
            Cert.mint_status == MINT_PENDING,
            Cert.pending_digest.is_(None),
        )
        .values(mint_status=None, pending_digest=None, pending_since=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def clear_pending(db: Session, cert: Cert) -> None:
    db.execute(
        update(Cert)
        .where(Cert.id == cert.id, Cert.cert_hash.is_(None))
        .values(mint_status=None, pending_digest=None, pending_since=None)
        .execution_options(synchronize_session=False)
    )
    _refresh(db, cert)


def list_student_courses(db: Session, email: str):
    stmt = (
        select(Cert, Course, Issuer)
        .join(Course, Cert.course_id == Course.id)
        .join(Issuer, Course.issuer_id == Issuer.id)
        .where(Cert.email == email)
        .order_by(Course.created_at.desc(), Course.id.desc())
    )
    return db.execute(stmt).all()


def get_student_course(db: Session, email: str, course_id: int):
    stmt = (
        select(Cert, Course, Issuer)
        .join(Course, Cert.course_id == Course.id)
        .join(Issuer, Course.issuer_id == Issuer.id)
        .where(Cert.email == email, Cert.course_id == course_id)
    )
    return db.execute(stmt).first()


def find_minted_cert(db: Session, digest: str):
    stmt = (
        select(Cert, Course, Issuer)
        .join(Course, Cert.course_id == Course.id)
        .join(Issuer, Course.issuer_id == Issuer.id)
        .where(Cert.cert_hash == digest)
    )
    return db.execute(stmt).first()


def list_pending_certs(db: Session) -> list[Cert]:
    return list(db.scalars(select(Cert).where(Cert.mint_status == MINT_PENDING).order_by(Cert.id)))
