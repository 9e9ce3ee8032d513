from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from educhain.db.session import Base

MINT_PENDING = "pending"
MINT_DONE = "minted"

class Cert(Base):
    __tablename__ = "certs"
    __table_args__ = (UniqueConstraint("course_id", "email", name="uq_certs_course_email"),)

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    cert_hash = Column(String(64), nullable=True, unique=True)
    minted_at = Column(DateTime, nullable=True)

    mint_status = Column(String(20), nullable=True, index=True)
    pending_digest = Column(String(64), nullable=True)
    pending_since = Column(DateTime, nullable=True)

    course = relationship("Course", back_populates="certs")
