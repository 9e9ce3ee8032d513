import json
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from educhain.db.session import Base

class Course(Base):
    __tablename__ = "courses"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image_filename = Column(String(255), nullable=False, default="")
    student_emails = Column(Text, nullable=False, default="[]")
    issuer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    issuer = relationship("User", back_populates="courses")
    certs = relationship("Cert", back_populates="course", order_by="Cert.id")

    @property
    def emails(self) -> list[str]:
        try:
            return json.loads(self.student_emails or "[]")
        except ValueError:
            return []
