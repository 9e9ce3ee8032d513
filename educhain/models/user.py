
from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from educhain.db.session import Base

ROLE_ISSUER = "issuer"
ROLE_STUDENT = "student"

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default=ROLE_STUDENT)
    # holds the Sui secret key generated at signup (see DESIGN.md)
    address = Column(String(255), nullable=True)
    institution_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    sessions = relationship("UserSession", back_populates="user")
    courses = relationship("Course", back_populates="issuer")
