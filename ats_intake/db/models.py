# ats_intake/db/models.py

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, func
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime

# Base class for declarative models
Base = declarative_base()

class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    # Stored lowercased, so the unique index is effectively case-insensitive.
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=False)
    address = Column(String(200), nullable=True)
    linked_in = Column(String(500), nullable=True)
    portfolio = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    educations = relationship(
        "Education", back_populates="candidate",
        cascade="all, delete-orphan", order_by="Education.id"
    )
    experiences = relationship(
        "Experience", back_populates="candidate",
        cascade="all, delete-orphan", order_by="Experience.id"
    )
    documents = relationship(
        "Document", back_populates="candidate",
        cascade="all, delete-orphan", order_by="Document.id"
    )

class Education(Base):
    __tablename__ = "educations"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    institution = Column(String(255), nullable=False, index=True)
    degree = Column(String(255), nullable=False)
    field_of_study = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    current = Column(Boolean, default=False, nullable=False)
    description = Column(Text, nullable=True)

    candidate = relationship("Candidate", back_populates="educations")

class Experience(Base):
    __tablename__ = "experiences"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    company = Column(String(255), nullable=False, index=True)
    position = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    current = Column(Boolean, default=False, nullable=False)

    candidate = relationship("Candidate", back_populates="experiences")

class Document(Base):
    """
    Metadata for an uploaded resume file.
    The binary content lives on disk under settings.UPLOAD_DIR; this row
    records where, plus the name the candidate uploaded it with.
    """
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)

    # --- File Metadata ---
    file_name = Column(String(255), nullable=False, unique=True)
    original_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_path = Column(String(500), nullable=False)
    document_type = Column(String(50), default="resume", nullable=False)

    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    candidate = relationship("Candidate", back_populates="documents")
