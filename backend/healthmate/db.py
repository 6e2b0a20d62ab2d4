# backend/healthmate/db.py
from sqlalchemy import create_engine, Column, Integer, String, JSON, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import declarative_base, sessionmaker
import datetime

Base = declarative_base()


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    doctor_name = Column(String)
    hospital_name = Column(String)
    date = Column(DateTime, default=utcnow)
    image_url = Column(String)
    extracted_text = Column(Text)
    medicines = Column(JSON)  # list of {name, dosage, frequency, duration}
    diagnosis = Column(String)
    notes = Column(String)
    created_at = Column(DateTime, default=utcnow)


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    dosage = Column(String)
    quantity = Column(Integer, default=0)
    quantity_unit = Column(String, default="tablets")
    frequency = Column(String, default="once_daily")
    prescription_id = Column(Integer, ForeignKey("prescriptions.id"), nullable=True)
    notes = Column(String)
    is_active = Column(Boolean, default=True)
    reminder_enabled = Column(Boolean, default=True)
    start_date = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


def make_session_factory(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
