"""
Enrollment SQLAlchemy model.
Stores Aadhaar enrolment rows by date, geography, and age group.
"""
from sqlalchemy import Column, Integer, String, Date, BigInteger, Index
from enrolment_pulse.database import Base
from enrolment_pulse.models.records import EnrolmentRecord


class Enrollment(Base):
    """
    Enrolment table model.

    Alternative row source to the CSV exports; one row per CSV line.
    """
    __tablename__ = "enrolments"

    # Primary key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Temporal
    date = Column(Date, nullable=False, index=True)

    # Geography
    state = Column(String(100), nullable=False, index=True)
    district = Column(String(100), nullable=False, index=True)
    pincode = Column(String(10), index=True)

    # Age-wise enrolment counts (same names as the CSV columns)
    age_0_5 = Column(BigInteger, default=0, nullable=False)
    age_5_17 = Column(BigInteger, default=0, nullable=False)
    age_18_greater = Column(BigInteger, default=0, nullable=False)

    # Composite indexes for common queries
    __table_args__ = (
        Index('idx_enrol_date_state', 'date', 'state'),
        Index('idx_enrol_state_district', 'state', 'district'),
    )

    def __repr__(self):
        return f"<Enrollment(id={self.id}, date={self.date}, district={self.district}, total={self.total})>"

    @property
    def total(self) -> int:
        return (self.age_0_5 or 0) + (self.age_5_17 or 0) + (self.age_18_greater or 0)

    @classmethod
    def from_record(cls, record: EnrolmentRecord) -> "Enrollment":
        return cls(
            date=record.date,
            state=record.state,
            district=record.district,
            pincode=record.pincode,
            age_0_5=record.age_0_5,
            age_5_17=record.age_5_17,
            age_18_greater=record.age_18_greater,
        )

    def to_row(self) -> dict:
        """Raw row in the CSV column layout, for the data loader."""
        return {
            "date": self.date,
            "state": self.state,
            "district": self.district,
            "pincode": self.pincode,
            "age_0_5": self.age_0_5,
            "age_5_17": self.age_5_17,
            "age_18_greater": self.age_18_greater,
        }
