from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Course(Base):
    __tablename__ = "course"

    course_id = Column(Integer, primary_key=True, autoincrement=True)
    course_title = Column(String(200), nullable=False)
    slug = Column(String(200))
    created_at = Column(DateTime, server_default=func.now())

    batches = relationship("Batch", back_populates="course")
