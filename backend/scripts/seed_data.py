"""Seed the database with test data."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date
from app.database import SessionLocal, engine, Base
import app.models  # noqa: F401

from app.models.user import User
from app.models.course import Course
from app.models.batch import Batch
from app.models.session import BatchSession
from app.models.enrollment import Enrollment
from app.models.live_session import LiveClassSession


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        # Users
        users = [
            User(login_id="admin001", name="관리자 김철수", role="admin", email="admin@example.com"),
            User(login_id="super001", name="최고관리자 윤서진", role="super-admin", email="super@example.com"),
            User(login_id="inst001", name="강사 이영희", role="instructor", email="inst1@example.com"),
            User(login_id="inst002", name="강사 박민준", role="instructor", email="inst2@example.com"),
            User(login_id="stud001", name="학생 정수연", role="student", email="stud1@example.com"),
            User(login_id="stud002", name="학생 최동현", role="student", email="stud2@example.com"),
        ]
        db.add_all(users)
        db.flush()

        course = Course(course_title="Full Stack Web Development", slug="full-stack-web")
        db.add(course)
        db.flush()

        # Batches
        group_batch = Batch(
            batch_name="FSWD 2026 1차",
            batch_code="FSWD-000001",
            course_id=course.course_id,
            batch_type="group",
            capacity=30,
            assigned_instructor_id=users[2].user_id,
            start_date=date(2026, 1, 5),
            end_date=date(2026, 6, 30),
            created_by=users[0].user_id,
        )
        one_on_one = Batch(
            batch_name="FSWD 1:1 멘토링",
            batch_code="FSWD-000002",
            course_id=course.course_id,
            batch_type="individual",
            capacity=1,
            assigned_instructor_id=users[3].user_id,
            start_date=date(2026, 2, 1),
            end_date=date(2026, 4, 30),
            created_by=users[0].user_id,
        )
        db.add_all([group_batch, one_on_one])
        db.flush()

        sessions = [
            BatchSession(batch_id=group_batch.batch_id, session_date=date(2026, 1, 6),
                         start_time="19:00", end_time="21:00", title="Orientation", created_by=users[0].user_id),
            BatchSession(batch_id=group_batch.batch_id, session_date=date(2026, 1, 8),
                         start_time="19:00", end_time="21:00", title="HTML & CSS", created_by=users[0].user_id),
        ]
        db.add_all(sessions)

        enrollments = [
            Enrollment(student_id=users[4].user_id, course_id=course.course_id,
                       batch_id=group_batch.batch_id, enrolled_by=users[0].user_id),
            Enrollment(student_id=users[5].user_id, course_id=course.course_id,
                       batch_id=one_on_one.batch_id, enrolled_by=users[0].user_id),
        ]
        db.add_all(enrollments)
        group_batch.enrolled_students = 1
        one_on_one.enrolled_students = 1

        db.add(LiveClassSession(batch_id=group_batch.batch_id, session_no="1", session_title="Orientation",
                                instructor_id=users[2].user_id, duration_minutes=120, session_date=date(2026, 1, 6)))
        db.commit()

        print("Seed data created successfully!")
        print(f"  Users: {len(users)}")
        print(f"  Course: 1 (ID={course.course_id})")
        print(f"  Batches: {group_batch.batch_id}, {one_on_one.batch_id}")
        print(f"  Sessions: {len(sessions)}")
        print()
        print("Test login credentials:")
        for u in users:
            print(f"  login_id={u.login_id}  role={u.role}  name={u.name}")

    except Exception as e:
        db.rollback()
        raise e
    finally:
        db.close()


if __name__ == "__main__":
    seed()
