"""
SQLAlchemy models for teachers, students, subjects, files and captcha questions.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Table, Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


teacher_subjects = Table(
    "teacher_subjects",
    Base.metadata,
    Column("teacher_id", Integer, ForeignKey("teachers.id"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id"), primary_key=True),
)

student_subjects = Table(
    "student_subjects",
    Base.metadata,
    Column("student_id", Integer, ForeignKey("students.id"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id"), primary_key=True),
)


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    google_id = Column(String, unique=True, index=True)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    school_name = Column(String)
    drive_folder_id = Column(String)
    access_token = Column(Text)
    refresh_token = Column(Text)
    link_code = Column(String, unique=True, index=True)
    created_at = Column(DateTime, default=_utcnow)
    is_active = Column(Boolean, default=True)

    students = relationship("Student", back_populates="teacher")
    subjects = relationship("Subject", secondary=teacher_subjects, order_by="Subject.id")

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "schoolName": self.school_name,
            "driveFolderId": self.drive_folder_id,
            "linkCode": self.link_code,
            "driveConnected": bool(self.access_token),
        }


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name_ar = Column(String, nullable=False, unique=True)

    def to_dict(self):
        return {"id": self.id, "nameAr": self.name_ar}


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    civil_id = Column(String, nullable=False, unique=True, index=True)
    student_name = Column(String, nullable=False)
    grade = Column(String, nullable=False)
    class_number = Column(Integer, nullable=False)
    academic_year = Column(String, nullable=False, default="2024-2025")
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    folder_created = Column(Boolean, default=False, nullable=False)
    drive_folder_id = Column(String)
    created_date = Column(DateTime, default=_utcnow)
    is_active = Column(Boolean, default=True, nullable=False)

    teacher = relationship("Teacher", back_populates="students")
    subjects = relationship("Subject", secondary=student_subjects, order_by="Subject.id")

    @property
    def folder_name(self):
        return f"{self.student_name} - {self.civil_id}"

    def to_dict(self):
        return {
            "id": self.id,
            "civilId": self.civil_id,
            "studentName": self.student_name,
            "grade": self.grade,
            "classNumber": self.class_number,
            "academicYear": self.academic_year,
            "teacherId": self.teacher_id,
            "folderCreated": bool(self.folder_created),
            "driveFolderId": self.drive_folder_id,
            "subjects": [s.name_ar for s in self.subjects],
            "isActive": bool(self.is_active),
        }


class File(Base):
    __tablename__ = "files"
    __table_args__ = (
        Index("idx_files_category", "student_civil_id", "file_category"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_civil_id = Column(String, nullable=False)
    subject = Column(String)
    file_category = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    drive_file_id = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    file_size = Column(Integer)
    file_type = Column(String)
    upload_date = Column(DateTime, default=_utcnow)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "studentCivilId": self.student_civil_id,
            "subject": self.subject,
            "fileCategory": self.file_category,
            "originalName": self.original_name,
            "driveFileId": self.drive_file_id,
            "fileUrl": self.file_url,
            "fileSize": self.file_size,
            "fileType": self.file_type,
            "uploadDate": self.upload_date.isoformat() if self.upload_date else None,
            "description": self.description,
        }


class CaptchaQuestion(Base):
    __tablename__ = "captcha_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question = Column(String, nullable=False)
    answer = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
