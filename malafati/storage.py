"""
Database reads and writes used by the routes and the folder service.

Every function takes the SQLAlchemy session as its first argument.
"""
import logging

from sqlalchemy import func

from .models import CaptchaQuestion, File, Student, Subject, Teacher

logger = logging.getLogger(__name__)


# ============ Teachers ============

def get_teacher(db, teacher_id):
    return db.get(Teacher, teacher_id)


def get_teacher_by_link_code(db, link_code):
    if not link_code:
        return None
    return db.query(Teacher).filter(Teacher.link_code == link_code).first()


def update_teacher(db, teacher_id, **fields):
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise LookupError(f"Teacher {teacher_id} not found")
    for key, value in fields.items():
        setattr(teacher, key, value)
    db.commit()
    return teacher


def get_teacher_subjects(db, teacher_id):
    teacher = db.get(Teacher, teacher_id)
    return list(teacher.subjects) if teacher else []


def get_teacher_stats(db, teacher_id):
    total_students = db.query(func.count(Student.id)).filter(
        Student.teacher_id == teacher_id, Student.is_active.is_(True)
    ).scalar()
    folders_created = db.query(func.count(Student.id)).filter(
        Student.teacher_id == teacher_id,
        Student.is_active.is_(True),
        Student.folder_created.is_(True),
    ).scalar()
    total_files = db.query(func.count(File.id)).filter(
        File.teacher_id == teacher_id, File.is_active.is_(True)
    ).scalar()
    return {
        "totalStudents": total_students,
        "foldersCreated": folders_created,
        "pendingFolders": total_students - folders_created,
        "totalFiles": total_files,
        "subjects": [s.name_ar for s in get_teacher_subjects(db, teacher_id)],
    }


def get_student_file_counts(db, teacher_id):
    rows = (
        db.query(Student.id, func.count(File.id))
        .outerjoin(File, (File.student_civil_id == Student.civil_id) & File.is_active.is_(True))
        .filter(Student.teacher_id == teacher_id, Student.is_active.is_(True))
        .group_by(Student.id)
        .all()
    )
    return [{"studentId": sid, "fileCount": count} for sid, count in rows]


# ============ Students ============

def get_student(db, student_id):
    return db.get(Student, student_id)


def get_student_by_civil_id(db, civil_id):
    return db.query(Student).filter(
        Student.civil_id == civil_id, Student.is_active.is_(True)
    ).first()


def get_students_by_teacher(db, teacher_id):
    return (
        db.query(Student)
        .filter(Student.teacher_id == teacher_id, Student.is_active.is_(True))
        .order_by(Student.student_name)
        .all()
    )


def list_students_needing_folders(db, teacher_id):
    """Active students of a teacher whose Drive folders were never created.

    Students already flagged ``folder_created`` are excluded here and are
    never retried, even if their folder was removed from Drive since.
    """
    return (
        db.query(Student)
        .filter(
            Student.teacher_id == teacher_id,
            Student.is_active.is_(True),
            Student.folder_created.is_(False),
        )
        .order_by(Student.id)
        .all()
    )


def create_student(db, teacher_id, civil_id, student_name, grade, class_number, subject_ids=()):
    student = Student(
        teacher_id=teacher_id,
        civil_id=civil_id,
        student_name=student_name,
        grade=grade,
        class_number=class_number,
        folder_created=False,
        is_active=True,
    )
    db.add(student)
    db.flush()
    set_student_subjects(db, student.id, subject_ids, commit=False)
    db.commit()
    return student


def update_student(db, student_id, **fields):
    student = db.get(Student, student_id)
    if student is None:
        raise LookupError(f"Student {student_id} not found")
    for key, value in fields.items():
        setattr(student, key, value)
    db.commit()
    return student


def mark_folder_created(db, student_id, folder_id):
    return update_student(db, student_id, folder_created=True, drive_folder_id=folder_id)


def delete_student(db, student_id):
    """Soft delete; the row and its Drive folder handle are kept."""
    return update_student(db, student_id, is_active=False)


def get_student_subjects(db, student_id):
    student = db.get(Student, student_id)
    if student is None:
        return []
    return [s.name_ar for s in student.subjects]


def set_student_subjects(db, student_id, subject_ids, commit=True):
    student = db.get(Student, student_id)
    subject_ids = list(subject_ids)
    subjects = db.query(Subject).filter(Subject.id.in_(subject_ids)).all() if subject_ids else []
    student.subjects = subjects
    if commit:
        db.commit()
    return subjects


# ============ Subjects ============

def get_all_subjects(db):
    return db.query(Subject).order_by(Subject.id).all()


def get_subject_by_name(db, name):
    return db.query(Subject).filter(Subject.name_ar == name).first()


def resolve_teacher_subjects(db, teacher_id, names):
    """Map subject names to ids, rejecting any the teacher does not teach.

    Returns (ids, invalid_name). invalid_name is None when all names are valid.
    """
    allowed = {s.name_ar: s.id for s in get_teacher_subjects(db, teacher_id)}
    ids = []
    for name in names:
        if name not in allowed:
            return [], name
        ids.append(allowed[name])
    return ids, None


def complete_onboarding(db, teacher_id, school_name, subject_names):
    """Set the teacher's school and replace their subjects by name.

    Subject names that do not exist yet are created.
    """
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise LookupError(f"Teacher {teacher_id} not found")

    subjects = []
    for name in subject_names:
        subject = get_subject_by_name(db, name)
        if subject is None:
            subject = Subject(name_ar=name)
            db.add(subject)
            db.flush()
            logger.info("Created subject %s", name)
        if subject not in subjects:
            subjects.append(subject)

    teacher.school_name = school_name
    teacher.subjects = subjects
    db.commit()
    return teacher


# ============ Files ============

def create_file(db, **fields):
    record = File(**fields)
    db.add(record)
    db.commit()
    return record


def get_files_by_student(db, civil_id, teacher_id):
    return (
        db.query(File)
        .filter(
            File.student_civil_id == civil_id,
            File.teacher_id == teacher_id,
            File.is_active.is_(True),
        )
        .order_by(File.upload_date.desc(), File.id.desc())
        .all()
    )


# ============ Captcha ============

def get_random_captcha(db):
    return (
        db.query(CaptchaQuestion)
        .filter(CaptchaQuestion.is_active.is_(True))
        .order_by(func.random())
        .first()
    )


def get_captcha(db, captcha_id):
    return db.get(CaptchaQuestion, captcha_id)
