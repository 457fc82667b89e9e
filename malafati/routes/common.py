"""
Helpers shared by the route blueprints.
"""
from flask import abort, jsonify

from .. import storage
from ..auth import owns_teacher
from ..db import get_session
from ..errors import MalafatiError

CIVIL_ID_LENGTH = 10


def error_response(e):
    """JSON response for a domain error, using its status and code."""
    if isinstance(e, MalafatiError):
        return jsonify(e.to_dict()), e.status
    return jsonify({"error": str(e)}), 500


def load_teacher(teacher_id):
    """Fetch the teacher in the URL, enforcing that the caller is that teacher."""
    if not owns_teacher(teacher_id):
        abort(403)
    teacher = storage.get_teacher(get_session(), teacher_id)
    if teacher is None:
        abort(404)
    return teacher


def load_student(student_id, teacher_id=None):
    """Fetch an active student owned by the caller (and ``teacher_id`` if given)."""
    student = storage.get_student(get_session(), student_id)
    if student is None or not student.is_active:
        abort(404)
    if teacher_id is not None and student.teacher_id != teacher_id:
        abort(404)
    if not owns_teacher(student.teacher_id):
        abort(403)
    return student


def validate_student_payload(data):
    """Return (fields, error_message) for a create/update student body."""
    data = data or {}
    civil_id = str(data.get("civilId", "")).strip()
    student_name = str(data.get("studentName", "")).strip()
    grade = str(data.get("grade", "")).strip()
    class_number = data.get("classNumber")
    subjects = data.get("subjects")

    if len(civil_id) != CIVIL_ID_LENGTH or not civil_id.isdigit():
        return None, f"civilId must be {CIVIL_ID_LENGTH} digits"
    if not student_name:
        return None, "studentName is required"
    if not grade:
        return None, "grade is required"
    if isinstance(class_number, bool) or not isinstance(class_number, int) or class_number <= 0:
        return None, "classNumber must be a positive integer"
    if not isinstance(subjects, list) or not subjects:
        return None, "At least one subject is required"

    return {
        "civil_id": civil_id,
        "student_name": student_name,
        "grade": grade,
        "class_number": class_number,
        "subjects": [str(s).strip() for s in subjects],
    }, None
