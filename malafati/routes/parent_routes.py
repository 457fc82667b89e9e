"""
Parent Access Routes for Malafati.
Teachers share a link code; a parent opens it, answers a captcha question
and enters the child's civil ID to see the child's files.
"""
import logging
import secrets

from flask import Blueprint, current_app, jsonify, request

from .. import storage
from ..db import get_session
from ..services import drive_client
from .common import load_teacher

parent_bp = Blueprint('parent', __name__)
logger = logging.getLogger(__name__)


def generate_link_code():
    """Generate an 8-character link code (e.g., 'K7QX2MPA')."""
    chars = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
    return ''.join(secrets.choice(chars) for _ in range(8))


def _parent_link(code):
    return f"{current_app.config['APP_BASE_URL'].rstrip('/')}/parent/{code}"


def group_files(files):
    """Group file dicts by subject, then by category."""
    grouped = {}
    for f in files:
        subject = f.subject or current_app.config["DEFAULT_SUBJECT"]
        entry = f.to_dict()
        entry["downloadUrl"] = drive_client.file_download_url(f.drive_file_id)
        grouped.setdefault(subject, {}).setdefault(f.file_category, []).append(entry)
    return grouped


# ============ Teacher Endpoints ============

@parent_bp.route('/api/teacher/<int:teacher_id>/parent-link', methods=['POST'])
def create_parent_link(teacher_id):
    """Create (or with ?regenerate=true, replace) the teacher's parent link code."""
    teacher = load_teacher(teacher_id)
    try:
        db = get_session()
        code = teacher.link_code
        if not code or request.args.get('regenerate') == 'true':
            code = generate_link_code()
            while storage.get_teacher_by_link_code(db, code) is not None:
                code = generate_link_code()
            storage.update_teacher(db, teacher.id, link_code=code)

        link = _parent_link(code)
        return jsonify({
            "success": True,
            "linkCode": code,
            "link": link,
            "message": f"رابط أولياء الأمور: {link}",
        })

    except Exception as e:
        logger.error("Error creating parent link: %s", e)
        return jsonify({"error": "Failed to create parent link"}), 500


# ============ Parent Endpoints ============

@parent_bp.route('/api/parent/<code>', methods=['GET'])
def get_parent_landing(code):
    """Teacher info shown on the parent landing page."""
    teacher = storage.get_teacher_by_link_code(get_session(), code)
    if teacher is None:
        return jsonify({"error": "Invalid access link"}), 404
    return jsonify({
        "teacherName": teacher.name,
        "schoolName": teacher.school_name,
    })


@parent_bp.route('/api/captcha', methods=['GET'])
def get_captcha():
    captcha = storage.get_random_captcha(get_session())
    if captcha is None:
        return jsonify({"error": "No captcha questions available"}), 404
    return jsonify({"id": captcha.id, "question": captcha.question})


@parent_bp.route('/api/verify-student', methods=['POST'])
def verify_student():
    """
    Verify a parent and return the child's files.
    Requires the teacher's link code, a correct captcha answer and a civil ID
    belonging to one of that teacher's active students.
    """
    try:
        db = get_session()
        data = request.get_json(silent=True) or {}
        civil_id = str(data.get('civilId', '')).strip()
        link_code = data.get('linkCode')
        captcha_id = data.get('captchaId')
        captcha_answer = str(data.get('captchaAnswer', '')).strip()

        if not civil_id or not link_code or not captcha_id or not captcha_answer:
            return jsonify({"error": "Missing required fields"}), 400

        teacher = storage.get_teacher_by_link_code(db, link_code)
        if teacher is None:
            return jsonify({"error": "Invalid access link"}), 404

        try:
            captcha = storage.get_captcha(db, int(captcha_id))
        except (TypeError, ValueError):
            captcha = None
        if captcha is None or not captcha.is_active or captcha.answer.strip() != captcha_answer:
            return jsonify({"error": "Invalid captcha answer"}), 400

        student = storage.get_student_by_civil_id(db, civil_id)
        if student is None or student.teacher_id != teacher.id:
            return jsonify({"error": "الطالب غير موجود في هذا الفصل"}), 404

        files = storage.get_files_by_student(db, student.civil_id, teacher.id)
        folder_id = student.drive_folder_id if student.folder_created else None
        logger.info("Parent access granted for Civil ID %s", civil_id)

        return jsonify({
            "student": {
                "name": student.student_name,
                "civilId": student.civil_id,
                "grade": student.grade,
                "classNumber": student.class_number,
            },
            "teacher": {"name": teacher.name, "schoolName": teacher.school_name},
            "files": group_files(files),
            "folderUrl": drive_client.folder_url(folder_id) if folder_id else None,
            "qrCodeUrl": drive_client.qr_code_url(folder_id) if folder_id else None,
            "message": f"مرحباً بك، يمكنك الوصول لملفات {student.student_name}",
        })

    except Exception as e:
        logger.error("Error verifying student: %s", e)
        return jsonify({"error": "Failed to verify student"}), 500
