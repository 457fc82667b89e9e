"""
Drive Folder Routes for Malafati.
Handles the teacher's Drive root folder and creation of student folders,
one student at a time or in batch.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from .. import storage
from ..db import get_session
from ..errors import MalafatiError
from ..services import drive_client, folder_service
from .common import error_response, load_student, load_teacher

folder_bp = Blueprint('folders', __name__)
logger = logging.getLogger(__name__)


def _provisioning_options():
    cfg = current_app.config
    return {
        "default_subject": cfg["DEFAULT_SUBJECT"],
        "category_folders": cfg["FOLDER_CATEGORY_SUBFOLDERS"],
    }


@folder_bp.route('/api/teacher/<int:teacher_id>/drive-link', methods=['POST'])
def save_drive_link(teacher_id):
    """
    Set the teacher's Drive root folder from a folder link.
    An empty string clears it.
    """
    teacher = load_teacher(teacher_id)
    try:
        db = get_session()
        data = request.get_json(silent=True) or {}
        link = data.get('driveFolderLink')

        if link == "":
            teacher = storage.update_teacher(db, teacher.id, drive_folder_id=None)
            return jsonify({"message": "Drive folder link cleared successfully", "teacher": teacher.to_dict()})

        if not link or not isinstance(link, str):
            return jsonify({"error": "Drive folder link is required"}), 400

        folder_id = drive_client.extract_folder_id(link)
        if not folder_id:
            return jsonify({"error": "Invalid Google Drive folder link"}), 400

        teacher = storage.update_teacher(db, teacher.id, drive_folder_id=folder_id)
        return jsonify({
            "message": "Drive folder link saved successfully",
            "teacher": teacher.to_dict(),
            "folderUrl": drive_client.folder_url(folder_id),
        })

    except Exception as e:
        logger.error("Error saving drive link: %s", e)
        return jsonify({"error": "Failed to save drive link"}), 500


@folder_bp.route('/api/teacher/<int:teacher_id>/create-student-folders', methods=['POST'])
def create_student_folders(teacher_id):
    """
    Create Drive folders for every active student that has none yet.
    Returns counts plus a truncated list of per-student errors.
    """
    teacher = load_teacher(teacher_id)
    try:
        db = get_session()
        cfg = current_app.config

        if not teacher.drive_folder_id:
            return jsonify({"error": "Google Drive folder not configured", "code": "drive_not_configured"}), 400

        if not storage.list_students_needing_folders(db, teacher.id):
            return jsonify({"error": "No new students found or all folders already created"}), 400

        drive = drive_client.get_drive_client(teacher)
        report = folder_service.create_folders_for_teacher(
            db, teacher, drive,
            chunk_size=cfg["FOLDER_BATCH_SIZE"],
            delay=cfg["FOLDER_BATCH_DELAY"],
            **_provisioning_options(),
        )

        details = []
        if report.created > 0:
            details.append(f"تم إنشاء {report.created} مجلد جديد")
        if report.skipped > 0:
            details.append(f"تم تخطي {report.skipped} مجلد موجود مسبقاً")
        if report.failed > 0:
            details.append(f"فشل في إنشاء {report.failed} مجلد")

        response = report.to_dict(max_errors=cfg["MAX_REPORTED_ERRORS"])
        response.update({
            "message": f"تم تجهيز {report.created} مجلد للطلاب بنجاح",
            "details": details,
            "instructions": folder_service.sharing_instructions(teacher),
        })
        return jsonify(response)

    except MalafatiError as e:
        logger.warning("Folder creation rejected for teacher %s: %s", teacher_id, e)
        return error_response(e)
    except Exception as e:
        logger.error("Error creating student folders: %s", e)
        return jsonify({"error": "Failed to create student folders"}), 500


@folder_bp.route('/api/student/<int:student_id>/folder', methods=['POST'])
def create_student_folder(student_id):
    """Create the Drive folder tree for a single student."""
    student = load_student(student_id)
    try:
        db = get_session()
        teacher = storage.get_teacher(db, student.teacher_id)

        if not teacher.drive_folder_id:
            return jsonify({"error": "Google Drive folder not configured", "code": "drive_not_configured"}), 400

        if student.folder_created:
            return jsonify({"error": "مجلد الطالب موجود مسبقاً"}), 400

        drive = drive_client.get_drive_client(teacher)
        result = folder_service.create_folder_for_student(
            db, teacher, student, drive, **_provisioning_options()
        )
        if not result.success:
            return jsonify({"error": result.error, "code": result.code}), 502

        subject_count = len(folder_service.subject_folder_names(
            storage.get_student_subjects(db, student.id), current_app.config["DEFAULT_SUBJECT"]
        ))
        return jsonify({
            "success": True,
            "message": f"تم إنشاء مجلد الطالب {student.student_name} بنجاح مع {subject_count} مادة",
            "folderId": result.folder_id,
            "folderUrl": drive_client.folder_url(result.folder_id),
        })

    except MalafatiError as e:
        return error_response(e)
    except Exception as e:
        logger.error("Error creating student folder: %s", e)
        return jsonify({"error": "فشل إنشاء مجلد الطالب"}), 500
