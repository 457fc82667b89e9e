"""
Student Routes for Malafati.
Handles the teacher profile, students, subjects, stats and file uploads
into each student's Drive folder.
"""
import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from .. import storage
from ..config import FILE_CATEGORIES, MAX_UPLOAD_FILES
from ..db import get_session
from ..errors import DriveNotConfiguredError, MalafatiError
from ..services import drive_client, folder_service
from .common import error_response, load_student, load_teacher, validate_student_payload

student_bp = Blueprint('students', __name__)
logger = logging.getLogger(__name__)


# ============ Teacher ============

@student_bp.route('/api/teacher/<int:teacher_id>', methods=['GET'])
def get_teacher(teacher_id):
    teacher = load_teacher(teacher_id)
    return jsonify(teacher.to_dict())


@student_bp.route('/api/teacher/<int:teacher_id>/stats', methods=['GET'])
def get_teacher_stats(teacher_id):
    load_teacher(teacher_id)
    try:
        return jsonify(storage.get_teacher_stats(get_session(), teacher_id))
    except Exception as e:
        logger.error("Error fetching teacher stats: %s", e)
        return jsonify({"error": "Failed to fetch teacher stats"}), 500


@student_bp.route('/api/teacher/<int:teacher_id>/student-file-counts', methods=['GET'])
def get_student_file_counts(teacher_id):
    load_teacher(teacher_id)
    try:
        return jsonify(storage.get_student_file_counts(get_session(), teacher_id))
    except Exception as e:
        logger.error("Error fetching student file counts: %s", e)
        return jsonify({"error": "Failed to fetch student file counts"}), 500


@student_bp.route('/api/teacher/<int:teacher_id>/subjects', methods=['GET'])
def get_teacher_subjects(teacher_id):
    load_teacher(teacher_id)
    subjects = storage.get_teacher_subjects(get_session(), teacher_id)
    return jsonify([s.to_dict() for s in subjects])


@student_bp.route('/api/subjects', methods=['GET'])
def list_subjects():
    try:
        return jsonify([s.to_dict() for s in storage.get_all_subjects(get_session())])
    except Exception as e:
        logger.error("Error fetching subjects: %s", e)
        return jsonify({"error": "Failed to fetch subjects"}), 500


@student_bp.route('/api/teacher/<int:teacher_id>/onboarding', methods=['POST'])
def complete_onboarding(teacher_id):
    """
    Save the teacher's school name and the subjects they teach.
    Unknown subject names are added to the subject list.
    """
    load_teacher(teacher_id)
    db = get_session()
    data = request.get_json(silent=True) or {}
    school_name = str(data.get('schoolName') or '').strip()
    subject_names = data.get('subjectNames')

    if not isinstance(subject_names, list):
        subject_names = []
    subject_names = [str(s).strip() for s in subject_names if str(s).strip()]
    if not school_name or not subject_names:
        return jsonify({"error": "School name and at least one subject are required."}), 400

    try:
        teacher = storage.complete_onboarding(db, teacher_id, school_name, subject_names)
        result = teacher.to_dict()
        result["subjects"] = [s.to_dict() for s in teacher.subjects]
        return jsonify({"message": "Onboarding completed successfully.", "teacher": result})
    except Exception as e:
        db.rollback()
        logger.error("Error during teacher onboarding: %s", e)
        return jsonify({"error": "Failed to complete onboarding process."}), 500


@student_bp.route('/api/file-categories', methods=['GET'])
def get_file_categories():
    return jsonify(list(FILE_CATEGORIES.values()))


# ============ Students ============

@student_bp.route('/api/teacher/<int:teacher_id>/students', methods=['GET'])
def list_students(teacher_id):
    load_teacher(teacher_id)
    try:
        students = storage.get_students_by_teacher(get_session(), teacher_id)
        return jsonify([s.to_dict() for s in students])
    except Exception as e:
        logger.error("Error fetching students: %s", e)
        return jsonify({"error": "Failed to fetch students"}), 500


@student_bp.route('/api/teacher/<int:teacher_id>/students', methods=['POST'])
def create_student(teacher_id):
    """
    Add a student to the teacher's class.
    Subjects must be ones the teacher teaches. The Drive folder is created
    later, by the folder routes.
    """
    load_teacher(teacher_id)
    db = get_session()
    fields, error = validate_student_payload(request.get_json(silent=True))
    if error:
        return jsonify({"error": error}), 400

    subject_ids, invalid = storage.resolve_teacher_subjects(db, teacher_id, fields.pop("subjects"))
    if invalid is not None:
        return jsonify({"error": f"Invalid subject: {invalid}"}), 400

    try:
        student = storage.create_student(db, teacher_id, subject_ids=subject_ids, **fields)
        return jsonify(student.to_dict()), 201
    except IntegrityError:
        db.rollback()
        return jsonify({"error": "رقم الهوية مسجل مسبقاً. يرجى استخدام رقم هوية آخر."}), 400
    except Exception as e:
        db.rollback()
        logger.error("Error creating student: %s", e)
        return jsonify({"error": "فشل إضافة الطالب"}), 500


@student_bp.route('/api/student/<int:student_id>', methods=['PUT'])
def update_student(student_id):
    """
    Update a student's details and subjects.
    With deleteRemovedSubjectFolders, Drive folders of dropped subjects are
    deleted too (only once the student's folder exists).
    """
    student = load_student(student_id)
    db = get_session()
    data = request.get_json(silent=True) or {}
    fields, error = validate_student_payload(data)
    if error:
        return jsonify({"error": error}), 400

    new_subjects = fields.pop("subjects")
    subject_ids, invalid = storage.resolve_teacher_subjects(db, student.teacher_id, new_subjects)
    if invalid is not None:
        return jsonify({"error": f"Invalid subject: {invalid}"}), 400

    removed = [s for s in storage.get_student_subjects(db, student.id) if s not in new_subjects]
    removed_folders = []

    try:
        if data.get("deleteRemovedSubjectFolders") and removed and student.folder_created:
            teacher = storage.get_teacher(db, student.teacher_id)
            drive = drive_client.get_drive_client(teacher)
            for subject in removed:
                try:
                    if folder_service.delete_subject_folder(drive, teacher, student, subject):
                        removed_folders.append(subject)
                except Exception as e:
                    # Keep going; the database update still applies
                    logger.error("Error deleting subject folder %s: %s", subject, e)

        student = storage.update_student(db, student.id, **fields)
        storage.set_student_subjects(db, student.id, subject_ids)
        result = student.to_dict()
        result["deletedSubjectFolders"] = removed_folders
        return jsonify(result)

    except IntegrityError:
        db.rollback()
        return jsonify({"error": "رقم الهوية مسجل مسبقاً. يرجى استخدام رقم هوية آخر."}), 400
    except Exception as e:
        db.rollback()
        logger.error("Error updating student: %s", e)
        return jsonify({"error": "Failed to update student"}), 500


@student_bp.route('/api/student/<int:student_id>/subjects', methods=['GET'])
def get_student_subjects(student_id):
    student = load_student(student_id)
    return jsonify(storage.get_student_subjects(get_session(), student.id))


def _delete_drive_folder(drive, teacher, student):
    """Delete the student's Drive folder; a Drive failure is logged and ignored."""
    try:
        return folder_service.delete_student_folder(drive, teacher, student)
    except Exception as e:
        logger.error("Error deleting Drive files for Civil ID %s: %s", student.civil_id, e)
        return False


@student_bp.route('/api/teacher/<int:teacher_id>/students', methods=['DELETE'])
def delete_students(teacher_id):
    """
    Soft-delete several students: body {"studentIds": [...]}.
    With ?deleteFiles=true each student's Drive folder is deleted first.
    One student failing never stops the others.
    """
    teacher = load_teacher(teacher_id)
    db = get_session()
    data = request.get_json(silent=True) or {}
    student_ids = data.get('studentIds')
    delete_files = request.args.get('deleteFiles') == 'true'

    if not isinstance(student_ids, list) or not student_ids:
        return jsonify({"error": "Student IDs array is required"}), 400

    drive = drive_client.get_drive_client(teacher) if delete_files else None
    deleted = failed = files_deleted = 0

    for raw_id in student_ids:
        try:
            student = storage.get_student(db, int(raw_id))
            if student is None or not student.is_active or student.teacher_id != teacher.id:
                raise LookupError(f"Student {raw_id} not found")

            if delete_files and student.folder_created and _delete_drive_folder(drive, teacher, student):
                files_deleted += 1

            storage.delete_student(db, student.id)
            deleted += 1
        except Exception as e:
            db.rollback()
            failed += 1
            logger.error("Error deleting student %s: %s", raw_id, e)

    if delete_files:
        message = f"تم حذف {deleted} طالب و{files_deleted} من الملفات بنجاح"
    else:
        message = f"تم حذف {deleted} طالب مع الاحتفاظ بالملفات"

    return jsonify({
        "message": message,
        "deletedCount": deleted,
        "failedCount": failed,
        "filesDeletedCount": files_deleted,
        "total": len(student_ids),
    })


@student_bp.route('/api/teacher/<int:teacher_id>/students/<int:student_id>', methods=['DELETE'])
def delete_student(teacher_id, student_id):
    """
    Soft-delete a student. With ?deleteFiles=true the student's Drive folder
    is deleted as well; a Drive failure does not block the delete.
    """
    teacher = load_teacher(teacher_id)
    student = load_student(student_id, teacher_id=teacher_id)
    delete_files = request.args.get('deleteFiles') == 'true'
    db = get_session()

    files_deleted = False
    if delete_files and student.folder_created:
        files_deleted = _delete_drive_folder(drive_client.get_drive_client(teacher), teacher, student)

    try:
        storage.delete_student(db, student.id)
    except Exception as e:
        db.rollback()
        logger.error("Error deleting student: %s", e)
        return jsonify({"error": "فشل حذف الطالب"}), 500

    return jsonify({
        "message": "تم حذف الطالب والملفات بنجاح" if files_deleted else "تم حذف الطالب مع الاحتفاظ بالملفات",
        "filesDeleted": files_deleted,
    })


# ============ Files ============

@student_bp.route('/api/teacher/<int:teacher_id>/students/<int:student_id>/upload', methods=['POST'])
def upload_student_files(teacher_id, student_id):
    """
    Upload files into <student>/<subject>/<category> in the teacher's Drive.
    Missing folders are created; each file is shared by link and recorded.
    """
    teacher = load_teacher(teacher_id)
    student = load_student(student_id, teacher_id=teacher_id)
    db = get_session()

    uploads = request.files.getlist('files')
    if not uploads:
        return jsonify({"error": "لم يتم رفع أي ملفات"}), 400
    if len(uploads) > MAX_UPLOAD_FILES:
        return jsonify({"error": f"Up to {MAX_UPLOAD_FILES} files per upload"}), 400

    if not teacher.drive_folder_id:
        return jsonify({
            "error": "الرجاء ربط Google Drive وتحديد مجلد رئيسي لحساب المعلم قبل رفع الملفات.",
            "code": "drive_not_configured",
        }), 400

    category = folder_service.clean_segment(request.form.get('category'), FILE_CATEGORIES["OTHER"])
    subjects = storage.get_student_subjects(db, student.id)
    subject = request.form.get('subject') or (subjects[0] if subjects else None)
    subject = folder_service.clean_segment(subject, current_app.config["DEFAULT_SUBJECT"])

    drive = drive_client.get_drive_client(teacher)
    if drive is None:
        return error_response(DriveNotConfiguredError("Google Drive not connected"))

    uploaded_files = []
    errors = []

    for upload in uploads:
        try:
            data = upload.read()
            uploaded = folder_service.upload_student_file(
                drive, teacher, student, subject, category,
                upload.filename, data, upload.mimetype,
                default_subject=current_app.config["DEFAULT_SUBJECT"],
            )
            record = storage.create_file(
                db,
                teacher_id=teacher.id,
                student_civil_id=student.civil_id,
                subject=subject,
                file_category=category,
                original_name=upload.filename,
                drive_file_id=uploaded["id"],
                file_url=uploaded["webViewLink"],
                file_size=len(data),
                file_type=upload.mimetype,
            )
            uploaded_files.append(record.to_dict())
            logger.info("File uploaded to Google Drive: %s", upload.filename)
        except MalafatiError as e:
            logger.error("Google Drive upload error for %s: %s", upload.filename, e)
            errors.append({"fileName": upload.filename, "error": str(e), "code": e.code})
        except Exception as e:
            db.rollback()
            logger.error("Error processing file upload %s: %s", upload.filename, e)
            errors.append({"fileName": upload.filename, "error": "فشل رفع الملف"})

    if not uploaded_files:
        return jsonify({"error": "فشل في رفع جميع الملفات", "errors": errors}), 502

    return jsonify({
        "message": f"تم رفع {len(uploaded_files)} ملف بنجاح للطالب {student.student_name}",
        "uploadedFiles": uploaded_files,
        "errors": errors,
    })


@student_bp.route('/api/teacher/<int:teacher_id>/students/<int:student_id>/files', methods=['GET'])
def list_student_files(teacher_id, student_id):
    load_teacher(teacher_id)
    student = load_student(student_id, teacher_id=teacher_id)
    try:
        files = storage.get_files_by_student(get_session(), student.civil_id, teacher_id)
        return jsonify([f.to_dict() for f in files])
    except Exception as e:
        logger.error("Error fetching student files: %s", e)
        return jsonify({"error": "خطأ في جلب ملفات الطالب"}), 500
