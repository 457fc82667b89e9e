"""
Student Folder Provisioning
===========================

Maps students onto a folder tree in the teacher's Google Drive:

    <teacher root>/
        <student name> - <civil id>/
            <subject>/            (one per subject, "عام" when none)
                <category>/       (created on upload, or up front when configured)

Three layers:
- resolve_folder_path: walk/create one path, reusing folders that exist
- provision_student: build one student's tree and share it by link
- provision_all: run many students in fixed-size concurrent chunks
"""
from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .. import storage
from ..config import (
    DEFAULT_CATEGORY, DEFAULT_SUBJECT, FOLDER_BATCH_DELAY, FOLDER_BATCH_SIZE,
)
from ..errors import (
    BatchInProgressError, DriveNotConfiguredError, DriveRequestError, FolderPathError,
    MalafatiError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningTarget:
    """Detached snapshot of a student, safe to hand to worker threads."""
    student_id: int
    student_name: str
    civil_id: str
    subjects: tuple = ()
    folder_created: bool = False

    @property
    def folder_name(self) -> str:
        return f"{self.student_name} - {self.civil_id}"

    @classmethod
    def from_student(cls, student) -> "ProvisioningTarget":
        return cls(
            student_id=student.id,
            student_name=student.student_name,
            civil_id=student.civil_id,
            subjects=tuple(s.name_ar for s in student.subjects),
            folder_created=bool(student.folder_created),
        )


@dataclass(frozen=True)
class ProvisionResult:
    student_id: int
    student_name: str
    success: bool
    folder_id: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None

    def describe(self) -> str:
        return f"{self.student_name}: {self.error}"


@dataclass
class BatchReport:
    created: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def record(self, result: ProvisionResult) -> None:
        if result.success:
            self.created += 1
        else:
            self.failed += 1
            self.errors.append(result.describe())

    def to_dict(self, max_errors: Optional[int] = None) -> dict:
        errors = self.errors if max_errors is None else self.errors[:max_errors]
        return {
            "success": self.success,
            "created": self.created,
            "failed": self.failed,
            "skipped": self.skipped,
            "total": self.total,
            "errors": errors,
        }


def clean_segment(name, default: str) -> str:
    """Trimmed segment name, or ``default`` when nothing usable is left."""
    name = str(name).strip() if name is not None else ""
    return name or default


def subject_folder_names(subjects: Iterable, default: str = DEFAULT_SUBJECT) -> List[str]:
    names = []
    for subject in subjects or ():
        name = clean_segment(subject, default)
        if name not in names:
            names.append(name)
    return names or [default]


# ============ Resolver ============

def resolve_folder_path(drive, segments: List[str], root_parent_id: Optional[str] = None) -> str:
    """
    Return the id of the folder at ``segments`` below ``root_parent_id``.

    Each segment reuses the first non-trashed folder with the same name under
    the current parent, and is created only when none exists. Not safe against
    a concurrent caller resolving the same path; callers serialize per teacher.

    Raises:
        FolderPathError: if the path is empty or any list/create call fails
    """
    if not segments:
        raise FolderPathError("Folder path is empty")

    parent_id = root_parent_id
    for segment in segments:
        name = str(segment).strip() if segment is not None else ""
        if not name:
            raise FolderPathError("Folder path contains an empty segment")
        try:
            existing = drive.list_folders(name, parent_id)
            if existing:
                parent_id = existing[0]["id"]
                continue
            parent_id = drive.create_folder(name, parent_id)
        except Exception as e:
            raise FolderPathError(f"Failed to resolve folder path: {e}") from e

    if not parent_id:
        raise FolderPathError("Failed to resolve folder path")
    return parent_id


# ============ Provisioner ============

def provision_student(drive, target: ProvisioningTarget, root_folder_id: Optional[str],
                      default_subject: str = DEFAULT_SUBJECT,
                      category_folders: Iterable[str] = ()) -> ProvisionResult:
    """
    Create (or reuse) one student's folder tree and share it by link.

    Nothing is persisted here; the caller records the returned folder id.
    Drive errors are returned as a failed result, never raised.
    """
    if not root_folder_id:
        return ProvisionResult(
            target.student_id, target.student_name, False,
            error=str(DriveNotConfiguredError()), code=DriveNotConfiguredError.code,
        )

    try:
        folder_id = resolve_folder_path(drive, [target.folder_name], root_folder_id)
        for subject in subject_folder_names(target.subjects, default_subject):
            subject_id = resolve_folder_path(drive, [subject], folder_id)
            for category in category_folders:
                resolve_folder_path(drive, [category], subject_id)
        # Parents open the folder link without a Google account
        drive.share_with_anyone(folder_id, role="reader")
    except MalafatiError as e:
        logger.error("Failed to create folder for Civil ID %s: %s", target.civil_id, e)
        return ProvisionResult(
            target.student_id, target.student_name, False, error=str(e), code=e.code,
        )
    except Exception as e:
        logger.error("Drive error for Civil ID %s: %s", target.civil_id, e)
        return ProvisionResult(
            target.student_id, target.student_name, False,
            error=str(e) or e.__class__.__name__, code=DriveRequestError.code,
        )

    logger.info("Created folder for Civil ID %s with Drive ID %s", target.civil_id, folder_id)
    return ProvisionResult(target.student_id, target.student_name, True, folder_id=folder_id)


# ============ Orchestrator ============

def _settle(future, target: ProvisioningTarget) -> ProvisionResult:
    try:
        return future.result()
    except Exception as e:
        logger.error("Error creating folder for Civil ID %s: %s", target.civil_id, e)
        return ProvisionResult(
            target.student_id, target.student_name, False,
            error=str(e) or e.__class__.__name__, code="unexpected_error",
        )


def provision_all(targets: List[ProvisioningTarget],
                  provision: Callable[[ProvisioningTarget], ProvisionResult],
                  on_success: Optional[Callable[[ProvisionResult], None]] = None,
                  chunk_size: int = FOLDER_BATCH_SIZE,
                  delay: float = FOLDER_BATCH_DELAY,
                  sleep: Callable[[float], None] = time.sleep) -> BatchReport:
    """
    Provision every target, ``chunk_size`` at a time.

    Targets within a chunk run concurrently; the next chunk starts only after
    the whole chunk settled, with ``delay`` seconds in between. Results are
    tallied and ``on_success`` is called on this thread only, in submission
    order. One failing target never stops the batch.
    """
    chunk_size = max(1, int(chunk_size))
    report = BatchReport(total=len(targets))

    work = []
    seen = set()
    for target in targets:
        if target.folder_created or target.student_id in seen:
            report.skipped += 1
            logger.warning("Skipped Civil ID %s - folder already handled", target.civil_id)
            continue
        seen.add(target.student_id)
        work.append(target)

    chunks = [work[i:i + chunk_size] for i in range(0, len(work), chunk_size)]
    logger.info("Starting folder creation for %d students in %d chunks", len(work), len(chunks))

    with concurrent.futures.ThreadPoolExecutor(max_workers=chunk_size) as executor:
        for index, chunk in enumerate(chunks):
            futures = [executor.submit(provision, target) for target in chunk]
            results = [_settle(f, t) for f, t in zip(futures, chunk)]

            for result in results:
                if result.success and on_success is not None:
                    try:
                        on_success(result)
                    except Exception as e:
                        logger.error("Could not record folder for student %s: %s", result.student_id, e)
                        result = ProvisionResult(
                            result.student_id, result.student_name, False,
                            error=f"Folder created but not saved: {e}", code="persist_failed",
                        )
                report.record(result)

            done = min((index + 1) * chunk_size, len(work))
            logger.info("Progress: %d%% - %d/%d students processed",
                        round(done / len(work) * 100), done, len(work))

            if index < len(chunks) - 1 and delay > 0:
                sleep(delay)

    logger.info("Folder creation finished: %d created, %d failed, %d skipped",
                report.created, report.failed, report.skipped)
    return report


# ============ Per-teacher serialization ============

class TeacherLocks:
    """One non-blocking lock per teacher; overlapping runs are rejected."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, teacher_id):
        with self._guard:
            lock = self._locks.setdefault(teacher_id, threading.Lock())
        if not lock.acquire(blocking=False):
            raise BatchInProgressError(teacher_id)
        try:
            yield
        finally:
            lock.release()


teacher_locks = TeacherLocks()


def _require_drive(teacher, drive):
    if not teacher.drive_folder_id:
        raise DriveNotConfiguredError()
    if drive is None:
        raise DriveNotConfiguredError("Google Drive not connected")


def create_folders_for_teacher(db, teacher, drive,
                               chunk_size: int = FOLDER_BATCH_SIZE,
                               delay: float = FOLDER_BATCH_DELAY,
                               default_subject: str = DEFAULT_SUBJECT,
                               category_folders: Iterable[str] = (),
                               sleep: Callable[[float], None] = time.sleep) -> BatchReport:
    """Provision every active student of ``teacher`` whose folder is not created yet."""
    _require_drive(teacher, drive)
    root_folder_id = teacher.drive_folder_id
    category_folders = list(category_folders)

    with teacher_locks.hold(teacher.id):
        students = storage.list_students_needing_folders(db, teacher.id)
        targets = [ProvisioningTarget.from_student(s) for s in students]

        def provision(target):
            return provision_student(drive, target, root_folder_id, default_subject, category_folders)

        def on_success(result):
            storage.mark_folder_created(db, result.student_id, result.folder_id)

        return provision_all(targets, provision, on_success,
                             chunk_size=chunk_size, delay=delay, sleep=sleep)


def create_folder_for_student(db, teacher, student, drive,
                              default_subject: str = DEFAULT_SUBJECT,
                              category_folders: Iterable[str] = ()) -> ProvisionResult:
    _require_drive(teacher, drive)
    with teacher_locks.hold(teacher.id):
        result = provision_student(
            drive, ProvisioningTarget.from_student(student), teacher.drive_folder_id,
            default_subject, list(category_folders),
        )
        if result.success:
            storage.mark_folder_created(db, student.id, result.folder_id)
        return result


# ============ Files and cleanup ============

def upload_student_file(drive, teacher, student, subject, category,
                        file_name: str, data: bytes, mime_type: str,
                        default_subject: str = DEFAULT_SUBJECT) -> dict:
    """Upload into <student>/<subject>/<category>, creating missing folders."""
    _require_drive(teacher, drive)
    segments = [
        student.folder_name,
        clean_segment(subject, default_subject),
        clean_segment(category, DEFAULT_CATEGORY),
    ]
    folder_id = resolve_folder_path(drive, segments, teacher.drive_folder_id)
    uploaded = drive.create_file(folder_id, file_name, data, mime_type)
    drive.share_with_anyone(uploaded["id"], role="reader")
    return uploaded


def _find_student_folder(drive, teacher, student) -> Optional[str]:
    if student.drive_folder_id:
        return student.drive_folder_id
    folders = drive.list_folders(student.folder_name, teacher.drive_folder_id)
    return folders[0]["id"] if folders else None


def delete_student_folder(drive, teacher, student) -> bool:
    """Delete the student's Drive folder. Returns False when none was found."""
    _require_drive(teacher, drive)
    folder_id = _find_student_folder(drive, teacher, student)
    if not folder_id:
        logger.warning("Student folder not found for Civil ID %s", student.civil_id)
        return False
    drive.delete_file(folder_id)
    return True


def delete_subject_folder(drive, teacher, student, subject: str) -> bool:
    _require_drive(teacher, drive)
    folder_id = _find_student_folder(drive, teacher, student)
    if not folder_id:
        return False
    folders = drive.list_folders(subject, folder_id)
    if not folders:
        logger.warning("Subject folder '%s' not found for Civil ID %s", subject, student.civil_id)
        return False
    drive.delete_file(folders[0]["id"])
    return True


def sharing_instructions(teacher) -> Optional[dict]:
    if not teacher.drive_folder_id:
        return None
    return {
        "steps": [
            "افتح Google Drive الخاص بك",
            "انتقل إلى مجلد الطلاب الرئيسي",
            "انقر بزر الماوس الأيمن على مجلد الطالب",
            'اختر "مشاركة"',
            'في إعدادات المشاركة، اختر "أي شخص لديه الرابط يمكنه عرض"',
            "انسخ الرابط واستخدمه لمشاركة الملفات مع أولياء الأمور",
        ],
        "securityNote": 'تأكد من اختيار "عرض فقط" وليس "تحرير" للحفاظ على أمان الملفات',
    }
