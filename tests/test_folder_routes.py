"""
Test: Drive folder endpoints (root link, batch and single-student creation).
"""
from malafati import storage
from malafati.services.folder_service import teacher_locks

MATH = "رياضيات"


class TestDriveLink:
    def test_saves_folder_id_from_link(self, client, db, teacher, auth_headers):
        resp = client.post(
            f"/api/teacher/{teacher.id}/drive-link",
            json={"driveFolderLink": "https://drive.google.com/drive/folders/NEWROOT?usp=sharing"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["folderUrl"] == "https://drive.google.com/drive/folders/NEWROOT"
        db.expire_all()
        assert storage.get_teacher(db, teacher.id).drive_folder_id == "NEWROOT"

    def test_empty_string_clears(self, client, db, teacher, auth_headers):
        resp = client.post(f"/api/teacher/{teacher.id}/drive-link", json={"driveFolderLink": ""},
                           headers=auth_headers)
        assert resp.status_code == 200
        db.expire_all()
        assert storage.get_teacher(db, teacher.id).drive_folder_id is None

    def test_missing_link(self, client, teacher, auth_headers):
        resp = client.post(f"/api/teacher/{teacher.id}/drive-link", json={}, headers=auth_headers)
        assert resp.status_code == 400

    def test_invalid_link(self, client, teacher, auth_headers):
        resp = client.post(f"/api/teacher/{teacher.id}/drive-link",
                           json={"driveFolderLink": "https://example.com/page"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid Google Drive folder link"


class TestCreateStudentFolders:
    def test_two_student_class(self, client, db, teacher, make_student, fake_drive, auth_headers):
        make_student(teacher, "Ahmed", "123")
        make_student(teacher, "Sara", "456", subjects=[MATH])

        resp = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers)

        assert resp.status_code == 200
        data = resp.get_json()
        assert (data["created"], data["failed"], data["skipped"], data["total"]) == (2, 0, 0, 2)
        assert data["success"] is True
        assert data["errors"] == []
        assert data["instructions"]["steps"]
        assert sorted(fake_drive.children("R1")) == ["Ahmed - 123", "Sara - 456"]

        calls_before = fake_drive.total_calls
        again = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers)
        assert again.status_code == 400
        assert again.get_json()["error"] == "No new students found or all folders already created"
        assert fake_drive.total_calls == calls_before

    def test_partial_failure_reported(self, client, db, teacher, make_student, fake_drive, auth_headers):
        make_student(teacher, "Ahmed", "123")
        make_student(teacher, "Sara", "456")
        fake_drive.fail_names.add("Sara - 456")

        data = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers).get_json()

        assert (data["created"], data["failed"]) == (1, 1)
        assert data["success"] is False
        assert len(data["errors"]) == 1
        assert data["errors"][0].startswith("Sara: ")

    def test_errors_truncated_to_ten(self, client, db, teacher, make_student, fake_drive, auth_headers):
        for i in range(12):
            make_student(teacher, f"S{i}", f"{i:03d}")
            fake_drive.fail_names.add(f"S{i} - {i:03d}")

        data = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers).get_json()

        assert data["failed"] == 12
        assert len(data["errors"]) == 10

    def test_root_not_configured(self, client, make_teacher, make_student, fake_drive):
        from malafati.auth import create_token

        teacher = make_teacher(drive_folder_id=None)
        make_student(teacher, "Ahmed", "123")
        headers = {"Authorization": f"Bearer {create_token(teacher.id, secret='test-secret')}"}

        resp = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "drive_not_configured"
        assert fake_drive.total_calls == 0

    def test_drive_not_connected(self, client, make_teacher, make_student, fake_drive):
        from malafati.auth import create_token

        teacher = make_teacher(access_token=None)
        make_student(teacher, "Ahmed", "123")
        headers = {"Authorization": f"Bearer {create_token(teacher.id, secret='test-secret')}"}

        resp = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "drive_not_configured"

    def test_no_students(self, client, teacher, fake_drive, auth_headers):
        resp = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers)
        assert resp.status_code == 400

    def test_overlapping_run_rejected(self, client, teacher, make_student, fake_drive, auth_headers):
        make_student(teacher, "Ahmed", "123")
        with teacher_locks.hold(teacher.id):
            resp = client.post(f"/api/teacher/{teacher.id}/create-student-folders", headers=auth_headers)
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "batch_in_progress"
        assert fake_drive.total_calls == 0


class TestCreateSingleFolder:
    def test_creates_folder(self, client, db, teacher, make_student, fake_drive, auth_headers):
        sara = make_student(teacher, "Sara", "456", subjects=[MATH])

        resp = client.post(f"/api/student/{sara.id}/folder", headers=auth_headers)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["folderId"] == fake_drive.find("Sara - 456", "R1")
        assert data["folderUrl"].endswith(data["folderId"])
        db.expire_all()
        assert storage.get_student(db, sara.id).folder_created

    def test_already_created(self, client, teacher, make_student, fake_drive, auth_headers):
        sara = make_student(teacher, "Sara", "456", folder_created=True, drive_folder_id="F1")
        resp = client.post(f"/api/student/{sara.id}/folder", headers=auth_headers)
        assert resp.status_code == 400
        assert fake_drive.total_calls == 0

    def test_drive_failure(self, client, db, teacher, make_student, fake_drive, auth_headers):
        sara = make_student(teacher, "Sara", "456")
        fake_drive.fail_names.add("Sara - 456")

        resp = client.post(f"/api/student/{sara.id}/folder", headers=auth_headers)

        assert resp.status_code == 502
        assert resp.get_json()["code"] == "folder_path_failed"
        db.expire_all()
        assert not storage.get_student(db, sara.id).folder_created

    def test_transport_error_reported(self, client, db, teacher, make_student, fake_drive,
                                      monkeypatch, auth_headers):
        sara = make_student(teacher, "Sara", "456")

        def timed_out(file_id, role="reader"):
            raise TimeoutError("timed out")

        monkeypatch.setattr(fake_drive, "share_with_anyone", timed_out)
        resp = client.post(f"/api/student/{sara.id}/folder", headers=auth_headers)

        assert resp.status_code == 502
        assert resp.get_json() == {"error": "timed out", "code": "drive_request_failed"}
        db.expire_all()
        assert not storage.get_student(db, sara.id).folder_created
