import os

from plantscout.core import uploads


class DummyFileStorage:
    def __init__(self, filename, content=b"data"):
        self.filename = filename
        self.content = content

    def save(self, path):
        with open(path, "wb") as handle:
            handle.write(self.content)


def test_extension_checks():
    assert uploads.extension_of("Report.PDF") == "pdf"
    assert uploads.extension_of("noextension") == ""
    assert uploads.is_allowed("visit.docx", uploads.VISIT_EXTENSIONS)
    assert not uploads.is_allowed("photo.png", uploads.VISIT_EXTENSIONS)
    assert uploads.is_allowed("photo.png", uploads.PROJECT_EXTENSIONS)


def test_stored_name_keeps_only_extension():
    name = uploads.stored_name_for("../../etc/passwd.pdf")
    assert name.endswith(".pdf")
    assert "/" not in name
    assert uploads.stored_name_for("README").endswith(".bin")


def test_save_and_remove_visit_files(tmp_path):
    directory = uploads.visit_files_path("visit-1", base_path=str(tmp_path))
    stored = uploads.save_upload(DummyFileStorage("notes.pdf"), directory)

    assert os.path.exists(os.path.join(directory, stored))

    uploads.remove_visit_files("visit-1", base_path=str(tmp_path))
    assert not os.path.exists(directory)


def test_remove_missing_directory_is_noop(tmp_path):
    uploads.remove_project_files("missing", base_path=str(tmp_path))
    assert not os.path.exists(os.path.join(str(tmp_path), "projects", "missing"))
