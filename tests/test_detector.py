import hashlib

from conftest import append_csv, write_csv
from datatransfer.detector import fingerprint, has_changed


def test_fingerprint_is_sha256_of_content(tmp_path):
    path = write_csv(tmp_path / "M1.csv", [["A1", "d", "OK", "1"]])
    assert fingerprint(path) == hashlib.sha256(path.read_bytes()).hexdigest()
    assert fingerprint(path, chunk_size=3) == fingerprint(path)


def test_any_byte_change_changes_the_fingerprint(tmp_path):
    path = write_csv(tmp_path / "M1.csv", [["A1", "d", "OK", "1"]])
    before = fingerprint(path)
    assert not has_changed(path, before)

    append_csv(path, [[]])
    assert has_changed(path, before)
    assert has_changed(path, None)


def test_unreadable_file(tmp_path):
    missing = tmp_path / "gone.csv"
    assert fingerprint(missing) is None
    assert has_changed(missing, None) is False
