from conftest import write_csv
from health import file_table, tail, untracked_files
from datatransfer.schemas import TransferState


def test_file_table_lists_tracked_files(tmp_path):
    state = TransferState()
    a = state.file_status(str(tmp_path / "B.csv"))
    a.last_processed_line, a.total_processed_lines, a.stalled = 3, 3, True
    state.file_status(str(tmp_path / "A.csv"))

    df = file_table(state)
    assert list(df["file"]) == ["A.csv", "B.csv"]
    assert list(df["state"]) == ["SYNCED", "STALLED"]
    assert df.loc[1, "watermark"] == 3
    assert file_table(TransferState()).empty


def test_untracked_files(tmp_path):
    tracked = write_csv(tmp_path / "A.csv", [])
    write_csv(tmp_path / "B.csv", [])
    state = TransferState()
    state.file_status(str(tracked.resolve()))
    assert untracked_files(state, str(tmp_path)) == ["B.csv"]


def test_tail(tmp_path):
    log = tmp_path / "t.log"
    log.write_text("\n".join(f"line {i}" for i in range(50)) + "\n", encoding="utf-8")
    assert tail(log, 3) == ["line 47", "line 48", "line 49"]
    assert tail(tmp_path / "none.log") == ["<log file not found>"]
