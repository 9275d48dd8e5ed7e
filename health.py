from __future__ import annotations
import os, sys, traceback
from datetime import datetime
from pathlib import Path

import pandas as pd

from datatransfer.schemas import TransferState
from datatransfer.store import ProgressStore
from datatransfer.watcher import list_csv_files

# ---------- Paths ----------
ROOT = Path.cwd()
LOG_PATH = ROOT / "logs" / "transfer.log"
DATA_DIR = ROOT / "data"

def human(n: float) -> str:
    return f"{n:,.0f}"

def file_table(state: TransferState) -> pd.DataFrame:
    rows = [
        {
            "file": Path(path).name,
            "model": fs.product_model,
            "watermark": fs.last_processed_line,
            "sent": fs.total_processed_lines,
            "failed": fs.failed_lines,
            "state": "STALLED" if fs.stalled else "SYNCED",
            "last_processed": fs.last_processed_time,
        }
        for path, fs in state.file_status_map.items()
    ]
    cols = ["file", "model", "watermark", "sent", "failed", "state", "last_processed"]
    return pd.DataFrame(rows, columns=cols).sort_values("file", ignore_index=True)

def untracked_files(state: TransferState, csv_dir: str | None, extension: str = ".csv") -> list[str]:
    tracked = set(state.file_status_map)
    return [f.name for f in list_csv_files(csv_dir, extension) if str(f.resolve()) not in tracked]

def tail(path: Path, lines: int = 20) -> list[str]:
    if not path.exists():
        return ["<log file not found>"]
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            block = 1024
            data = b""
            while size > 0 and data.count(b"\n") <= lines:
                step = min(block, size)
                f.seek(size - step)
                data = f.read(step) + data
                size -= step
        txt = data.decode("utf-8", errors="replace").splitlines()[-lines:]
        return txt if txt else ["<empty>"]
    except OSError:
        return [traceback.format_exc()]

def main():
    data_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else DATA_DIR
    store = ProgressStore(data_dir)
    state = store.load()
    cfg = store.load_config()

    print("="*70)
    print("Inspection Data Transfer — Health Report")
    print(f"As of: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("="*70)

    print(f"\nService running:      {state.running}")
    print(f"Monitored folder:     {cfg.csv_dir or '<not configured>'}")
    print(f"API type:             {cfg.api_type} -> {cfg.api_base_url}")
    print(f"Active file:          {state.file_name or '-'}")
    print(f"Last modified file:   {state.last_modified_file_name or '-'}")
    print(f"Records sent:         {human(state.total_processed_lines)}")
    print(f"Failed batches:       {human(state.failed_lines)}")

    df = file_table(state)
    if df.empty:
        print("\nNo tracked files.")
    else:
        print(f"\nTracked files ({len(df)}):")
        print(df.to_string(index=False))
        stalled = int((df["state"] == "STALLED").sum())
        if stalled:
            print(f"  Stalled files: {stalled}")

    new = untracked_files(state, cfg.csv_dir, cfg.file_extension)
    if new:
        print(f"\nNot yet tracked: {', '.join(new)}")

    print(f"\nLog tail: {LOG_PATH}")
    for line in tail(LOG_PATH, lines=20):
        print("  " + line)

    print("\nDone.\n")

if __name__ == "__main__":
    main()
