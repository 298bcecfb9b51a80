import logging
import sys
import tkinter as tk
from tkinter import messagebox

from fleetmaint.config import APP_NAME, LOG_FORMAT, LOG_LEVEL
from fleetmaint.repository import FleetRepo
from fleetmaint.session import Session
from fleetmaint.storage import BlobStore, StorageError, get_data_dir
from fleetmaint.ui import AppUI

log = logging.getLogger("fleetmaint")


def main() -> int:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    data_dir = get_data_dir()
    log.info("data directory: %s", data_dir)
    blobs = BlobStore(data_dir)
    repo = FleetRepo(blobs)

    root = tk.Tk()
    try:
        repo.load()
        session = Session(blobs)
    except StorageError as exc:
        log.error("cannot open fleet data: %s", exc)
        root.withdraw()
        messagebox.showerror(APP_NAME, f"Cannot open fleet data in {data_dir}.\n\n{exc}")
        root.destroy()
        return 1

    app = AppUI(root, repo, session)
    if not session.is_authenticated:
        root.after(0, app.show_login)
    root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
