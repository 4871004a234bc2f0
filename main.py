"""
main.py — theory exam server entry point
"""

import logging
import socket
import sys
import threading
import time
import traceback
import webbrowser

from config import DEFAULT_HOST, DEFAULT_PORT, LOG_FILE, OPEN_BROWSER

# ── Logging ──────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # log file locked: console only
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── Server and network helpers ───────────────────────────────────────────────

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]

def _wait_for_server(port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Starting uvicorn on port {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.error(f"Server crashed:\n{traceback.format_exc()}")

# ── Main ─────────────────────────────────────────────────────────────────────

def main() -> None:
    logger.info("=== Driving Licence Theory Exam started ===")

    port = DEFAULT_PORT or _find_free_port()
    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if not _wait_for_server(port):
        logger.error("Server did not come up in time. Is another instance holding the port?")
        sys.exit(1)

    url = f"http://{DEFAULT_HOST}:{port}"
    logger.info(f"Server ready at {url}")
    if OPEN_BROWSER:
        webbrowser.open(url)

    # keep the main thread alive
    try:
        while server_thread.is_alive():
            time.sleep(10)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")


if __name__ == "__main__":
    main()
