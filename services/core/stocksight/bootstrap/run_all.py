"""
One-command launcher for StockSight.

Starts the backend API and the Streamlit UI, then waits for Ctrl+C.

Usage:
    python -m stocksight.bootstrap.run_all
    python -m stocksight.bootstrap.run_all --keys KEY1,KEY2 --no_browser
"""

import argparse
import os
import signal
import subprocess
import sys
import time
import urllib.error
import urllib.request
import webbrowser
from pathlib import Path


CORE_DIR = Path(__file__).parent.parent.parent  # services/core
UI_FILE = CORE_DIR.parent / "ui" / "streamlit_app.py"


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="StockSight - One Command Bootstrap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m stocksight.bootstrap.run_all
  python -m stocksight.bootstrap.run_all --keys KEY1,KEY2,KEY3
  python -m stocksight.bootstrap.run_all --api_port 9000 --no_browser
        """
    )
    parser.add_argument(
        "--keys",
        default=None,
        help="Comma-separated Alpha Vantage API keys (default: ALPHAVANTAGE_API_KEYS from env/.env)"
    )
    parser.add_argument(
        "--api_port",
        type=int,
        default=8080,
        help="FastAPI port (default: 8080)"
    )
    parser.add_argument(
        "--ui_port",
        type=int,
        default=8501,
        help="Streamlit port (default: 8501)"
    )
    parser.add_argument(
        "--no_browser",
        action="store_true",
        help="Don't open browser automatically"
    )
    return parser.parse_args(argv)


def backend_env(args, base_env=None) -> dict:
    """Environment for the backend process; --keys overrides configured keys."""
    env = dict(os.environ if base_env is None else base_env)
    if args.keys:
        keys = [k.strip() for k in args.keys.split(",") if k.strip()]
        env["ALPHAVANTAGE_API_KEYS"] = ",".join(keys)
    return env


def _popen_kwargs(env: dict, cwd: Path | None = None) -> dict:
    kwargs = {"env": env}
    if cwd is not None:
        kwargs["cwd"] = str(cwd)
    # Use CREATE_NEW_PROCESS_GROUP on Windows for clean shutdown
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    return kwargs


def start_backend(args):
    """Start FastAPI backend as subprocess."""
    print(f"\n🚀 Starting backend API on port {args.api_port}...")
    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "stocksight.main:app",
        "--host",
        "127.0.0.1",
        "--port",
        str(args.api_port),
    ]
    process = subprocess.Popen(cmd, **_popen_kwargs(backend_env(args), cwd=CORE_DIR))
    print(f"   PID: {process.pid}")
    return process


def start_ui(api_port: int, ui_port: int):
    """Start Streamlit UI as subprocess."""
    print(f"\n🖥️  Starting Streamlit UI on port {ui_port}...")
    env = os.environ.copy()
    env["API_BASE"] = f"http://localhost:{api_port}"
    cmd = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(UI_FILE),
        "--server.port",
        str(ui_port),
        "--server.headless",
        "true",
    ]
    process = subprocess.Popen(cmd, **_popen_kwargs(env))
    print(f"   PID: {process.pid}")
    return process


def wait_for_url(url: str, max_retries: int = 20, delay: float = 1.0) -> bool:
    """Poll url until it answers 200 or retries run out."""
    for i in range(max_retries):
        try:
            with urllib.request.urlopen(url, timeout=2) as response:
                if response.status == 200:
                    print(f"✓ {url} ready after {i + 1} attempts")
                    return True
        except (urllib.error.URLError, OSError):
            pass
        if i < max_retries - 1:
            time.sleep(delay)
    print(f"✗ {url} not ready after {max_retries} attempts")
    return False


def _stop(process, name: str) -> None:
    if process is None or process.poll() is not None:
        return
    print(f"   Stopping {name}...")
    try:
        if sys.platform == "win32":
            process.send_signal(signal.CTRL_BREAK_EVENT)
        else:
            process.terminate()
        process.wait(timeout=5)
    except (OSError, subprocess.TimeoutExpired) as e:
        print(f"   Force killing {name}: {e}")
        process.kill()


def cleanup_processes(backend_process, ui_process):
    """Terminate both processes cleanly, UI first."""
    print("\n\n🛑 Shutting down...")
    _stop(ui_process, "UI")
    _stop(backend_process, "backend")
    print("✓ Shutdown complete")


def main(argv=None):
    """Main bootstrap entry point."""
    args = parse_args(argv)

    print("=" * 60)
    print("📈 STOCKSIGHT - ONE COMMAND BOOTSTRAP")
    print("=" * 60)

    backend_process = None
    ui_process = None

    try:
        backend_process = start_backend(args)
        print("\n⏳ Waiting for backend to be ready...")
        if not wait_for_url(f"http://localhost:{args.api_port}/health"):
            print("\n✗ Backend failed to start. Check logs above.")
            return 1

        ui_process = start_ui(args.api_port, args.ui_port)
        print("\n⏳ Waiting for UI to be ready...")
        if not wait_for_url(f"http://localhost:{args.ui_port}", max_retries=15):
            print("\n✗ UI failed to start. Check logs above.")
            return 1

        ui_url = f"http://localhost:{args.ui_port}"
        if not args.no_browser:
            print(f"\n🌐 Opening browser: {ui_url}")
            webbrowser.open(ui_url)

        print("\n" + "=" * 60)
        print("✅ STOCKSIGHT IS RUNNING")
        print("=" * 60)
        print(f"\n🔗 UI:      {ui_url}")
        print(f"🔗 API:     http://localhost:{args.api_port}")
        print(f"🔗 Docs:    http://localhost:{args.api_port}/docs")
        print("\n⌨️  Press CTRL+C to stop")

        while True:
            time.sleep(1)
            if backend_process.poll() is not None:
                print("\n✗ Backend process died unexpectedly")
                break
            if ui_process.poll() is not None:
                print("\n✗ UI process died unexpectedly")
                break

    except KeyboardInterrupt:
        print("\n\n⌨️  Received Ctrl+C")

    finally:
        cleanup_processes(backend_process, ui_process)

    return 0


if __name__ == "__main__":
    sys.exit(main())
