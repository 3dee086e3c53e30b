"""Streamlit dashboard for GeoEval."""

import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def run_streamlit_app() -> int:
    """Launch the dashboard with ``streamlit run``; returns the exit code."""
    app_path = Path(__file__).parent / "streamlit_app.py"
    logger.info(f"Launching dashboard from {app_path}")
    try:
        subprocess.run([sys.executable, "-m", "streamlit", "run", str(app_path)], check=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"Failed to launch UI: {e}")
        return e.returncode
    except KeyboardInterrupt:
        print("\nUI stopped by user")
    return 0
