"""Launch the Streamlit UI: ``python -m sheet_tracker``."""

import sys
from pathlib import Path

from streamlit.web import cli as stcli


def run() -> None:  # pragma: no cover - process entry point
    app = Path(__file__).with_name("app.py")
    sys.argv = ["streamlit", "run", str(app)]
    sys.exit(stcli.main())


if __name__ == "__main__":  # pragma: no cover
    run()
