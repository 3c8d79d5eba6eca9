"""Allow ``python -m taskboard_api``."""

from taskboard_api.cli import app

if __name__ == "__main__":
    app()
