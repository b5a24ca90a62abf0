"""
PATH: manage.py

Django management entrypoint.

Settings resolution:
- DJANGO_SETTINGS_MODULE set to a concrete module is respected
  (production sets backend.settings.prod explicitly).
- Unset, or pointing at the "backend.settings" package, resolves to
  backend.settings.test for `manage.py test` and backend.settings.dev otherwise.
"""

from __future__ import annotations

import os
import sys


def _ensure_settings_module(argv: list[str]) -> None:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()
    if current and current != "backend.settings":
        return

    command = argv[1] if len(argv) > 1 else ""
    if command == "test":
        os.environ["DJANGO_SETTINGS_MODULE"] = "backend.settings.test"
    else:
        os.environ["DJANGO_SETTINGS_MODULE"] = "backend.settings.dev"


def main() -> None:
    _ensure_settings_module(sys.argv)

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
