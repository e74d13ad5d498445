#!/usr/bin/env python
"""
Command line entry point for the CareHub backend.  It points Django at
``carehub.settings`` and hands over to the management utility, so
``python manage.py migrate`` / ``runserver`` / ``expire_prescriptions``
all work from the repository root.
"""
import os
import sys


def main() -> None:
    """Run administrative tasks for the CareHub project."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'carehub.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
