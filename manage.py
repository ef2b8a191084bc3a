#!/usr/bin/env python
"""Command line entry point for the radiology workflow backend.

Sets ``radiology.settings`` as the default settings module and hands over to
Django's management utility (``migrate``, ``runserver``, ``seed_admin``,
``reconcile_links`` ...).
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'radiology.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Is it installed and available on your "
            "PYTHONPATH? Did you forget to activate a virtual environment?"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
