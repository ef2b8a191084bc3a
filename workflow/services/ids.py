"""Human-readable identifiers.

Formats are shared with the front-end and the mobile app and must not
change: ``PT-<unixMillis>`` for patients, ``CASE-<unixMillis>`` for cases
and ``CASE-<unixMillis>-<0..999>`` for reports created outside a case.
When two records are created inside the same millisecond the later one
moves forward to the next free millisecond.
"""
from __future__ import annotations

import random
import time


def _now_millis() -> int:
    return int(time.time() * 1000)


def _first_free(prefix: str, exists) -> str:
    millis = _now_millis()
    while exists(f"{prefix}{millis}"):
        millis += 1
    return f"{prefix}{millis}"


def next_patient_id() -> str:
    from workflow.models import Patient
    return _first_free("PT-", lambda v: Patient.objects.filter(patient_id=v).exists())


def next_case_number() -> str:
    from workflow.models import Case
    return _first_free("CASE-", lambda v: Case.objects.filter(case_number=v).exists())


def next_mobile_report_number() -> str:
    from workflow.models import Report
    return _first_free("CASE-", lambda v: Report.objects.filter(case_number=v).exists())


def next_report_number() -> str:
    from workflow.models import Report
    while True:
        value = f"CASE-{_now_millis()}-{random.randint(0, 999)}"
        if not Report.objects.filter(case_number=value).exists():
            return value
