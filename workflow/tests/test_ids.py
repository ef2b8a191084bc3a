import re

import pytest

from workflow.models import Case, Patient, Report
from workflow.services import ids

pytestmark = pytest.mark.django_db


def test_patient_ids_have_pt_prefix(patient):
    assert re.fullmatch(r'PT-\d+', patient.patient_id)


def test_same_millisecond_moves_to_next_free_id(monkeypatch):
    monkeypatch.setattr(ids, '_now_millis', lambda: 1700000000000)
    first = Patient.objects.create(first_name='A', case_type='STAT')
    second = Patient.objects.create(first_name='B', case_type='STAT')
    assert first.patient_id == 'PT-1700000000000'
    assert second.patient_id == 'PT-1700000000001'


def test_case_numbers_have_case_prefix(paid_patient, department):
    case = Case.objects.create(patient=paid_patient, department=department)
    assert re.fullmatch(r'CASE-\d+', case.case_number)


def test_report_numbers_carry_random_suffix(paid_patient, department):
    value = ids.next_report_number()
    assert re.fullmatch(r'CASE-\d+-\d{1,3}', value)
    assert not Report.objects.filter(case_number=value).exists()


def test_mobile_report_number_skips_taken_numbers(monkeypatch, paid_patient, department):
    monkeypatch.setattr(ids, '_now_millis', lambda: 1700000000500)
    Report.objects.create(case_number='CASE-1700000000500', patient=paid_patient, department=department)
    assert ids.next_mobile_report_number() == 'CASE-1700000000501'
