import pytest

from workflow.exceptions import InvalidArgument, PreconditionFailed
from workflow.models import Report
from workflow.services.transitions import TRANSITIONS, can_transition, ensure_transition


def _report(status, with_file=False):
    report = Report(case_number='CASE-1', status=status)
    if with_file:
        report.file_url = 'http://x/f.pdf'
    return report


def test_every_status_has_a_row():
    assert set(TRANSITIONS) == {value for value, _ in Report.STATUS_CHOICES}


@pytest.mark.parametrize('current,new', [
    ('pending', 'in_progress'),
    ('pending', 'report_uploaded'),
    ('in_progress', 'report_uploaded'),
    ('report_uploaded', 'reviewed'),
    ('report_uploaded', 'approved'),
    ('reviewed', 'approved'),
    ('pending', 'cancelled'),
    ('reviewed', 'paid'),
    ('paid', 'approved'),
])
def test_forward_moves_are_allowed(current, new):
    assert can_transition(current, new)
    ensure_transition(_report(current), new)


@pytest.mark.parametrize('current,new', [
    ('reviewed', 'in_progress'),
    ('report_uploaded', 'pending'),
    ('approved', 'reviewed'),
    ('cancelled', 'pending'),
    ('approved', 'cancelled'),
    ('pending', 'reviewed'),
])
def test_backward_and_terminal_moves_are_rejected(current, new):
    assert not can_transition(current, new)
    with pytest.raises(PreconditionFailed):
        ensure_transition(_report(current), new)


def test_unknown_status_is_invalid_argument():
    with pytest.raises(InvalidArgument):
        ensure_transition(_report('pending'), 'archived')


def test_unknown_status_is_invalid_even_with_override():
    with pytest.raises(InvalidArgument):
        ensure_transition(_report('pending'), 'archived', override=True)


def test_override_accepts_any_listed_status():
    ensure_transition(_report('approved'), 'reviewed', override=True)
    ensure_transition(_report('cancelled'), 'pending', override=True)


def test_report_with_file_never_falls_back_before_upload():
    for target in ('pending', 'in_progress'):
        with pytest.raises(PreconditionFailed):
            ensure_transition(_report('report_uploaded', with_file=True), target, override=True)
    ensure_transition(_report('approved', with_file=True), 'report_uploaded', override=True)
