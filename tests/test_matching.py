"""Tests for festreg.matching module."""

from festreg import Registration
from festreg.matching import match_utrs, normalize_statement, utr_matches


def _registration(**kwargs) -> Registration:
    """Create a pending Registration with defaults."""
    defaults = dict(
        id='t1', event_id='dhurandharah', team_number=1,
        event_name='DHURANDHARAH', payment_status='pending',
        utr_number='223344556677',
    )
    defaults.update(kwargs)
    return Registration(**defaults)


class TestNormalizeStatement:
    """Tests for whitespace removal."""

    def test_removes_spaces_and_newlines(self):
        assert normalize_statement('Ref 223344\n556677\tpaid') == 'Ref223344556677paid'

    def test_removes_unicode_whitespace(self):
        assert normalize_statement('1234\u00a05678\u20069') == '123456789'

    def test_empty(self):
        assert normalize_statement('') == ''


class TestUtrMatches:
    """Tests for the single-registration rule."""

    def test_contained(self):
        assert utr_matches('556677', 'Ref223344556677paid')

    def test_not_contained(self):
        assert not utr_matches('998877665544', 'Ref223344556677paid')

    def test_empty_utr_never_matches(self):
        assert not utr_matches('', 'anything')
        assert not utr_matches('', '')

    def test_whitespace_only_utr_never_matches(self):
        assert not utr_matches('   ', 'anything')

    def test_utr_is_trimmed(self):
        assert utr_matches(' 223344556677 ', '223344556677')


class TestMatchUtrs:
    """Tests for the batch matcher."""

    def test_split_reference_matches(self):
        # Reference broken across a space in the statement
        pending = [
            _registration(id='t1', utr_number='223344556677'),
            _registration(id='t2', team_number=2, utr_number='998877665544'),
        ]
        matches = match_utrs(pending, '...Ref 223344 556677 paid...')
        assert [m.id for m in matches] == ['t1']

    def test_empty_utr_excluded(self):
        matches = match_utrs([_registration(utr_number='')], 'anything')
        assert matches == []

    def test_no_pending_registrations(self):
        assert match_utrs([], 'Ref 223344556677') == []

    def test_shared_utr_matches_both(self):
        pending = [
            _registration(id='t1', utr_number='111222333'),
            _registration(id='t2', event_id='samanvaya', event_name='SAMANVAYA',
                          utr_number='111222333'),
        ]
        matches = match_utrs(pending, 'UPI/111222333/payment')
        assert [m.id for m in matches] == ['t1', 't2']

    def test_utr_inside_longer_number_matches(self):
        matches = match_utrs([_registration(utr_number='1234')], 'txn 912340')
        assert len(matches) == 1

    def test_preserves_input_order(self):
        pending = [
            _registration(id='c', utr_number='333'),
            _registration(id='a', utr_number='111'),
            _registration(id='b', utr_number='222'),
        ]
        matches = match_utrs(pending, '111 222 333')
        assert [m.id for m in matches] == ['c', 'a', 'b']

    def test_output_subset_of_input(self):
        pending = [_registration(id=f'r{i}', utr_number=str(100 + i)) for i in range(10)]
        matches = match_utrs(pending, '101 105 109 999')
        input_ids = {r.id for r in pending}
        assert {m.id for m in matches} <= input_ids
        assert [m.id for m in matches] == ['r1', 'r5', 'r9']

    def test_completed_registrations_ignored(self):
        pending = [_registration(payment_status='completed')]
        assert match_utrs(pending, '223344556677') == []

    def test_idempotent(self):
        pending = [
            _registration(id='t1', utr_number='223344556677'),
            _registration(id='t2', utr_number='445566'),
        ]
        text = 'Ref 223344 556677 and 445566'
        assert match_utrs(pending, text) == match_utrs(pending, text)

    def test_inputs_not_mutated(self):
        reg = _registration()
        match_utrs([reg], '223344556677')
        assert reg.payment_status == 'pending'

    def test_match_carries_review_and_update_data(self):
        reg = _registration(id='doc9', event_id='vikraya', team_number=7,
                            event_name='VIKRAYA', utr_number='500600700')
        (match,) = match_utrs([reg], 'credited 500600700')
        assert match.team_number == 7
        assert match.event_name == 'VIKRAYA'
        assert match.utr_number == '500600700'
        assert match.ref.id == 'doc9'
        assert match.ref.event_id == 'vikraya'
