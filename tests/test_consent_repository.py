from signals_dispatch.dispatch.consent import LedgerConsentPolicy
from signals_dispatch.repositories.consent_repository import ConsentRepository
from tests.fixtures_data import build_session_factory

PHONE = "+5511987654321"


def test_latest_record_wins():
    repo = ConsentRepository(build_session_factory())
    repo.record_consent(PHONE, True, source="checkout", order_id=10)
    repo.record_consent(PHONE, False, source="account", user_id=3)

    latest = repo.find_latest(PHONE)

    assert latest.consent is False
    assert latest.source == "account"
    assert latest.user_id == 3
    assert repo.has_consent(PHONE) is False


def test_phone_without_records_has_no_consent():
    repo = ConsentRepository(build_session_factory())

    assert repo.find_latest(PHONE) is None
    assert repo.has_consent(PHONE) is False
    assert LedgerConsentPolicy(repo).allows(PHONE) is False


def test_statistics_counts_every_record():
    repo = ConsentRepository(build_session_factory())
    repo.record_consent(PHONE, True)
    repo.record_consent("+15551234567", True)
    repo.record_consent("+15551234567", False)

    assert repo.statistics() == {"total": 3, "opted_in": 2, "opted_out": 1}
    assert LedgerConsentPolicy(repo).allows(PHONE) is True


def test_source_is_truncated_to_column_size():
    repo = ConsentRepository(build_session_factory())
    repo.record_consent(PHONE, True, source="x" * 40)

    assert repo.find_latest(PHONE).source == "x" * 20
