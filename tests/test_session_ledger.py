import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from models import storage
from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import Role
from utils.security import hash_token


@pytest.fixture
def user_id(credentials):
    return credentials.create("ledger@x.com", "longenough1", "L", "E", Role.STUDENT).id


def _expiry(days=7):
    return utcnow() + timedelta(days=days)


class TestLiveness:
    def test_saved_record_is_live(self, ledger, user_id):
        ledger.save(user_id, hash_token("t1"), _expiry())
        assert ledger.is_live(user_id, hash_token("t1"))

    def test_unknown_hash_is_not_live(self, ledger, user_id):
        assert not ledger.is_live(user_id, hash_token("nope"))

    def test_other_users_hash_is_not_live(self, ledger, user_id, credentials):
        other = credentials.create("other@x.com", "longenough1", "O", "T", Role.STUDENT).id
        ledger.save(user_id, hash_token("t1"), _expiry())
        assert not ledger.is_live(other, hash_token("t1"))

    def test_expired_record_is_not_live(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), utcnow() - timedelta(seconds=1))
        assert not ledger.is_live(user_id, hash_token("old"))

    def test_raw_token_is_not_stored(self, ledger, user_id):
        ledger.save(user_id, hash_token("raw-secret-token"), _expiry())
        rows = storage.get_session().query(RefreshToken).all()
        assert [r.token_hash for r in rows] == [hash_token("raw-secret-token")]
        assert all("raw-secret-token" not in r.token_hash for r in rows)


class TestRevoke:
    def test_revoke_kills_record(self, ledger, user_id):
        ledger.save(user_id, hash_token("t1"), _expiry())
        ledger.revoke(hash_token("t1"))
        assert not ledger.is_live(user_id, hash_token("t1"))

    def test_revoke_is_idempotent(self, ledger, user_id):
        ledger.save(user_id, hash_token("t1"), _expiry())
        ledger.revoke(hash_token("t1"))
        first = storage.get_session().query(RefreshToken).one().revoked_at
        ledger.revoke(hash_token("t1"))
        ledger.revoke(hash_token("never-issued"))
        storage.get_session().expire_all()
        assert storage.get_session().query(RefreshToken).one().revoked_at == first

    def test_revoke_all_covers_every_device(self, ledger, user_id):
        for name in ("laptop", "phone", "tablet"):
            ledger.save(user_id, hash_token(name), _expiry())
        assert ledger.revoke_all(user_id) == 3
        for name in ("laptop", "phone", "tablet"):
            assert not ledger.is_live(user_id, hash_token(name))
        assert ledger.revoke_all(user_id) == 0


class TestRotate:
    def test_rotation_replaces_record(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), _expiry())

        result = ledger.rotate(hash_token("old"), user_id, lambda: ("minted", hash_token("new"), _expiry()))

        assert result == "minted"
        assert not ledger.is_live(user_id, hash_token("old"))
        assert ledger.is_live(user_id, hash_token("new"))

    def test_dead_record_is_not_rotated(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), _expiry())
        ledger.revoke(hash_token("old"))
        calls = []

        def successor():
            calls.append(1)
            return "minted", hash_token("new"), _expiry()

        assert ledger.rotate(hash_token("old"), user_id, successor) is None
        assert calls == []
        assert not ledger.is_live(user_id, hash_token("new"))

    def test_second_rotation_of_same_token_fails(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), _expiry())
        assert ledger.rotate(hash_token("old"), user_id, lambda: (1, hash_token("new-1"), _expiry())) == 1
        assert ledger.rotate(hash_token("old"), user_id, lambda: (2, hash_token("new-2"), _expiry())) is None
        assert not ledger.is_live(user_id, hash_token("new-2"))

    def test_expired_record_is_not_rotated(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), utcnow() - timedelta(seconds=1))
        assert ledger.rotate(hash_token("old"), user_id, lambda: (1, hash_token("new"), _expiry())) is None

    def test_failed_successor_rolls_back(self, ledger, user_id):
        ledger.save(user_id, hash_token("old"), _expiry())

        def successor():
            raise RuntimeError("mint failed")

        with pytest.raises(RuntimeError):
            ledger.rotate(hash_token("old"), user_id, successor)

        # neither half of the rotation was applied
        assert ledger.is_live(user_id, hash_token("old"))
        assert storage.get_session().query(RefreshToken).count() == 1

    def test_concurrent_rotation_happens_once(self, ledger, user_id):
        ledger.save(user_id, hash_token("shared"), _expiry())
        barrier = threading.Barrier(2)

        def attempt(n):
            barrier.wait()
            try:
                return ledger.rotate(
                    hash_token("shared"), user_id, lambda: (n, hash_token(f"successor-{n}"), _expiry())
                )
            finally:
                storage.close()

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(attempt, [1, 2]))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert results.count(None) == 1
        live = [n for n in (1, 2) if ledger.is_live(user_id, hash_token(f"successor-{n}"))]
        assert live == winners
