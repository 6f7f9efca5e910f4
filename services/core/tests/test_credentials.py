"""Tests for API key rotation."""

import pytest

from stocksight.errors import NoCredentials
from stocksight.providers.credentials import CredentialPool


class TestCredentialPool:
    """Tests for CredentialPool."""

    def test_current_returns_first_key(self):
        pool = CredentialPool(["k1", "k2", "k3"])
        assert pool.current() == "k1"
        assert pool.cursor == 0

    def test_advance_moves_to_next_key(self):
        pool = CredentialPool(["k1", "k2", "k3"])
        assert pool.advance() == "k2"
        assert pool.current() == "k2"
        assert pool.advance() == "k3"
        assert pool.current() == "k3"

    def test_full_rotation_signals_exhaustion(self):
        """N advances on a pool of N keys wrap to the first key and return None."""
        keys = ["k1", "k2", "k3", "k4"]
        pool = CredentialPool(keys)

        results = [pool.advance() for _ in range(len(keys))]

        assert results[:-1] == ["k2", "k3", "k4"]
        assert results[-1] is None
        assert pool.current() == "k1"

    def test_single_key_pool_exhausts_on_first_advance(self):
        pool = CredentialPool(["only"])
        assert pool.advance() is None
        assert pool.current() == "only"

    def test_rotation_continues_after_exhaustion(self):
        pool = CredentialPool(["k1", "k2"])
        assert pool.advance() == "k2"
        assert pool.advance() is None
        assert pool.advance() == "k2"

    def test_empty_pool_current_raises(self):
        pool = CredentialPool([])
        with pytest.raises(NoCredentials):
            pool.current()

    def test_empty_pool_advance_raises(self):
        pool = CredentialPool([])
        with pytest.raises(NoCredentials):
            pool.advance()

    def test_blank_keys_are_dropped(self):
        pool = CredentialPool(["  k1 ", "", "   ", "k2"])
        assert pool.size == 2
        assert len(pool) == 2
        assert pool.current() == "k1"

    def test_reset(self):
        pool = CredentialPool(["k1", "k2", "k3"])
        pool.advance()
        pool.advance()
        pool.reset()
        assert pool.cursor == 0
        assert pool.current() == "k1"
