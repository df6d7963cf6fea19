"""Test BlockClock."""

import pytest

from poe_registry.core.clock import BlockClock


class TestBlockClock:
    def test_default_genesis(self):
        assert BlockClock().now() == 0

    def test_custom_genesis(self, clock):
        assert clock.now() == 10

    def test_advance(self):
        clock = BlockClock()
        assert clock.advance() == 1
        assert clock.advance(4) == 5
        assert clock.now() == 5

    def test_set_block_forward(self):
        clock = BlockClock()
        clock.set_block(42)
        assert clock.now() == 42

    def test_set_same_block_is_allowed(self):
        clock = BlockClock(genesis=3)
        clock.set_block(3)
        assert clock.now() == 3

    def test_cannot_go_backwards(self):
        clock = BlockClock(genesis=5)
        with pytest.raises(ValueError, match="backwards"):
            clock.set_block(4)
        with pytest.raises(ValueError):
            clock.advance(-1)
        assert clock.now() == 5
