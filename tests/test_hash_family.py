"""
Tests for the seeded hash family.
"""

import pickle

import pytest

from neardup.errors import ConfigError
from neardup.lsh.hash_family import (
    HashFamily,
    base_hash,
    base_hash_array,
    generate,
    token_bytes,
)


class TestGenerate:
    """Test hash family generation."""

    def test_same_seed_same_family(self):
        """Identical (seed, n) yields identical salts."""
        a = generate(3552, 240)
        b = generate(3552, 240)

        assert a == b
        assert a.salts == b.salts
        assert len(a) == 240

    def test_different_seed_different_family(self):
        """A different seed changes the salts."""
        assert generate(1, 16).salts != generate(2, 16).salts

    def test_salts_golden(self):
        """Pinned Mersenne Twister salts for the default seed."""
        assert generate(3552, 240).salts[:3] == (
            8274694238903015367,
            18409421533725128075,
            17252364471000823320,
        )
        assert generate(5, 2).salts == (4712128852136459333, 6613812840851947673)

    def test_prefix_property(self):
        """Salts are drawn in index order, so a smaller family is a prefix."""
        small = generate(7, 10)
        large = generate(7, 20)

        assert large.salts[:10] == small.salts

    def test_salts_are_64_bit(self):
        """Every salt fits in an unsigned 64-bit integer."""
        family = generate(42, 100)
        assert all(0 <= s < 2 ** 64 for s in family.salts)
        assert family.salt_column.shape == (100, 1)

    @pytest.mark.parametrize("n", [0, -3])
    def test_non_positive_size_rejected(self, n):
        """Zero or negative family sizes fail fast."""
        with pytest.raises(ConfigError) as exc_info:
            generate(1, n)
        assert exc_info.value.parameter == "n"

    def test_family_is_immutable(self):
        """Families are frozen."""
        family = generate(1, 4)
        with pytest.raises(AttributeError):
            family.seed = 2

    def test_salt_column_read_only(self):
        """The cached numpy view cannot be written."""
        family = generate(1, 4)
        with pytest.raises(ValueError):
            family.salt_column[0, 0] = 0

    def test_pickle_round_trip(self):
        """Families survive pickling for process pools."""
        family = generate(99, 32)
        restored = pickle.loads(pickle.dumps(family))

        assert restored == family
        assert restored.salt_column.tolist() == family.salt_column.tolist()

    def test_mismatched_salts_rejected(self):
        """Salt count must match the declared size."""
        with pytest.raises(ConfigError):
            HashFamily(seed=0, num_hashes=3, salts=(1, 2))


class TestBaseHash:
    """Test the stable base hash."""

    def test_base_hash_stable(self):
        """Base hash does not depend on process state."""
        assert base_hash("token") == base_hash("token")
        assert base_hash("token") != base_hash("tokens")

    def test_token_bytes_forms(self):
        """Strings map to UTF-8; other types carry a type tag."""
        assert token_bytes("abc") == b"abc"
        assert token_bytes(b"abc") == b"\xffbuiltins.bytes\x00abc"
        assert token_bytes(("a", 1)) == b"\xffbuiltins.tuple\x00" + repr(("a", 1)).encode("utf-8")

    def test_types_do_not_collide(self):
        """Equal-looking tokens of different types hash differently."""
        assert token_bytes(1) != token_bytes("1")
        assert token_bytes(b"a") != token_bytes("a")
        assert len({base_hash(1), base_hash("1"), base_hash(b"1"), base_hash(1.0)}) == 4

    def test_base_hash_golden(self):
        """Pinned blake2b-64 values, identical on every machine."""
        assert base_hash("token") == 8402427755655987519
        assert base_hash("shingle") == 16160238867924786101
        assert base_hash(1) == 1994478985362377153

    def test_base_hash_array_matches_scalar(self):
        """Vectorised hashes equal scalar ones."""
        tokens = ["a", "b", "c"]
        arr = base_hash_array(tokens)

        assert arr.dtype.name == "uint64"
        assert arr.tolist() == [base_hash(t) for t in tokens]

    def test_hash_token_applies_xor(self):
        """Function i is base hash XOR salt i."""
        family = generate(5, 8)
        values = family.hash_token("shingle")

        assert len(values) == 8
        assert values[3] == base_hash("shingle") ^ family.salts[3]
