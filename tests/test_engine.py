import random
import unittest
from io import BytesIO

from cvr._chain import PasswordChain
from cvr._engine import CipherEngine, decrypt, encrypt
from cvr._errors import InvalidKey
from cvr._stream import ByteSink, ByteSource


def _reference_encrypt(password, data):
    """Encrypt with a direct transcription of the byte step over the chain's terms."""
    chain = PasswordChain(password)
    key, cursor = b"", 0
    j = previous = pool = 0
    out = bytearray()
    for t in data:
        if cursor == len(key):
            key, cursor = chain.next().key, 0
        j = (j + previous) % len(key)
        u, v = key[cursor], key[j]
        cursor += 1
        if u == 0:
            u, pool = pool % 256, pool // 256
        full = t + (u + v) // 2
        out.append(full % 256)
        pool += full // 256
        previous = t
    return bytes(out)


class _FailingReader:
    """Reader that returns one block and then fails, to simulate a broken source."""

    def __init__(self, block):
        self._block = block
        self._calls = 0

    def read(self, size=-1):
        self._calls += 1
        if self._calls == 1:
            return self._block
        raise OSError("Simulated read failure")


class TestCipherEngine(unittest.TestCase):
    """Unit tests for the CipherEngine byte transform."""

    def test_golden_vector(self):
        """Test the first bytes produced for password "A" and a zero plaintext."""
        # x[10] = 65 + 17155, x[11] = 145 + 10930, x[12] = 240 + 53500; one usable digit each
        self.assertEqual(bytes(CipherEngine(b"A").encrypt(b"\x00")), b"\x44")
        self.assertEqual(bytes(CipherEngine("A").encrypt(b"\x00\x00\x00")), b"\x44\x43\xec")

    def test_quotient_goes_to_carry_pool(self):
        """Test that a sum above 255 wraps and feeds the carry pool."""
        engine = CipherEngine(b"A")
        self.assertEqual(engine.encrypt_byte(0xFF), (0xFF + 0x44) % 256)
        self.assertEqual(engine.carry_pool, 1)

        decoder = CipherEngine(b"A")
        self.assertEqual(decoder.decrypt_byte((0xFF + 0x44) % 256), 0xFF)
        self.assertEqual(decoder.carry_pool, 1)

    def test_matches_reference(self):
        """Test encryption against an independent transcription of the byte step."""
        rng = random.Random(99)
        for password in (b"A", b"key", b"a much longer password with spaces", b"\x00\x01"):
            for size in (0, 1, 7, 64, 1000):
                data = rng.randbytes(size)
                with self.subTest(password=password, size=size):
                    self.assertEqual(
                        bytes(CipherEngine(password).encrypt(data)), _reference_encrypt(password, data)
                    )

    def test_round_trip(self):
        """Test that decryption restores the plaintext for many passwords and messages."""
        rng = random.Random(2014)
        for _ in range(100):
            password = rng.randbytes(rng.randint(1, 20))
            data = rng.randbytes(rng.randint(0, 300))
            cyphertext = CipherEngine(password).encrypt(data)
            self.assertEqual(len(cyphertext), len(data))
            self.assertEqual(bytes(CipherEngine(password).decrypt(cyphertext)), data)

    def test_round_trip_degenerate_plaintexts(self):
        """Test plaintexts made of a single repeated byte value."""
        for value in (0x00, 0x01, 0x7F, 0xFF):
            data = bytes([value]) * 5000
            with self.subTest(value=value):
                cyphertext = CipherEngine(b"p").encrypt(data)
                self.assertEqual(bytes(CipherEngine(b"p").decrypt(cyphertext)), data)

    def test_determinism(self):
        """Test that encrypting the same input twice gives the same output."""
        data = random.Random(5).randbytes(4096)
        self.assertEqual(CipherEngine(b"seed").encrypt(data), CipherEngine(b"seed").encrypt(data))

    def test_blocks_continue_the_stream(self):
        """Test that splitting the input into blocks does not change the output."""
        data = random.Random(6).randbytes(3000)
        whole = CipherEngine(b"blocks").encrypt(data)

        engine = CipherEngine(b"blocks")
        parts = bytearray()
        for start in range(0, len(data), 17):
            parts += engine.encrypt(data[start : start + 17])
        self.assertEqual(parts, whole)

    def test_directions_stay_in_lockstep(self):
        """Test that both directions end with the same carry pool and chain position."""
        data = random.Random(8).randbytes(20000)
        encoder = CipherEngine(b"lockstep")
        decoder = CipherEngine(b"lockstep")
        decoder.decrypt(encoder.encrypt(data))
        self.assertEqual(encoder.carry_pool, decoder.carry_pool)
        self.assertEqual(encoder.chain.term_index, decoder.chain.term_index)

    def test_different_passwords_differ(self):
        """Test that a different password gives a different cyphertext."""
        data = bytes(256)
        self.assertNotEqual(CipherEngine(b"one").encrypt(data), CipherEngine(b"two").encrypt(data))

    def test_long_stream(self):
        """Test that a megabyte of random data survives a round trip without drift."""
        data = random.Random(42).randbytes(1024 * 1024)
        cyphertext = CipherEngine(b"long stream").encrypt(data)
        self.assertEqual(bytes(CipherEngine(b"long stream").decrypt(cyphertext)), data)

    def test_empty_password(self):
        """Test that an engine cannot be built without a password."""
        with self.assertRaises(InvalidKey):
            CipherEngine(b"")
        with self.assertRaises(InvalidKey):
            CipherEngine("")

    def test_run_with_source_and_sink(self):
        """Test the byte source to byte sink transform in both directions."""
        data = random.Random(10).randbytes(5000)

        cyphertext = BytesIO()
        with ByteSink(cyphertext, 64) as sink:
            count = CipherEngine(b"run").run("encode", ByteSource(BytesIO(data), 100), sink)
        self.assertEqual(count, len(data))
        self.assertEqual(cyphertext.getvalue(), bytes(CipherEngine(b"run").encrypt(data)))

        plaintext = BytesIO()
        with ByteSink(plaintext, 1000) as sink:
            CipherEngine(b"run").run("decode", ByteSource(BytesIO(cyphertext.getvalue()), 7), sink)
        self.assertEqual(plaintext.getvalue(), data)

    def test_run_invalid_mode(self):
        """Test that run rejects unknown modes."""
        with self.assertRaisesRegex(ValueError, "Invalid mode. Use 'encode' or 'decode'."):
            CipherEngine(b"k").run("other", ByteSource(BytesIO(b"x")), ByteSink(BytesIO()))  # type: ignore

    def test_module_helpers(self):
        """Test the encrypt and decrypt helpers."""
        data = b"Attack at dawn!"
        cyphertext = BytesIO()
        with ByteSink(cyphertext) as sink:
            encrypt("helper", ByteSource(BytesIO(data)), sink)
        plaintext = BytesIO()
        with ByteSink(plaintext) as sink:
            decrypt("helper", ByteSource(BytesIO(cyphertext.getvalue())), sink)
        self.assertEqual(plaintext.getvalue(), data)
        self.assertNotEqual(cyphertext.getvalue(), data)

    def test_failing_source_keeps_produced_bytes(self):
        """Test that bytes produced before a source failure still reach the output."""
        output = BytesIO()
        with self.assertRaisesRegex(OSError, "Simulated read failure"):
            with ByteSink(output, 1024) as sink:
                CipherEngine(b"partial").run("encode", ByteSource(_FailingReader(b"abc"), 3), sink)
        self.assertEqual(output.getvalue(), bytes(CipherEngine(b"partial").encrypt(b"abc")))


if __name__ == "__main__":
    unittest.main()
