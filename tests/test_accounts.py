import hashlib
import struct
import unittest

import base58
from solders.pubkey import Pubkey

from squads_upgrade.accounts import (
    anchor_discriminator,
    decode_multisig,
    derive_idl_address,
    derive_program_data_address,
    derive_transaction_pda,
    derive_vault_pda,
    parse_address,
    parse_optional_address,
)
from squads_upgrade.constants import BPF_LOADER_UPGRADEABLE_ID, SQUADS_PROGRAM_ID
from squads_upgrade.errors import ConfigurationError, InvalidAccountData, InvalidAddress


def multisig_data(transaction_index: int, threshold: int = 2, stale_index: int = 0) -> bytes:
    return (
        anchor_discriminator("account", "Multisig")
        + bytes(32)
        + bytes(32)
        + struct.pack("<HIQQ", threshold, 0, transaction_index, stale_index)
        + b"\x00"  # rent_collector: None
        + b"\xfe"  # bump
        + struct.pack("<I", 0)  # members
    )


class AddressParsingTests(unittest.TestCase):
    def test_parse_address_round_trips_base58(self) -> None:
        key = Pubkey.new_unique()
        self.assertEqual(parse_address(str(key), "program-id"), key)
        self.assertEqual(parse_address(f"  {key}\n", "program-id"), key)

    def test_parse_address_passes_pubkey_through(self) -> None:
        key = Pubkey.new_unique()
        self.assertIs(parse_address(key, "program-id"), key)

    def test_parse_address_rejects_garbage(self) -> None:
        for bad in ("not-an-address", "0OIl", "", "   ", "1" * 60):
            with self.assertRaises(InvalidAddress):
                parse_address(bad, "buffer")

    def test_parse_address_names_the_field(self) -> None:
        with self.assertRaisesRegex(InvalidAddress, "spill-address"):
            parse_address("nope!", "spill-address")

    def test_parse_address_rejects_non_strings(self) -> None:
        with self.assertRaises(InvalidAddress):
            parse_address(12345, "buffer")

    def test_parse_optional_address_treats_empty_as_absent(self) -> None:
        self.assertIsNone(parse_optional_address(None, "idl-buffer"))
        self.assertIsNone(parse_optional_address("", "idl-buffer"))
        with self.assertRaises(InvalidAddress):
            parse_optional_address("bad!", "idl-buffer")


class DerivationTests(unittest.TestCase):
    def test_vault_pda_is_deterministic(self) -> None:
        multisig = Pubkey.new_unique()
        first = derive_vault_pda(multisig, 0)
        second = derive_vault_pda(multisig, 0)
        self.assertEqual(first, second)

    def test_vault_pda_uses_squads_seeds(self) -> None:
        multisig = Pubkey.new_unique()
        expected = Pubkey.find_program_address(
            [b"multisig", bytes(multisig), b"vault", bytes([3])],
            SQUADS_PROGRAM_ID,
        )
        self.assertEqual(derive_vault_pda(multisig, 3), expected)

    def test_vault_pda_differs_per_index(self) -> None:
        multisig = Pubkey.new_unique()
        self.assertNotEqual(derive_vault_pda(multisig, 0)[0], derive_vault_pda(multisig, 1)[0])

    def test_vault_pda_is_off_curve(self) -> None:
        vault, _ = derive_vault_pda(Pubkey.new_unique(), 0)
        self.assertFalse(vault.is_on_curve())

    def test_vault_index_bounds(self) -> None:
        multisig = Pubkey.new_unique()
        derive_vault_pda(multisig, 255)
        for bad in (-1, 256, True):
            with self.assertRaises(ConfigurationError):
                derive_vault_pda(multisig, bad)

    def test_vault_pda_rejects_string_multisig(self) -> None:
        with self.assertRaises(InvalidAddress):
            derive_vault_pda("not-a-key", 0)

    def test_transaction_pda_uses_u64_index(self) -> None:
        multisig = Pubkey.new_unique()
        expected = Pubkey.find_program_address(
            [b"multisig", bytes(multisig), b"transaction", struct.pack("<Q", 6)],
            SQUADS_PROGRAM_ID,
        )
        self.assertEqual(derive_transaction_pda(multisig, 6), expected)
        self.assertNotEqual(
            derive_transaction_pda(multisig, 6)[0], derive_transaction_pda(multisig, 7)[0]
        )

    def test_idl_address_matches_anchor_scheme(self) -> None:
        program = Pubkey.new_unique()
        base, _ = Pubkey.find_program_address([], program)
        self.assertEqual(
            derive_idl_address(program),
            Pubkey.create_with_seed(base, "anchor:idl", program),
        )

    def test_program_data_address(self) -> None:
        program = Pubkey.new_unique()
        expected, _ = Pubkey.find_program_address([bytes(program)], BPF_LOADER_UPGRADEABLE_ID)
        self.assertEqual(derive_program_data_address(program), expected)


class MultisigDecodeTests(unittest.TestCase):
    def test_decode_reads_transaction_index(self) -> None:
        state = decode_multisig(multisig_data(5, threshold=3, stale_index=2))
        self.assertEqual(state.transaction_index, 5)
        self.assertEqual(state.threshold, 3)
        self.assertEqual(state.stale_transaction_index, 2)

    def test_decode_rejects_wrong_discriminator(self) -> None:
        data = bytearray(multisig_data(5))
        data[0] ^= 0xFF
        with self.assertRaises(InvalidAccountData):
            decode_multisig(bytes(data))

    def test_decode_rejects_short_data(self) -> None:
        with self.assertRaises(InvalidAccountData):
            decode_multisig(multisig_data(5)[:80])


# Fixed inputs checked against a standalone hashlib derivation, with program
# ids and seeds spelled out here instead of taken from the package.
SQUADS_V4 = "SQDS4ep65T869zMMBKyuUq6aD6EgTu8psMjkvj52pCf"
UPGRADEABLE_LOADER = "BPFLoaderUpgradeab1e11111111111111111111111"
FIELD_P = 2**255 - 19
EDWARDS_D = (-121665 * pow(121666, FIELD_P - 2, FIELD_P)) % FIELD_P


def _on_curve(point: bytes) -> bool:
    y = int.from_bytes(point, "little") & ((1 << 255) - 1)
    y2 = y * y % FIELD_P
    u = (y2 - 1) % FIELD_P
    v = (EDWARDS_D * y2 + 1) % FIELD_P
    x2 = u * pow(v, FIELD_P - 2, FIELD_P) % FIELD_P
    return x2 == 0 or pow(x2, (FIELD_P - 1) // 2, FIELD_P) == 1


def _find_pda(seeds: list[bytes], program: str) -> tuple[bytes, int]:
    owner = base58.b58decode(program)
    for bump in range(255, -1, -1):
        digest = hashlib.sha256(
            b"".join(seeds) + bytes([bump]) + owner + b"ProgramDerivedAddress"
        ).digest()
        if not _on_curve(digest):
            return digest, bump
    raise AssertionError("no off-curve bump")


class FixedVectorTests(unittest.TestCase):
    MULTISIG = bytes(range(1, 33))
    PROGRAM = bytes(range(100, 132))

    def test_vault_zero_and_three(self) -> None:
        multisig = Pubkey.from_bytes(self.MULTISIG)
        for index in (0, 3):
            digest, bump = _find_pda(
                [b"multisig", self.MULTISIG, b"vault", bytes([index])], SQUADS_V4
            )
            vault, vault_bump = derive_vault_pda(multisig, index)
            self.assertEqual(bytes(vault), digest)
            self.assertEqual(vault_bump, bump)

    def test_transaction_six(self) -> None:
        digest, bump = _find_pda(
            [b"multisig", self.MULTISIG, b"transaction", b"\x06\x00\x00\x00\x00\x00\x00\x00"],
            SQUADS_V4,
        )
        address, address_bump = derive_transaction_pda(Pubkey.from_bytes(self.MULTISIG), 6)
        self.assertEqual(bytes(address), digest)
        self.assertEqual(address_bump, bump)

    def test_idl_account(self) -> None:
        base, _ = _find_pda([], base58.b58encode(self.PROGRAM).decode())
        expected = hashlib.sha256(base + b"anchor:idl" + self.PROGRAM).digest()
        self.assertEqual(bytes(derive_idl_address(Pubkey.from_bytes(self.PROGRAM))), expected)

    def test_program_data(self) -> None:
        digest, _ = _find_pda([self.PROGRAM], UPGRADEABLE_LOADER)
        self.assertEqual(
            bytes(derive_program_data_address(Pubkey.from_bytes(self.PROGRAM))), digest
        )


if __name__ == "__main__":
    unittest.main()
