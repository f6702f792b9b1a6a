"""Squads v4 and upgradeable-loader constants."""

from solders.pubkey import Pubkey

# Squads v4 multisig program (mainnet/devnet).
SQUADS_PROGRAM_ID = Pubkey.from_string("SQDS4ep65T869zMMBKyuUq6aD6EgTu8psMjkvj52pCf")
BPF_LOADER_UPGRADEABLE_ID = Pubkey.from_string("BPFLoaderUpgradeab1e11111111111111111111111")

SEED_PREFIX = b"multisig"
SEED_VAULT = b"vault"
SEED_TRANSACTION = b"transaction"

# Anchor IDL account lives at create_with_seed(base, IDL_SEED, program).
IDL_SEED = "anchor:idl"
# u64 LE of 0x0a69e9a778bcf440, prefixed to every Anchor IDL instruction.
IDL_IX_TAG = bytes.fromhex("40f4bc78a7e9690a")
IDL_SET_BUFFER_VARIANT = 3

# UpgradeableLoaderInstruction::Upgrade
LOADER_UPGRADE_OPCODE = 3

MULTISIG_ACCOUNT_NAME = "Multisig"
VAULT_TRANSACTION_CREATE_IX = "vault_transaction_create"

# Multisig layout after the 8-byte discriminator:
# create_key(32) config_authority(32) threshold(u16) time_lock(u32)
# transaction_index(u64) stale_transaction_index(u64) ...
MULTISIG_THRESHOLD_OFFSET = 72
MULTISIG_TIME_LOCK_OFFSET = 74
MULTISIG_TRANSACTION_INDEX_OFFSET = 78
MULTISIG_STALE_INDEX_OFFSET = 86
MULTISIG_MIN_SIZE = 94

MAX_VAULT_INDEX = 0xFF
MAX_TRANSACTION_INDEX = 2**64 - 1

# Anchor ErrorCode::ConstraintSeeds
ANCHOR_CONSTRAINT_SEEDS = 2006

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_RPC_TIMEOUT = 30.0

CLUSTER_URLS: dict[str, str] = {
    "localnet": "http://127.0.0.1:8899",
    "devnet": "https://api.devnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
}
