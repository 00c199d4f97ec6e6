from typing import Optional

from construct import (
    Array,
    Bytes,
    ConstructError,
    Flag,
    If,
    Int8ul,
    Int16ul,
    Int32ul,
    Int64ul,
    Struct,
    this,
)
from solders.pubkey import Pubkey

from ntt_authority.instructions import account_discriminator, derive_token_authority
from ntt_authority.types import ManagerConfig, ManagerMode, MultisigInfo

MINT_ACCOUNT_SIZE = 82
MULTISIG_ACCOUNT_SIZE = 355
MULTISIG_MAX_SIGNERS = 11

MANAGER_MODES = ("locking", "burning")

CONFIG_LAYOUT = Struct(
    "discriminator" / Bytes(8),
    "bump" / Int8ul,
    "owner" / Bytes(32),
    "has_pending_owner" / Flag,
    "pending_owner" / If(this.has_pending_owner, Bytes(32)),
    "mint" / Bytes(32),
    "token_program" / Bytes(32),
    "mode" / Int8ul,
    "chain_id" / Int16ul,
    "next_transceiver_id" / Int8ul,
    "threshold" / Int8ul,
    "enabled_transceivers" / Bytes(16),
    "paused" / Flag,
    "custody" / Bytes(32),
)

MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / Bytes(32),
)

MULTISIG_LAYOUT = Struct(
    "m" / Int8ul,
    "n" / Int8ul,
    "is_initialized" / Flag,
    "signers" / Array(MULTISIG_MAX_SIGNERS, Bytes(32)),
)


def parse_config_data(data: bytes, program_key: Pubkey) -> ManagerConfig:
    """
    Parse the NTT manager `Config` account (Anchor discriminator followed by
    the borsh encoded struct).
    """
    if data[0:8] != account_discriminator("Config"):
        raise RuntimeError("Account is not an NTT manager config account")

    try:
        parsed = CONFIG_LAYOUT.parse(data)
    except ConstructError as error:
        raise RuntimeError(f"Malformed NTT manager config account: {error}") from error

    if parsed.mode >= len(MANAGER_MODES):
        raise RuntimeError(f"Invalid NTT manager mode: {parsed.mode}")

    mode: ManagerMode = MANAGER_MODES[parsed.mode]  # type: ignore
    pending_owner = (
        Pubkey.from_bytes(parsed.pending_owner) if parsed.has_pending_owner else None
    )

    return ManagerConfig(
        owner=Pubkey.from_bytes(parsed.owner),
        pending_owner=pending_owner,
        mint=Pubkey.from_bytes(parsed.mint),
        token_program=Pubkey.from_bytes(parsed.token_program),
        mode=mode,
        chain_id=parsed.chain_id,
        threshold=parsed.threshold,
        paused=parsed.paused,
        custody=Pubkey.from_bytes(parsed.custody),
        token_authority=derive_token_authority(program_key),
    )


def parse_mint_authority(data: bytes) -> Optional[Pubkey]:
    """
    Return the mint authority of an SPL Token (or Token-2022) mint, or None if
    the mint has no authority. Token-2022 extensions after the base layout
    are ignored.
    """
    if len(data) < MINT_ACCOUNT_SIZE:
        raise RuntimeError(f"Mint account data too small ({len(data)} bytes)")

    try:
        parsed = MINT_LAYOUT.parse(data[0:MINT_ACCOUNT_SIZE])
    except ConstructError as error:
        raise RuntimeError(f"Malformed mint account: {error}") from error

    if not parsed.is_initialized:
        raise RuntimeError("Mint account is not initialized")

    if parsed.mint_authority_option == 0:
        return None

    return Pubkey.from_bytes(parsed.mint_authority)


def parse_multisig_data(address: Pubkey, data: bytes) -> Optional[MultisigInfo]:
    """
    Parse an SPL multisig account. Returns None when the data does not hold
    an initialized multisig.
    """
    if len(data) != MULTISIG_ACCOUNT_SIZE:
        return None

    try:
        parsed = MULTISIG_LAYOUT.parse(data)
    except ConstructError:
        return None

    if not parsed.is_initialized:
        return None

    signers = [Pubkey.from_bytes(key) for key in parsed.signers[0 : parsed.n]]

    return MultisigInfo(
        address=address,
        required_signers=parsed.m,
        signer_count=parsed.n,
        signers=signers,
    )


def parse_version_return_data(data: bytes) -> str:
    """
    The `version` instruction returns a borsh `String`: a u32 length prefix
    followed by UTF-8 bytes.
    """
    try:
        length = Int32ul.parse(data[0:4])
    except ConstructError as error:
        raise RuntimeError("Truncated version return data") from error

    if len(data) < 4 + length:
        raise RuntimeError("Truncated version return data")

    try:
        return data[4 : 4 + length].decode("utf8")
    except UnicodeDecodeError as error:
        raise RuntimeError("Version return data is not UTF-8") from error


def parse_major_version(version: str) -> int:
    try:
        return int(version.strip().lstrip("v").split(".")[0])
    except ValueError as error:
        raise RuntimeError(f"Invalid version string: {version!r}") from error
