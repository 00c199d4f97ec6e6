import hashlib

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID

from ntt_authority import instructions as ntt_program
from ntt_authority.util import instruction_to_dict
from stubs import MINT_KEY, NEW_AUTHORITY, PROGRAM_KEY


def test_instruction_discriminator():
    expected = hashlib.sha256(b"global:set_token_authority").digest()[0:8]

    assert ntt_program.instruction_discriminator("set_token_authority") == expected
    assert len(ntt_program.account_discriminator("Config")) == 8


def test_derived_addresses_are_distinct():
    addresses = {
        ntt_program.derive_config(PROGRAM_KEY),
        ntt_program.derive_token_authority(PROGRAM_KEY),
        ntt_program.derive_pending_token_authority(PROGRAM_KEY),
    }

    assert len(addresses) == 3
    assert (
        ntt_program.derive_token_authority(PROGRAM_KEY)
        == Pubkey.find_program_address([b"token_authority"], PROGRAM_KEY)[0]
    )


def test_set_token_authority():
    owner = Pubkey.new_unique()
    instruction = ntt_program.set_token_authority(
        {
            "owner": owner,
            "mint": MINT_KEY,
            "new_authority": NEW_AUTHORITY,
            "rent_payer": owner,
            "multisig_token_authority": None,
        },
        PROGRAM_KEY,
    )

    assert instruction.program_id == PROGRAM_KEY
    assert bytes(instruction.data) == ntt_program.instruction_discriminator(
        "set_token_authority"
    )
    assert [meta.pubkey for meta in instruction.accounts] == [
        ntt_program.derive_config(PROGRAM_KEY),
        owner,
        MINT_KEY,
        ntt_program.derive_token_authority(PROGRAM_KEY),
        PROGRAM_KEY,
        NEW_AUTHORITY,
        owner,
        ntt_program.derive_pending_token_authority(PROGRAM_KEY),
        SYSTEM_PROGRAM_ID,
    ]
    assert instruction.accounts[2].is_writable
    assert instruction.accounts[6].is_signer and instruction.accounts[6].is_writable


def test_claim_token_authority_to_multisig():
    rent_payer = Pubkey.new_unique()
    previous = Pubkey.new_unique()
    multisig = Pubkey.new_unique()
    signers = [rent_payer, Pubkey.new_unique()]

    instruction = ntt_program.claim_token_authority_to_multisig(
        {
            "mint": MINT_KEY,
            "token_program": TOKEN_PROGRAM_ID,
            "rent_payer": rent_payer,
            "new_multisig_authority": multisig,
            "multisig_token_authority": previous,
        },
        PROGRAM_KEY,
        signers,
    )

    keys = [meta.pubkey for meta in instruction.accounts]
    assert keys[3] == previous
    assert keys[4] == rent_payer
    assert keys[6] == TOKEN_PROGRAM_ID
    assert keys[8] == multisig
    assert keys[9:] == signers


def test_version():
    instruction = ntt_program.version(PROGRAM_KEY)

    assert instruction.accounts == []
    assert bytes(instruction.data) == ntt_program.instruction_discriminator("version")


def test_instruction_to_dict():
    instruction = ntt_program.version(PROGRAM_KEY)

    assert instruction_to_dict(instruction) == {
        "program_id": str(PROGRAM_KEY),
        "data": ntt_program.instruction_discriminator("version").hex(),
        "accounts": [],
    }
