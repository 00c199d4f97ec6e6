import hashlib
import typing

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

CONFIG_SEED = b"config"
TOKEN_AUTHORITY_SEED = b"token_authority"
PENDING_TOKEN_AUTHORITY_SEED = b"pending_token_authority"


def instruction_discriminator(name: str) -> bytes:
    # Anchor discriminator (a hash of the name of the instruction)
    return hashlib.sha256(f"global:{name}".encode("utf8")).digest()[0:8]


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode("utf8")).digest()[0:8]


def derive_config(program_key: Pubkey) -> Pubkey:
    return Pubkey.find_program_address([CONFIG_SEED], program_key)[0]


def derive_token_authority(program_key: Pubkey) -> Pubkey:
    return Pubkey.find_program_address([TOKEN_AUTHORITY_SEED], program_key)[0]


def derive_pending_token_authority(program_key: Pubkey) -> Pubkey:
    return Pubkey.find_program_address([PENDING_TOKEN_AUTHORITY_SEED], program_key)[0]


def optional_account(
    program_key: Pubkey, pubkey: typing.Optional[Pubkey]
) -> AccountMeta:
    """
    Anchor encodes an absent optional account as the program id itself.
    """
    return AccountMeta(
        pubkey=pubkey if pubkey is not None else program_key,
        is_signer=False,
        is_writable=False,
    )


class SetTokenAuthorityAccounts(typing.TypedDict):
    owner: Pubkey
    mint: Pubkey
    new_authority: Pubkey
    rent_payer: Pubkey
    multisig_token_authority: typing.Optional[Pubkey]


class ClaimTokenAuthorityAccounts(typing.TypedDict):
    mint: Pubkey
    token_program: Pubkey
    rent_payer: Pubkey
    new_authority: Pubkey
    multisig_token_authority: typing.Optional[Pubkey]


class ClaimTokenAuthorityToMultisigAccounts(typing.TypedDict):
    mint: Pubkey
    token_program: Pubkey
    rent_payer: Pubkey
    new_multisig_authority: Pubkey
    multisig_token_authority: typing.Optional[Pubkey]


def set_token_authority(
    accounts: SetTokenAuthorityAccounts, program_key: Pubkey
) -> Instruction:
    """
    NTT manager set_token_authority instruction (two-step, checked)

    Records `new_authority` in the pending token authority account. The mint
    authority itself is only moved by a later claim.

    accounts:
    - config
    - owner (signer)
    - mint (writable)
    - token authority PDA
    - multisig token authority (optional)
    - new authority
    - rent payer (signer, writable)
    - pending token authority PDA (writable)
    - system program
    """
    keys: typing.List[AccountMeta] = [
        AccountMeta(pubkey=derive_config(program_key), is_signer=False, is_writable=False),
        AccountMeta(pubkey=accounts["owner"], is_signer=True, is_writable=False),
        AccountMeta(pubkey=accounts["mint"], is_signer=False, is_writable=True),
        AccountMeta(
            pubkey=derive_token_authority(program_key),
            is_signer=False,
            is_writable=False,
        ),
        optional_account(program_key, accounts["multisig_token_authority"]),
        AccountMeta(pubkey=accounts["new_authority"], is_signer=False, is_writable=False),
        AccountMeta(pubkey=accounts["rent_payer"], is_signer=True, is_writable=True),
        AccountMeta(
            pubkey=derive_pending_token_authority(program_key),
            is_signer=False,
            is_writable=True,
        ),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]

    return Instruction(
        program_key, instruction_discriminator("set_token_authority"), keys
    )


def claim_base_accounts(
    program_key: Pubkey,
    mint: Pubkey,
    token_program: Pubkey,
    rent_payer: Pubkey,
    multisig_token_authority: typing.Optional[Pubkey],
) -> typing.List[AccountMeta]:
    return [
        AccountMeta(pubkey=derive_config(program_key), is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
        AccountMeta(
            pubkey=derive_token_authority(program_key),
            is_signer=False,
            is_writable=False,
        ),
        optional_account(program_key, multisig_token_authority),
        AccountMeta(pubkey=rent_payer, is_signer=False, is_writable=True),
        AccountMeta(
            pubkey=derive_pending_token_authority(program_key),
            is_signer=False,
            is_writable=True,
        ),
        AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]


def claim_token_authority(
    accounts: ClaimTokenAuthorityAccounts, program_key: Pubkey
) -> Instruction:
    """
    NTT manager claim_token_authority instruction

    Moves the mint authority to the pending authority, which must sign.
    """
    keys = claim_base_accounts(
        program_key,
        accounts["mint"],
        accounts["token_program"],
        accounts["rent_payer"],
        accounts["multisig_token_authority"],
    )
    keys.append(
        AccountMeta(pubkey=accounts["new_authority"], is_signer=True, is_writable=False)
    )

    return Instruction(
        program_key, instruction_discriminator("claim_token_authority"), keys
    )


def claim_token_authority_to_multisig(
    accounts: ClaimTokenAuthorityToMultisigAccounts,
    program_key: Pubkey,
    multisig_signers: typing.List[Pubkey],
) -> Instruction:
    """
    NTT manager claim_token_authority_to_multisig instruction

    Moves the mint authority to a pending SPL multisig. The multisig signers
    approving the claim are passed as remaining accounts, in order.
    """
    keys = claim_base_accounts(
        program_key,
        accounts["mint"],
        accounts["token_program"],
        accounts["rent_payer"],
        accounts["multisig_token_authority"],
    )
    keys.append(
        AccountMeta(
            pubkey=accounts["new_multisig_authority"],
            is_signer=False,
            is_writable=False,
        )
    )
    keys += [
        AccountMeta(pubkey=signer, is_signer=True, is_writable=False)
        for signer in multisig_signers
    ]

    return Instruction(
        program_key,
        instruction_discriminator("claim_token_authority_to_multisig"),
        keys,
    )


def version(program_key: Pubkey) -> Instruction:
    """
    NTT manager version instruction. Takes no accounts; the version string is
    returned through the transaction return data.
    """
    return Instruction(program_key, instruction_discriminator("version"), [])
