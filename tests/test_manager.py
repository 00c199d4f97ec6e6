from types import SimpleNamespace

import pytest
from solana.rpc.core import RPCException, UnconfirmedTxError
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import TOKEN_PROGRAM_ID

import ntt_authority
from ntt_authority import NttManager
from ntt_authority import instructions as ntt_program
from ntt_authority.errors import (
    ConfirmationTimeoutError,
    InvalidInputError,
    TransactionRejectedError,
)
from ntt_authority.types import IsMultisig, NotMultisig, ProbeFailed
from stubs import (
    MINT_KEY,
    NEW_AUTHORITY,
    PROGRAM_KEY,
    config_data,
    mint_data,
    multisig_data,
)


class FakeClient:
    """
    Minimal AsyncClient replacement serving canned account data.
    """

    accounts: dict = {}
    error = None
    confirm_error = None
    status_error = None
    return_data = None
    sent: list = []

    def __init__(self, endpoint):
        self.endpoint = endpoint

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    async def get_account_info(self, pubkey, commitment=None):
        if FakeClient.error:
            raise FakeClient.error

        return SimpleNamespace(value=FakeClient.accounts.get(pubkey))

    async def get_latest_blockhash(self, commitment=None):
        return SimpleNamespace(
            value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=100)
        )

    async def simulate_transaction(self, txn, sig_verify=False, commitment=None):
        return SimpleNamespace(
            value=SimpleNamespace(
                err=None,
                return_data=SimpleNamespace(data=FakeClient.return_data)
                if FakeClient.return_data
                else None,
            )
        )

    async def send_raw_transaction(self, txn, opts=None):
        if FakeClient.error:
            raise FakeClient.error

        FakeClient.sent.append(txn)
        return SimpleNamespace(value=Signature.default())

    async def confirm_transaction(
        self, signature, commitment=None, last_valid_block_height=None
    ):
        if FakeClient.confirm_error:
            raise FakeClient.confirm_error

        return SimpleNamespace(
            value=[SimpleNamespace(err=FakeClient.status_error)]
        )


def account(owner: Pubkey, data: bytes):
    return SimpleNamespace(owner=owner, data=data)


@pytest.fixture
def fake_client(monkeypatch):
    FakeClient.accounts = {}
    FakeClient.error = None
    FakeClient.confirm_error = None
    FakeClient.status_error = None
    FakeClient.return_data = None
    FakeClient.sent = []
    monkeypatch.setattr(ntt_authority, "AsyncClient", FakeClient)

    yield FakeClient


@pytest.fixture
def manager(payer):
    return NttManager(
        network="localhost", program_key=PROGRAM_KEY, fee_payer=payer.pubkey()
    )


async def test_read_version(fake_client, manager):
    fake_client.return_data = b"\x05\x00\x00\x003.0.0"

    assert await manager.read_version() == "3.0.0"


async def test_read_version_without_return_data(fake_client, manager):
    with pytest.raises(RuntimeError):
        await manager.read_version()


async def test_read_config(fake_client, manager):
    fake_client.accounts[ntt_program.derive_config(PROGRAM_KEY)] = account(
        PROGRAM_KEY, config_data(paused=True)
    )

    config = await manager.read_config()

    assert config.paused
    assert config.mint == MINT_KEY


async def test_read_config_truncated(fake_client, manager):
    fake_client.accounts[ntt_program.derive_config(PROGRAM_KEY)] = account(
        PROGRAM_KEY, config_data(paused=True)[0:60]
    )

    with pytest.raises(RuntimeError):
        await manager.read_config()


async def test_read_paused(fake_client, manager):
    fake_client.accounts[ntt_program.derive_config(PROGRAM_KEY)] = account(
        PROGRAM_KEY, config_data(paused=False)
    )

    assert not await manager.read_paused()


async def test_read_config_wrong_owner(fake_client, manager):
    fake_client.accounts[ntt_program.derive_config(PROGRAM_KEY)] = account(
        Pubkey.new_unique(), config_data(paused=True)
    )

    with pytest.raises(RuntimeError):
        await manager.read_config()


async def test_read_mint_authority(fake_client, manager):
    authority = Pubkey.new_unique()
    fake_client.accounts[MINT_KEY] = account(TOKEN_PROGRAM_ID, mint_data(authority))

    assert await manager.read_mint_authority(MINT_KEY, TOKEN_PROGRAM_ID) == authority


async def test_read_mint_authority_missing_mint(fake_client, manager):
    with pytest.raises(RuntimeError):
        await manager.read_mint_authority(MINT_KEY, TOKEN_PROGRAM_ID)


async def test_probe_multisig(fake_client, manager):
    multisig = Pubkey.new_unique()
    fake_client.accounts[multisig] = account(
        TOKEN_PROGRAM_ID, multisig_data(2, [Pubkey.new_unique(), Pubkey.new_unique()])
    )

    probe = await manager.probe_multisig(multisig, TOKEN_PROGRAM_ID)

    assert isinstance(probe, IsMultisig)
    assert probe.info.required_signers == 2


async def test_probe_plain_accounts(fake_client, manager):
    wallet = Pubkey.new_unique()
    fake_client.accounts[wallet] = account(Pubkey.default(), b"")
    foreign = Pubkey.new_unique()
    fake_client.accounts[foreign] = account(
        Pubkey.new_unique(), multisig_data(1, [wallet])
    )

    probe = await manager.probe_multisig(NEW_AUTHORITY, TOKEN_PROGRAM_ID)
    assert isinstance(probe, NotMultisig)
    probe = await manager.probe_multisig(wallet, TOKEN_PROGRAM_ID)
    assert isinstance(probe, NotMultisig)
    probe = await manager.probe_multisig(foreign, TOKEN_PROGRAM_ID)
    assert isinstance(probe, NotMultisig)


async def test_probe_failure_is_reported(fake_client, manager):
    fake_client.error = ConnectionError("connection reset")

    probe = await manager.probe_multisig(NEW_AUTHORITY, TOKEN_PROGRAM_ID)

    assert isinstance(probe, ProbeFailed)
    assert isinstance(probe.cause, ConnectionError)


def transfer_instruction(payer: Keypair):
    return ntt_program.set_token_authority(
        {
            "owner": payer.pubkey(),
            "mint": MINT_KEY,
            "new_authority": NEW_AUTHORITY,
            "rent_payer": payer.pubkey(),
            "multisig_token_authority": None,
        },
        PROGRAM_KEY,
    )


async def test_submit(fake_client, manager, payer):
    signature = await manager.submit([transfer_instruction(payer)], [payer])

    assert signature == str(Signature.default())
    assert len(fake_client.sent) == 1


async def test_submit_confirmation_timeout(fake_client, manager, payer):
    fake_client.confirm_error = UnconfirmedTxError("Unable to confirm transaction")

    with pytest.raises(ConfirmationTimeoutError):
        await manager.submit([transfer_instruction(payer)], [payer])


async def test_submit_rejected_by_node(fake_client, manager, payer):
    fake_client.error = RPCException("Transaction simulation failed")

    with pytest.raises(TransactionRejectedError):
        await manager.submit([transfer_instruction(payer)], [payer])


async def test_submit_failed_on_chain(fake_client, manager, payer):
    fake_client.status_error = "InstructionError"

    with pytest.raises(TransactionRejectedError):
        await manager.submit([transfer_instruction(payer)], [payer])


async def test_submit_ignores_unneeded_signers(fake_client, manager, payer):
    await manager.submit([transfer_instruction(payer)], [payer, Keypair()])

    assert len(fake_client.sent) == 1


async def test_submit_without_required_signer(fake_client, manager, payer):
    instruction = ntt_program.claim_token_authority(
        {
            "mint": MINT_KEY,
            "token_program": TOKEN_PROGRAM_ID,
            "rent_payer": payer.pubkey(),
            "new_authority": NEW_AUTHORITY,
            "multisig_token_authority": None,
        },
        PROGRAM_KEY,
    )

    with pytest.raises(InvalidInputError) as error:
        await manager.submit([instruction], [payer])

    assert str(NEW_AUTHORITY) in str(error.value)
    assert not fake_client.sent
