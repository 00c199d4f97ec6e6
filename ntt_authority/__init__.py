from typing import List, Optional, Sequence

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ntt_authority import instructions as ntt_program
from ntt_authority.errors import (
    ConfirmationTimeoutError,
    InvalidInputError,
    TransactionRejectedError,
)
from ntt_authority.parsing import (
    parse_config_data,
    parse_mint_authority,
    parse_multisig_data,
    parse_version_return_data,
)
from ntt_authority.types import (
    IsMultisig,
    ManagerConfig,
    MultisigProbe,
    Network,
    NotMultisig,
    ProbeFailed,
)
from ntt_authority.util import RPC_ENDPOINTS, recent_blockhash


def required_signers(message: Message, signers: Sequence[Keypair]) -> List[Keypair]:
    """
    Pick the keypairs the message needs, in the order it needs them.
    """
    available = {signer.pubkey(): signer for signer in signers}
    required = message.account_keys[: message.header.num_required_signatures]
    missing = [str(key) for key in required if key not in available]

    if missing:
        raise InvalidInputError(f"Missing keypair for signer(s): {', '.join(missing)}")

    return [available[key] for key in required]


class NttManager:
    """
    Reads NTT manager state from the network and submits transactions.

    Every read goes to the RPC node; nothing is cached between calls because
    the on-chain state can change between the transfer and claim steps.
    """

    network: Network
    rpc_endpoint: str
    program_key: Pubkey
    fee_payer: Pubkey

    def __init__(
        self,
        network: Network,
        program_key: Pubkey,
        fee_payer: Pubkey,
        commitment: str = "finalized",
        rpc_endpoint: str = "",
    ):
        self.network = network
        self.rpc_endpoint = rpc_endpoint or RPC_ENDPOINTS[network]
        self.program_key = program_key
        self.fee_payer = fee_payer
        self.commitment = Commitment(commitment)

    async def read_version(self) -> str:
        """
        Simulate the manager `version` instruction and decode its return
        data.
        """
        async with AsyncClient(self.rpc_endpoint) as client:
            blockhash, _ = await recent_blockhash(client, self.commitment)
            message = Message.new_with_blockhash(
                [ntt_program.version(self.program_key)], self.fee_payer, blockhash
            )
            response = await client.simulate_transaction(
                Transaction.new_unsigned(message),
                sig_verify=False,
                commitment=self.commitment,
            )
            result = response.value

            if result.err:
                raise RuntimeError(f"Version simulation failed: {result.err}")

            if not result.return_data:
                raise RuntimeError("Version simulation returned no data")

            version = parse_version_return_data(bytes(result.return_data.data))
            logger.debug(f"NTT manager version: {version}")

            return version

    async def read_config(self) -> ManagerConfig:
        config_key = ntt_program.derive_config(self.program_key)

        async with AsyncClient(self.rpc_endpoint) as client:
            account = (
                await client.get_account_info(config_key, commitment=self.commitment)
            ).value

            if account is None:
                raise RuntimeError(f"NTT manager config account not found: {config_key}")

            if account.owner != self.program_key:
                raise RuntimeError(
                    f"Config account {config_key} is not owned by {self.program_key}"
                )

            config = parse_config_data(bytes(account.data), self.program_key)
            logger.debug(f"Found manager config: {config}")

            return config

    async def read_paused(self) -> bool:
        return (await self.read_config()).paused

    async def read_mint_authority(
        self, mint: Pubkey, token_program: Pubkey
    ) -> Optional[Pubkey]:
        async with AsyncClient(self.rpc_endpoint) as client:
            account = (
                await client.get_account_info(mint, commitment=self.commitment)
            ).value

            if account is None:
                raise RuntimeError(f"Mint account not found: {mint}")

            if account.owner != token_program:
                raise RuntimeError(
                    f"Mint {mint} is owned by {account.owner}, expected {token_program}"
                )

            return parse_mint_authority(bytes(account.data))

    async def probe_multisig(
        self, address: Pubkey, token_program: Pubkey
    ) -> MultisigProbe:
        """
        Check whether `address` is an SPL multisig of the given token
        program. RPC failures are captured as ProbeFailed and left to the
        caller to decide on.
        """
        try:
            async with AsyncClient(self.rpc_endpoint) as client:
                account = (
                    await client.get_account_info(address, commitment=self.commitment)
                ).value
        except Exception as error:  # pylint: disable=broad-except
            return ProbeFailed(error)

        if account is None or account.owner != token_program:
            return NotMultisig()

        info = parse_multisig_data(address, bytes(account.data))

        if info is None:
            return NotMultisig()

        return IsMultisig(info)

    async def submit(
        self, instructions: List[Instruction], signers: Sequence[Keypair]
    ) -> str:
        """
        Sign, send and confirm a single transaction. The fee payer is the first
        signer.
        """
        async with AsyncClient(self.rpc_endpoint) as client:
            logger.debug(f"Sending {len(instructions)} instructions")

            blockhash, last_valid_block_height = await recent_blockhash(
                client, self.commitment
            )
            message = Message.new_with_blockhash(
                instructions, signers[0].pubkey(), blockhash
            )
            transaction = Transaction(
                required_signers(message, signers), message, blockhash
            )

            try:
                response = await client.send_raw_transaction(
                    bytes(transaction),
                    opts=TxOpts(
                        skip_confirmation=True, preflight_commitment=self.commitment
                    ),
                )
            except RPCException as error:
                raise TransactionRejectedError(
                    f"Transaction rejected by the RPC node: {error}"
                ) from error

            signature = response.value
            logger.debug(f"Transaction: {signature}")

            try:
                statuses = await client.confirm_transaction(
                    signature,
                    commitment=self.commitment,
                    last_valid_block_height=last_valid_block_height,
                )
            except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as error:
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} was sent but not confirmed: {error}"
                ) from error

            status = statuses.value[0]

            if status is not None and status.err is not None:
                raise TransactionRejectedError(
                    f"Transaction {signature} failed: {status.err}"
                )

            return str(signature)
