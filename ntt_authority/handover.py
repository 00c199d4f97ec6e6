"""
Two-step handover of a mint's authority away from an NTT manager.

`transfer` records a pending new authority with the manager program and
`claim` moves the mint authority to it. Both steps are separate runs of the
tool and share nothing except the on-chain state, which is re-read every
time.
"""
from typing import List, Optional, Protocol, Sequence

from loguru import logger
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ntt_authority import instructions as ntt_program
from ntt_authority.errors import (
    ManagerNotPausedError,
    MintAuthorityError,
    VersionTooLowError,
)
from ntt_authority.parsing import parse_major_version
from ntt_authority.types import (
    ClaimRequest,
    HandoverResult,
    IsMultisig,
    ManagerConfig,
    MintAuthorityState,
    MultisigInfo,
    MultisigProbe,
    ProbeFailed,
    TransferRequest,
)

MINIMUM_MAJOR_VERSION = 3

ADDITIONAL_SIGNERS_SETTING = "ADDITIONAL_SIGNERS"


class ManagerStateReader(Protocol):
    async def read_version(self) -> str:
        ...

    async def read_config(self) -> ManagerConfig:
        ...

    async def read_paused(self) -> bool:
        ...

    async def read_mint_authority(
        self, mint: Pubkey, token_program: Pubkey
    ) -> Optional[Pubkey]:
        ...

    async def probe_multisig(
        self, address: Pubkey, token_program: Pubkey
    ) -> MultisigProbe:
        ...


class TransactionSubmitter(Protocol):
    async def submit(
        self, instructions: List[Instruction], signers: Sequence[Keypair]
    ) -> str:
        ...


def has_quorum(info: MultisigInfo, additional_signers: Sequence[Keypair]) -> bool:
    # The payer always signs as well
    return info.required_signers <= len(additional_signers) + 1


class AuthorityHandover:
    program_key: Pubkey
    payer: Keypair

    def __init__(
        self,
        reader: ManagerStateReader,
        submitter: TransactionSubmitter,
        program_key: Pubkey,
        payer: Keypair,
        expected_mint: Optional[Pubkey] = None,
        expected_version: Optional[str] = None,
        send_transactions: bool = True,
    ):
        self.reader = reader
        self.submitter = submitter
        self.program_key = program_key
        self.payer = payer
        self.expected_mint = expected_mint
        self.expected_version = expected_version
        self.send_transactions = send_transactions

    async def check_preconditions(self):
        """
        Refuse to go further unless the manager supports the two-step
        authority model and is paused.
        """
        version = await self.reader.read_version()

        if self.expected_version and version != self.expected_version:
            logger.warning(
                f"Configured NTT version {self.expected_version} differs from on-chain version {version}"
            )

        if parse_major_version(version) < MINIMUM_MAJOR_VERSION:
            raise VersionTooLowError(version, MINIMUM_MAJOR_VERSION)

        if not await self.reader.read_paused():
            raise ManagerNotPausedError()

    async def resolve_mint_authority(self, config: ManagerConfig) -> MintAuthorityState:
        if self.expected_mint and self.expected_mint != config.mint:
            logger.warning(
                f"Configured mint {self.expected_mint} differs from manager mint {config.mint}, using {config.mint}"
            )

        logger.debug(f"Mint {config.mint} uses {config.token_program_variant}")
        current_authority = await self.reader.read_mint_authority(
            config.mint, config.token_program
        )

        if current_authority is None:
            raise MintAuthorityError(f"Mint {config.mint} has no mint authority")

        state = MintAuthorityState(
            current_authority=current_authority,
            expected_authority=config.token_authority,
        )

        if state.is_pda_authority:
            logger.debug("Mint authority is the manager token authority PDA")
        else:
            logger.info(f"Mint authority is held by multisig {current_authority}")

        return state

    async def transfer(self, request: TransferRequest) -> HandoverResult:
        await self.check_preconditions()
        config = await self.reader.read_config()
        authority = await self.resolve_mint_authority(config)

        logger.debug("Building ntt_program.set_token_authority instruction")
        instruction = ntt_program.set_token_authority(
            {
                "owner": self.payer.pubkey(),
                "mint": config.mint,
                "new_authority": request.new_authority,
                "rent_payer": self.payer.pubkey(),
                "multisig_token_authority": authority.multisig_token_authority,
            },
            self.program_key,
        )

        return await self._execute([instruction], [self.payer])

    async def claim(self, request: ClaimRequest) -> HandoverResult:
        await self.check_preconditions()
        config = await self.reader.read_config()
        authority = await self.resolve_mint_authority(config)
        multisig = await self.detect_multisig(request.new_authority, config)

        if multisig is not None:
            if not has_quorum(multisig, request.additional_signers):
                logger.warning(
                    f"Multisig {multisig.address} requires {multisig.required_signers} signers "
                    f"but only {len(request.additional_signers) + 1} are available "
                    f"(payer + {len(request.additional_signers)}). "
                    f"Add the missing signer keypairs to {ADDITIONAL_SIGNERS_SETTING}."
                )

            multisig_signers = [self.payer.pubkey()] + [
                signer.pubkey() for signer in request.additional_signers
            ]

            logger.debug(
                "Building ntt_program.claim_token_authority_to_multisig instruction"
            )
            instruction = ntt_program.claim_token_authority_to_multisig(
                {
                    "mint": config.mint,
                    "token_program": config.token_program,
                    "rent_payer": self.payer.pubkey(),
                    "new_multisig_authority": request.new_authority,
                    "multisig_token_authority": authority.multisig_token_authority,
                },
                self.program_key,
                multisig_signers,
            )
        else:
            logger.debug("Building ntt_program.claim_token_authority instruction")
            instruction = ntt_program.claim_token_authority(
                {
                    "mint": config.mint,
                    "token_program": config.token_program,
                    "rent_payer": self.payer.pubkey(),
                    "new_authority": request.new_authority,
                    "multisig_token_authority": authority.multisig_token_authority,
                },
                self.program_key,
            )

        return await self._execute(
            [instruction], [self.payer, *request.additional_signers]
        )

    async def detect_multisig(
        self, address: Pubkey, config: ManagerConfig
    ) -> Optional[MultisigInfo]:
        probe = await self.reader.probe_multisig(address, config.token_program)

        if isinstance(probe, IsMultisig):
            logger.info(
                f"New authority {address} is a {probe.info.required_signers}-of-{probe.info.signer_count} multisig"
            )
            return probe.info

        if isinstance(probe, ProbeFailed):
            # Treated like a plain account; the claim fails on-chain if wrong
            logger.warning(
                f"Could not check whether {address} is a multisig ({probe.cause}), "
                "treating it as a plain account"
            )

        return None

    async def _execute(
        self, instructions: List[Instruction], signers: List[Keypair]
    ) -> HandoverResult:
        if not self.send_transactions:
            return HandoverResult(instructions=instructions, signers=signers)

        signature = await self.submitter.submit(instructions, signers)

        return HandoverResult(
            instructions=instructions, signers=signers, signature=signature
        )
