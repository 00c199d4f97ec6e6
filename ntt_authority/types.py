from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID

Network = Literal["devnet", "localhost", "mainnet-beta", "testnet"]

Commitment = Literal["confirmed", "finalized"]

TokenProgramVariant = Literal["spl-token", "spl-token-2022"]

# Mode of the NTT manager, in on-chain enum order
ManagerMode = Literal["locking", "burning"]


@dataclass
class ManagerConfig:
    owner: Pubkey
    pending_owner: Optional[Pubkey]
    mint: Pubkey
    token_program: Pubkey
    mode: ManagerMode
    chain_id: int
    threshold: int
    paused: bool
    custody: Pubkey
    # PDA the manager expects to hold mint authority during normal operation
    token_authority: Pubkey

    @property
    def token_program_variant(self) -> TokenProgramVariant:
        if self.token_program == TOKEN_PROGRAM_ID:
            return "spl-token"
        if self.token_program == TOKEN_2022_PROGRAM_ID:
            return "spl-token-2022"

        raise RuntimeError(f"Unknown token program: {self.token_program}")

    def __str__(self) -> str:
        return f"ManagerConfig(mint={str(self.mint)[0:5]}..., mode={self.mode}, paused={self.paused})"


@dataclass
class MintAuthorityState:
    current_authority: Pubkey
    expected_authority: Pubkey

    @property
    def is_pda_authority(self) -> bool:
        return self.current_authority == self.expected_authority

    @property
    def multisig_token_authority(self) -> Optional[Pubkey]:
        """
        The mint authority in effect when it is not the manager PDA. Both
        instructions must name it so the program can verify continuity of
        control.
        """
        if self.is_pda_authority:
            return None

        return self.current_authority


@dataclass
class MultisigInfo:
    address: Pubkey
    required_signers: int
    signer_count: int
    signers: List[Pubkey]


@dataclass
class IsMultisig:
    info: MultisigInfo


@dataclass
class NotMultisig:
    pass


@dataclass
class ProbeFailed:
    cause: Exception


MultisigProbe = Union[IsMultisig, NotMultisig, ProbeFailed]


@dataclass
class TransferRequest:
    new_authority: Pubkey


@dataclass
class ClaimRequest:
    new_authority: Pubkey
    additional_signers: List[Keypair] = field(default_factory=list)


@dataclass
class HandoverResult:
    instructions: List[Instruction]
    signers: List[Keypair]
    # None when the instructions were only built, not sent
    signature: Optional[str] = None
