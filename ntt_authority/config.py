from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple, get_args

from solders.pubkey import Pubkey

from ntt_authority.errors import InvalidInputError
from ntt_authority.types import Commitment, Network
from ntt_authority.util import RPC_ENDPOINTS, parse_public_key

DEFAULT_NTT_VERSION = "3.0.0"
SUPPORTED_CHAINS = ("Solana",)


@dataclass(frozen=True)
class HandoverConfig:
    network: Network
    rpc_endpoint: str
    payer_path: Path
    mint: Pubkey
    manager: Pubkey
    transceiver: Pubkey
    commitment: Commitment = "finalized"
    chain: str = "Solana"
    ntt_version: str = DEFAULT_NTT_VERSION
    additional_signer_paths: Tuple[Path, ...] = field(default_factory=tuple)


def _require_key(name: str, value: Optional[str]) -> Pubkey:
    if not value:
        raise InvalidInputError(f"Missing configuration value: {name}")

    try:
        return parse_public_key(value)
    except ValueError as error:
        raise InvalidInputError(f"{name}: {error}") from error


def _require_file(name: str, value: Optional[str]) -> Path:
    if not value or not value.strip():
        raise InvalidInputError(f"Missing configuration value: {name}")

    path = Path(value.strip()).expanduser()

    if not path.is_file():
        raise InvalidInputError(f"{name}: keypair file not found: {path}")

    return path


def build_config(
    network: Optional[str],
    payer: Optional[str],
    mint: Optional[str],
    manager: Optional[str],
    transceiver: Optional[str],
    rpc_endpoint: Optional[str] = None,
    additional_signers: Sequence[str] = (),
    commitment: str = "finalized",
    chain: str = "Solana",
    ntt_version: Optional[str] = None,
) -> HandoverConfig:
    """
    Validate raw option values and return the configuration the handover
    runs with. Every failure is an InvalidInputError raised before any
    network access.
    """
    network = network or "devnet"

    if network not in get_args(Network):
        raise InvalidInputError(f"Unknown network: {network}")

    if commitment not in get_args(Commitment):
        raise InvalidInputError(
            f"Unsupported commitment: {commitment} (use 'confirmed' or 'finalized')"
        )

    if chain not in SUPPORTED_CHAINS:
        raise InvalidInputError(f"Unsupported chain: {chain}")

    ntt_version = (ntt_version or DEFAULT_NTT_VERSION).strip()

    if not ntt_version:
        raise InvalidInputError("Missing configuration value: NTT_VERSION")

    signer_paths = tuple(
        _require_file("ADDITIONAL_SIGNERS", path)
        for path in additional_signers
        if path and path.strip()
    )

    return HandoverConfig(
        network=network,  # type: ignore
        rpc_endpoint=rpc_endpoint or RPC_ENDPOINTS[network],  # type: ignore
        payer_path=_require_file("PAYER_KEYPAIR", payer),
        mint=_require_key("NTT_TOKEN_ADDRESS", mint),
        manager=_require_key("NTT_MANAGER_ADDRESS", manager),
        transceiver=_require_key("NTT_TRANSCEIVER_ADDRESS", transceiver),
        commitment=commitment,  # type: ignore
        chain=chain,
        ntt_version=ntt_version,
        additional_signer_paths=signer_paths,
    )
