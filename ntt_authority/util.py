from typing import Dict, List, Optional, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.hash import Hash
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ntt_authority.types import Network

RPC_ENDPOINTS: Dict[Network, str] = {
    "devnet": "https://api.devnet.solana.com",
    "localhost": "http://127.0.0.1:8899",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "testnet": "https://api.testnet.solana.com",
}

EXPLORER_URL = "https://explorer.solana.com"


async def recent_blockhash(
    client: AsyncClient, commitment: Commitment = Commitment("finalized")
) -> Tuple[Hash, int]:
    """
    Returns the latest blockhash and the last block height at which a
    transaction using it is still valid.
    """
    response = await client.get_latest_blockhash(commitment=commitment)

    return (response.value.blockhash, response.value.last_valid_block_height)


def parse_public_key(value: str) -> Pubkey:
    """
    Parse a base58 public key, raising ValueError for anything else.
    """
    value = value.strip()

    if not value:
        raise ValueError("Public key is empty")

    try:
        return Pubkey.from_string(value)
    except ValueError as error:
        raise ValueError(f"Invalid public key: {value}") from error


def explorer_link(
    kind: str,
    value: str,
    network: Network,
    rpc_endpoint: Optional[str] = None,
) -> str:
    """
    Solana explorer URL for a transaction (`tx`) or an address (`address`).
    """
    url = f"{EXPLORER_URL}/{kind}/{value}"

    if network == "mainnet-beta":
        return url

    if network == "localhost":
        custom_url = rpc_endpoint or RPC_ENDPOINTS["localhost"]
        return f"{url}?cluster=custom&customUrl={custom_url}"

    return f"{url}?cluster={network}"


def instruction_to_dict(instruction: Instruction) -> Dict:
    return {
        "program_id": str(instruction.program_id),
        "data": bytes(instruction.data).hex(),
        "accounts": [
            {
                "pubkey": str(meta.pubkey),
                "is_signer": meta.is_signer,
                "is_writable": meta.is_writable,
            }
            for meta in instruction.accounts
        ],
    }


def instructions_to_dicts(instructions: List[Instruction]) -> List[Dict]:
    return [instruction_to_dict(instruction) for instruction in instructions]
