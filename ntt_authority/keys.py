from pathlib import Path
from typing import List, Sequence, Union

import ujson as json
from solders.keypair import Keypair

from ntt_authority.errors import InvalidInputError


def load_keypair(file_path: Union[str, Path]) -> Keypair:
    """
    Read a keypair from a Solana CLI keypair file (a JSON array holding the
    64 secret key bytes).
    """
    path = Path(file_path).expanduser()

    if not path.exists():
        raise InvalidInputError(f"Missing keypair file: {path}")

    with open(path, encoding="utf8") as file:
        try:
            data = bytes(json.load(file))

            return Keypair.from_bytes(data)
        except (TypeError, ValueError) as error:
            raise InvalidInputError(f"Invalid keypair file {path}: {error}") from error


def load_keypairs(file_paths: Sequence[Union[str, Path]]) -> List[Keypair]:
    # Empty entries are skipped so an unset signer list can be left blank
    return [load_keypair(path) for path in file_paths if str(path).strip()]
